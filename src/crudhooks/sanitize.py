"""Schema-driven redaction of results and errors.

A schema maps a literal substring to its replacement, or to a function
``(string, key) -> string`` that is called when the substring occurs:

    sanitize({"token": "abc-SECRET"}, {"SECRET": "*****"})
    # {"token": "abc-*****"}

Strings, numbers, lists, dicts and exceptions are walked recursively. Any
other value is returned as is; sanitize() never raises for unexpected shapes.
"""

from collections.abc import Callable, Mapping
from typing import Any, Union

Replacement = Union[str, int, float, Callable[[str, str], Any]]
SanitizeSchema = Mapping[Any, Replacement]

# Set by the pipeline on errors; holds the context and can point back at the
# error itself, so it is never walked.
HOOK_ATTR = "hook"


def sanitize(value: Any, schema: SanitizeSchema) -> Any:
    if value is None or isinstance(value, bool):
        return value

    if isinstance(value, str):
        return _sanitize_string(value, schema)

    if isinstance(value, (int, float)):
        replaced = _sanitize_string(str(value), schema)
        return _to_number(replaced)

    if isinstance(value, (list, tuple)):
        return [sanitize(item, schema) for item in value]

    if isinstance(value, BaseException):
        return _sanitize_error(value, schema)

    if isinstance(value, dict):
        return {key: sanitize(item, schema) for key, item in value.items()}

    return value


def _sanitize_error(error: BaseException, schema: SanitizeSchema) -> BaseException:
    """Redact an exception in place, keeping its class and its hook attribute."""
    error.args = tuple(sanitize(arg, schema) for arg in error.args)
    for name, attr in list(vars(error).items()):
        if name == HOOK_ATTR:
            continue
        setattr(error, name, sanitize(attr, schema))
    return error


def _sanitize_string(string: str, schema: SanitizeSchema) -> str:
    for key, replacement in schema.items():
        needle = str(key)
        if needle not in string:
            continue
        if callable(replacement):
            string = str(replacement(string, key))
        else:
            string = string.replace(needle, str(replacement))
    return string


def _to_number(string: str) -> Any:
    """Convert back to int/float when the replaced text is still numeric."""
    try:
        return int(string)
    except ValueError:
        pass
    try:
        return float(string)
    except ValueError:
        return string
