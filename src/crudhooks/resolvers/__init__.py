"""Computed-field engines: the dependency-aware Resolver and the virtuals serializer."""

from crudhooks.resolvers.resolver import PropertyResolver, Resolver, ResolverFn
from crudhooks.resolvers.virtuals import (
    Virtual,
    filter_virtual,
    normalize_virtuals,
    resolve_virtual,
    serialize_virtuals,
)

__all__ = [
    "PropertyResolver",
    "Resolver",
    "ResolverFn",
    "Virtual",
    "filter_virtual",
    "normalize_virtuals",
    "resolve_virtual",
    "serialize_virtuals",
]
