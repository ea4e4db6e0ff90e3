"""
Typed objects and reference resolution for openBIS JSON payloads.
"""

from infx.objects.resolve import (
    DEFAULT_REFERENCE_FIELDS,
    ReferenceResolver,
    resolve_references,
)
from infx.objects.typed import (
    ID_KEY,
    TYPE_KEY,
    Reference,
    TypedCollection,
    TypedObject,
    as_collection,
    as_dataframe,
    coerce,
    collect,
    combine,
    get_field,
    has_type,
    prune_nulls,
    simplify,
    tag,
    to_json,
)

__all__ = [
    # Typed objects
    "TYPE_KEY",
    "ID_KEY",
    "TypedObject",
    "TypedCollection",
    "Reference",
    "tag",
    "coerce",
    "collect",
    "prune_nulls",
    "get_field",
    "has_type",
    "simplify",
    "combine",
    "as_collection",
    "as_dataframe",
    "to_json",
    # Resolution
    "DEFAULT_REFERENCE_FIELDS",
    "ReferenceResolver",
    "resolve_references",
]
