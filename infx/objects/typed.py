"""
Typed JSON objects returned by openBIS.

openBIS serialises its data transfer objects as JSON mappings carrying a
``"@type"`` discriminator. This module turns such mappings into
:class:`TypedObject` instances (a ``dict`` with an ordered tuple of type
tags) and groups them into homogeneous :class:`TypedCollection` lists.

Throughout the package a collection holding exactly one object and the bare
object are treated as interchangeable: listing functions return the object
itself when there is a single result (see :func:`simplify`).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

import pandas as pd

from infx.errors import MalformedObject, TypeMismatch

TYPE_KEY = "@type"
ID_KEY = "@id"


# =============================================================================
# Reference marker
# =============================================================================

@dataclass(frozen=True)
class Reference:
    """Opaque stand-in for a bare reference that could not be resolved."""

    id: Union[int, str]

    def __repr__(self) -> str:
        return f"Reference({self.id!r})"


# =============================================================================
# Typed object
# =============================================================================

def _normalise_types(types: Union[str, Sequence[str]]) -> tuple[str, ...]:
    if isinstance(types, str):
        types = (types,)
    types = tuple(types)
    for name in types:
        if not isinstance(name, str) or not name:
            raise TypeError(f"Type tags must be non-empty strings, got {name!r}")
    return types


class TypedObject(dict):
    """
    A JSON object tagged with one or more type names.

    Tags are ordered from most to least specific. Fields can be removed but
    not assigned after construction.

    Example:
        >>> obj = TypedObject({"code": "KB2-03-1I"}, types="Sample")
        >>> obj.type_name
        'Sample'
        >>> obj["code"]
        'KB2-03-1I'
    """

    __slots__ = ("_types",)

    def __init__(
        self,
        fields: Optional[Mapping[str, Any]] = None,
        types: Union[str, Sequence[str]] = (),
    ):
        super().__init__(fields or {})
        self._types = _normalise_types(types)

    @property
    def types(self) -> tuple[str, ...]:
        return self._types

    @property
    def type_name(self) -> Optional[str]:
        """Most specific type tag."""
        return self._types[0] if self._types else None

    def _readonly(self, *args, **kwargs):
        raise TypeError(f"{type(self).__name__} fields cannot be assigned")

    __setitem__ = _readonly
    setdefault = _readonly
    update = _readonly
    __ior__ = _readonly

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, TypedObject):
            return self._types == other._types and dict.__eq__(self, other)
        return dict.__eq__(self, other)

    def __ne__(self, other: Any) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None  # type: ignore[assignment]

    def __reduce__(self):
        return (type(self), (dict(self), self._types))

    def __copy__(self) -> "TypedObject":
        return type(self)(dict(self), self._types)

    def copy(self) -> "TypedObject":
        return self.__copy__()

    def __repr__(self) -> str:
        return f"{self.type_name or 'TypedObject'}({dict.__repr__(self)})"


def _check_members(items: Sequence[Any]) -> None:
    first: Optional[str] = None
    for i, item in enumerate(items):
        if not isinstance(item, TypedObject):
            raise TypeMismatch(
                f"Collection members must be TypedObject, got {type(item).__name__} at {i}"
            )
        if i == 0:
            first = item.type_name
        elif item.type_name != first:
            raise TypeMismatch(
                f"Cannot combine '{item.type_name}' with collection of '{first}'"
            )


class TypedCollection(list):
    """
    An ordered list of TypedObjects sharing the same most specific type.

    The homogeneity invariant is enforced whenever members are added.
    """

    def __init__(self, iterable: Iterable[TypedObject] = ()):
        items = list(iterable)
        _check_members(items)
        super().__init__(items)

    @property
    def type_name(self) -> Optional[str]:
        return self[0].type_name if self else None

    def append(self, obj: TypedObject) -> None:
        _check_members(list(self[:1]) + [obj])
        super().append(obj)

    def insert(self, index: int, obj: TypedObject) -> None:
        _check_members(list(self[:1]) + [obj])
        super().insert(index, obj)

    def extend(self, objs: Iterable[TypedObject]) -> None:
        objs = list(objs)
        _check_members(list(self[:1]) + objs)
        super().extend(objs)

    def __setitem__(self, index, value) -> None:
        candidate = list(self)
        if isinstance(index, slice):
            value = list(value)
        candidate[index] = value
        _check_members(candidate)
        super().__setitem__(index, value)

    def __getitem__(self, index):
        result = super().__getitem__(index)
        if isinstance(index, slice):
            return TypedCollection(result)
        return result

    def __add__(self, other: Iterable[TypedObject]) -> "TypedCollection":
        return TypedCollection(list(self) + list(other))

    def __iadd__(self, other: Iterable[TypedObject]) -> "TypedCollection":
        self.extend(other)
        return self

    def copy(self) -> "TypedCollection":
        return TypedCollection(self)

    def __repr__(self) -> str:
        return f"TypedCollection<{self.type_name}>({list.__repr__(self)})"


# =============================================================================
# Construction
# =============================================================================

def tag(obj: Mapping[str, Any], types: Union[str, Sequence[str]]) -> TypedObject:
    """
    Attach type tags to a mapping.

    Args:
        obj: Field mapping.
        types: A type name or an ordered sequence of names, most specific first.

    Returns:
        A new TypedObject.
    """
    return TypedObject(dict(obj), types)


def coerce(raw: Any, type_key: str = TYPE_KEY) -> Any:
    """
    Convert freshly decoded JSON into typed objects.

    Every mapping carrying ``type_key`` becomes a TypedObject tagged with the
    discriminator value, which is removed from the fields. Untyped mappings and
    lists are walked recursively.

    Raises:
        MalformedObject: If a discriminator is not a non-empty string.
    """
    if isinstance(raw, Mapping):
        fields = {k: coerce(v, type_key) for k, v in raw.items() if k != type_key}
        if type_key in raw:
            type_name = raw[type_key]
            if not isinstance(type_name, str) or not type_name:
                raise MalformedObject(
                    f"Discriminator '{type_key}' must be a non-empty string, got {type_name!r}"
                )
            return TypedObject(fields, type_name)
        if isinstance(raw, TypedObject):
            return TypedObject(fields, raw.types)
        return fields
    if isinstance(raw, TypedCollection):
        return TypedCollection(coerce(v, type_key) for v in raw)
    if isinstance(raw, list):
        return [coerce(v, type_key) for v in raw]
    return raw


def prune_nulls(x: Any) -> Any:
    """
    Recursively drop mapping fields whose value is ``None``.

    List elements are kept in place, including ``None`` holes.
    """
    if isinstance(x, TypedObject):
        return TypedObject(
            {k: prune_nulls(v) for k, v in x.items() if v is not None}, x.types
        )
    if isinstance(x, Mapping):
        return {k: prune_nulls(v) for k, v in x.items() if v is not None}
    if isinstance(x, TypedCollection):
        return TypedCollection(prune_nulls(v) for v in x)
    if isinstance(x, list):
        return [prune_nulls(v) for v in x]
    return x


def collect(*objs: Union[TypedObject, Iterable[TypedObject]]) -> TypedCollection:
    """
    Build a TypedCollection from objects and/or collections.

    Raises:
        TypeMismatch: If the most specific tags of the members disagree.
    """
    items: list[TypedObject] = []
    for obj in objs:
        if isinstance(obj, Mapping):
            items.append(obj)
        else:
            items.extend(obj)
    return TypedCollection(items)


def as_collection(x: Any) -> TypedCollection:
    """Wrap a single object into a collection; collections pass through."""
    if isinstance(x, TypedCollection):
        return x
    if x is None:
        return TypedCollection()
    if isinstance(x, Mapping):
        return TypedCollection([x])
    return TypedCollection(x)


def simplify(x: Any) -> Any:
    """Unwrap a collection of length one into its single member."""
    if isinstance(x, TypedCollection) and len(x) == 1:
        return x[0]
    return x


def combine(*values: Any) -> Any:
    """
    Concatenate objects and collections, then simplify.

    ``None`` values are skipped, so results of several requests can be merged
    without special-casing empty responses.
    """
    items: list[TypedObject] = []
    for value in values:
        if value is None:
            continue
        if isinstance(value, Mapping):
            items.append(value)
        else:
            items.extend(value)
    return simplify(TypedCollection(items))


# =============================================================================
# Access
# =============================================================================

def get_field(x: Any, name: str) -> Any:
    """
    Project a field from an object or from every member of a collection.

    Missing fields yield ``None`` at their position. If every projected value
    is a TypedObject of one type, a TypedCollection is returned.

    Example:
        >>> codes = get_field(datasets, "code")
        >>> types = get_field(get_field(mats, "materialTypeIdentifier"), "materialTypeCode")
    """
    if isinstance(x, Mapping):
        return x.get(name)
    if isinstance(x, (list, tuple)):
        values = [v.get(name) if isinstance(v, Mapping) else None for v in x]
        if values and all(isinstance(v, TypedObject) for v in values):
            if len({v.type_name for v in values}) == 1:
                return TypedCollection(values)
        return values
    raise TypeError(f"Cannot project field '{name}' from {type(x).__name__}")


def has_type(x: Any, *names: str) -> bool:
    """Check whether an object, or every member of a collection, carries any of ``names``."""
    if isinstance(x, TypedObject):
        return any(n in x.types for n in names)
    if isinstance(x, (list, tuple)) and x:
        return all(has_type(v, *names) for v in x)
    return False


def to_json(x: Any, type_key: str = TYPE_KEY) -> Any:
    """
    Convert typed objects back into plain JSON-compatible values.

    The most specific tag is written as the discriminator; unresolved
    :class:`Reference` markers become their bare id.
    """
    if isinstance(x, TypedObject):
        out: dict[str, Any] = {}
        if x.type_name is not None:
            out[type_key] = x.type_name
        out.update({k: to_json(v, type_key) for k, v in x.items()})
        return out
    if isinstance(x, Mapping):
        return {k: to_json(v, type_key) for k, v in x.items()}
    if isinstance(x, (list, tuple)):
        return [to_json(v, type_key) for v in x]
    if isinstance(x, Reference):
        return x.id
    if isinstance(x, str):
        return str(x)
    return x


def as_dataframe(x: Any, fields: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    Tabulate typed objects, one row per object.

    Args:
        x: A TypedObject or a collection of them.
        fields: Columns to extract. Defaults to every scalar field.

    Returns:
        DataFrame with one row per object.
    """
    objs = as_collection(x)
    if fields is None:
        rows = [
            {k: v for k, v in obj.items() if not isinstance(v, (Mapping, list))}
            for obj in objs
        ]
        return pd.DataFrame(rows)
    return pd.DataFrame([{f: obj.get(f) for f in fields} for obj in objs], columns=list(fields))
