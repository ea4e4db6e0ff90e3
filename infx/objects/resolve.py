"""
Reference resolution for openBIS responses.

openBIS serialises its objects with Jackson object identity: the first
occurrence of an object in a response is written in full together with an
``"@id"`` field (its definition site), every later occurrence is written as
the bare id only. Subsetting such a response would leave bare ids without
their definitions, so every response is resolved once, before callers see
it, into a tree of self-contained copies.

Resolution works in two passes over one response:

1. Collect an id -> object table from all definition sites, together with
   the set of field names that are known to hold objects.
2. Rebuild the payload, replacing each bare reference with a deep copy of
   the (recursively resolved) definition.

References whose id is not defined in the response are reported as
:class:`~infx.errors.DanglingReference` and left as
:class:`~infx.objects.typed.Reference` markers.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Set, Union

from infx.errors import DanglingReference, MalformedObject
from infx.objects.typed import ID_KEY, Reference, TypedCollection, TypedObject
from infx.utils.logging import logger

# Field names that hold objects in openBIS v1 data transfer objects
DEFAULT_REFERENCE_FIELDS: FrozenSet[str] = frozenset({
    "tags",
    "registrator",
    "modifier",
    "type",
    "parents",
    "children",
    "containers",
    "properties",
    "experiment",
    "sample",
    "project",
    "space",
    "propertyType",
    "materialTypeIdentifier",
    "experimentPlateIdentifier",
    "plateGeometry",
    "wellPosition",
})

_ROOT = object()

IdType = Union[int, str]


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _stub_id(value: Any, id_key: str) -> Optional[IdType]:
    """Return the id of a ``{"@id": ...}`` stub mapping, else ``None``."""
    if isinstance(value, Mapping) and len(value) == 1 and id_key in value:
        ref = value[id_key]
        if _is_int(ref) or isinstance(ref, str):
            return ref
    return None


class ReferenceResolver:
    """
    Resolve bare references within one response.

    Attributes:
        id_key: Field carrying object identity.
        reference_fields: Field names always treated as object-carrying.
        strict: Raise on dangling references instead of logging them.

    Example:
        >>> resolver = ReferenceResolver()
        >>> resolved = resolver.resolve(coerce(response["result"]))
    """

    def __init__(
        self,
        id_key: str = ID_KEY,
        reference_fields: Iterable[str] = DEFAULT_REFERENCE_FIELDS,
        strict: bool = False,
    ):
        self.id_key = id_key
        self.reference_fields = frozenset(reference_fields)
        self.strict = strict

        self._table: Dict[IdType, TypedObject] = {}
        self._carriers: Set[str] = set()
        self._resolved: Dict[IdType, Any] = {}

    # =========================================================================
    # Collection pass
    # =========================================================================

    def _collect(self, value: Any, name: Any = _ROOT) -> None:
        if isinstance(value, Mapping):
            if isinstance(value, TypedObject) or _stub_id(value, self.id_key) is not None:
                if isinstance(name, str):
                    self._carriers.add(name)
            if isinstance(value, TypedObject) and self.id_key in value and len(value) > 1:
                ref = value[self.id_key]
                if not (_is_int(ref) or isinstance(ref, str)):
                    raise MalformedObject(
                        f"Object identity {self.id_key!r} must be an integer or string, got {ref!r}"
                    )
                if ref not in self._table:
                    self._table[ref] = value
                else:
                    logger.debug(f"Duplicate definition of id {ref!r} ignored")
            for key, child in value.items():
                self._collect(child, key)
        elif isinstance(value, list):
            for child in value:
                self._collect(child, name)
        elif isinstance(value, Reference) and isinstance(name, str):
            self._carriers.add(name)

    # =========================================================================
    # Resolution pass
    # =========================================================================

    def _reference_id(self, value: Any, name: Any) -> Optional[IdType]:
        """Return the referenced id if ``value`` is a bare reference in this position."""
        stub = _stub_id(value, self.id_key)
        if stub is not None:
            return stub
        if isinstance(value, Reference):
            return value.id
        carrier = isinstance(name, str) and name in self._carriers
        if _is_int(value):
            if carrier or (name is _ROOT and value in self._table):
                return value
        elif isinstance(value, str) and carrier and value in self._table:
            return value
        return None

    def _dereference(self, ref: IdType, name: Any, active: FrozenSet[IdType]) -> Any:
        if ref not in self._table:
            error = DanglingReference(ref, name if isinstance(name, str) else None)
            if self.strict:
                raise error
            logger.warning(str(error))
            return Reference(ref)

        if ref in active:
            logger.debug(f"Cyclic reference to id {ref!r} left unresolved")
            return Reference(ref)

        if ref not in self._resolved:
            self._resolved[ref] = self._walk(self._table[ref], _ROOT, active | {ref}, defining=True)
        return copy.deepcopy(self._resolved[ref])

    def _walk(self, value: Any, name: Any, active: FrozenSet[IdType], defining: bool = False) -> Any:
        if not defining:
            ref = self._reference_id(value, name)
            if ref is not None:
                return self._dereference(ref, name, active)

        if isinstance(value, TypedObject):
            ref = value.get(self.id_key)
            if not defining and (_is_int(ref) or isinstance(ref, str)):
                active = active | {ref}
            return TypedObject(
                {k: self._walk(v, k, active) for k, v in value.items()}, value.types
            )
        if isinstance(value, Mapping):
            return {k: self._walk(v, k, active) for k, v in value.items()}
        if isinstance(value, TypedCollection):
            return TypedCollection(self._walk(v, name, active) for v in value)
        if isinstance(value, list):
            return [self._walk(v, name, active) for v in value]
        return value

    def resolve(self, data: Any) -> Any:
        """
        Return a resolved copy of one response payload.

        Args:
            data: Coerced response (typed objects, lists, scalars).

        Returns:
            Payload with every resolvable bare reference replaced by its
            definition.
        """
        self._table = {}
        self._carriers = set(self.reference_fields)
        self._resolved = {}

        self._collect(data)
        logger.debug(f"Reference table holds {len(self._table)} definition(s)")
        return self._walk(data, _ROOT, frozenset())


def resolve_references(
    data: Any,
    id_key: str = ID_KEY,
    reference_fields: Iterable[str] = DEFAULT_REFERENCE_FIELDS,
    strict: bool = False,
) -> Any:
    """
    Resolve bare references within one response.

    Convenience wrapper around :class:`ReferenceResolver`.

    Example:
        >>> data = coerce([
        ...     {"@type": "Experiment", "@id": 7, "code": "A"},
        ...     {"@type": "DataSet", "experiment": 7},
        ... ])
        >>> resolve_references(data)[1]["experiment"]["code"]
        'A'
    """
    return ReferenceResolver(id_key, reference_fields, strict).resolve(data)
