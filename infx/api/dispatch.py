"""
Dispatch on openBIS type tags.

Many listing functions accept several kinds of objects (a plate can be
given as ``Plate``, ``PlateIdentifier``, ``PlateMetadata`` or ``Sample``) and
need different API calls for each. A :class:`Dispatcher` keeps one table
from type tag to implementation and picks the implementation from the most
specific tag of the dispatch argument.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from infx.objects.typed import TypedObject, as_collection

STR_TAG = "str"


def dispatch_tags(x: Any) -> Tuple[str, ...]:
    """
    Return the tags to try, most specific first.

    Strings (and lists of strings) dispatch on ``"str"``; objects on their
    own tags; collections on the tags of their members.
    """
    if isinstance(x, str):
        return (STR_TAG,)
    if isinstance(x, TypedObject):
        return x.types
    if isinstance(x, (list, tuple)) and x:
        if all(isinstance(v, str) for v in x):
            return (STR_TAG,)
        if all(isinstance(v, Mapping) for v in x):
            return as_collection(x)[0].types
    return ()


class Dispatcher:
    """
    A generic function keyed by type tag.

    Example:
        >>> dataset_code = Dispatcher("dataset_code", arg=0)
        >>> @dataset_code.register("DataSet")
        ... def _(x):
        ...     return get_field(x, "code")
    """

    def __init__(self, name: str, arg: int = 1, doc: Optional[str] = None):
        self.__name__ = name
        self.__doc__ = doc
        self.arg = arg
        self._table: Dict[str, Callable[..., Any]] = {}

    def register(self, *tags: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register an implementation for one or more type tags."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            for t in tags:
                self._table[t] = func
            return func

        return decorator

    @property
    def registered(self) -> Tuple[str, ...]:
        return tuple(sorted(self._table))

    def resolve(self, x: Any) -> Callable[..., Any]:
        """Return the implementation for ``x``."""
        tags = dispatch_tags(x)
        for t in tags:
            if t in self._table:
                return self._table[t]
        raise TypeError(
            f"{self.__name__}() is not implemented for {tags or type(x).__name__}; "
            f"supported: {list(self.registered)}"
        )

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        if len(args) <= self.arg:
            raise TypeError(f"{self.__name__}() missing dispatch argument at position {self.arg}")
        return self.resolve(args[self.arg])(*args, **kwargs)

    def __repr__(self) -> str:
        return f"Dispatcher({self.__name__!r}, tags={list(self.registered)})"
