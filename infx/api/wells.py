"""
Plate wells.

Wells are listed either for plates (all wells of each plate) or for
materials (every well across plates that contains the material, optionally
restricted to one experiment and optionally with the associated datasets).
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Union

from infx.api.dispatch import Dispatcher
from infx.api.materials import MATERIAL_TAGS, as_screening_mat_id
from infx.api.plates import PLATE_TYPES, as_experiment_id, as_plate_id
from infx.api.session import token_url
from infx.objects.typed import TypedCollection, as_collection, combine, simplify, tag
from infx.rpc.batch import make_requests
from infx.rpc.transport import RequestFailure


def well_pos(
    row: Optional[Union[int, Sequence[int]]] = None,
    col: Optional[Union[int, Sequence[int]]] = None,
    name: Optional[Union[str, Sequence[str]]] = None,
) -> Any:
    """
    Build ``WellPosition`` objects.

    Args:
        row: 1-based row index/indices.
        col: 1-based column index/indices.
        name: Well name(s) such as ``"A2"``, used instead of row/col.

    Returns:
        ``WellPosition`` object(s).

    Example:
        >>> well_pos(name="A2")
        WellPosition({'wellRow': 1, 'wellColumn': 2})
    """
    if name is not None:
        names = [name] if isinstance(name, str) else list(name)
        rows, cols = [], []
        for n in names:
            if len(n) < 2 or not n[0].isalpha() or not n[1:].isdigit():
                raise ValueError(f"Invalid well name '{n}'")
            rows.append(ord(n[0].upper()) - ord("A") + 1)
            cols.append(int(n[1:]))
    elif row is not None and col is not None:
        rows = [row] if isinstance(row, int) else list(row)
        cols = [col] if isinstance(col, int) else list(col)
        if len(rows) != len(cols):
            raise ValueError(f"Got {len(rows)} row(s) but {len(cols)} column(s)")
    else:
        raise ValueError("Specify either name or both row and col")

    return simplify(TypedCollection(
        tag({"wellRow": r, "wellColumn": c}, "WellPosition") for r, c in zip(rows, cols)
    ))


def _merge(results: list) -> Any:
    return combine(*(r for r in results if not isinstance(r, RequestFailure)))


list_wells = Dispatcher(
    "list_wells",
    doc="""
    List wells.

    Dispatched on plates, ``WellIdentifier`` objects are returned. Dispatched
    on materials, ``PlateWellReferenceWithDatasets`` objects are returned,
    optionally limited to one experiment and including dataset references if
    ``include_datasets`` is set.
    """,
)


@list_wells.register(*PLATE_TYPES)
def _(token, x, **kwargs):
    plates = as_collection(as_plate_id(x))
    results = make_requests(
        token_url("sas", token, **kwargs),
        "listPlateWells",
        [[token, p] for p in plates],
        **kwargs,
    )
    return _merge(results)


@list_wells.register(*MATERIAL_TAGS)
def _(token, x, experiment: Any = None, include_datasets: bool = False, **kwargs):
    materials = as_collection(as_screening_mat_id(x))

    if experiment is None:
        params = [[token, m, include_datasets] for m in materials]
    else:
        exp_id = as_experiment_id(experiment)
        params = [[token, exp_id, m, include_datasets] for m in materials]

    results = make_requests(
        token_url("sas", token, **kwargs),
        "listPlateWells",
        params,
        **kwargs,
    )
    return _merge(results)
