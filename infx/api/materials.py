"""
Materials: compounds, oligos and targeted genes.

Three object types identify a material in openBIS: ``MaterialGeneric`` (as
returned by listing calls), ``MaterialIdentifierGeneric`` and
``MaterialIdentifierScreening``. Identifier objects are built locally from a
material code and a material type (:func:`material_id`); converting between
the kinds does not incur an API call.

Generic material types are compound, control, esirna, gene, mirna,
mirna_inhibitor, mirna_mimic, pooled_sirna and sirna. Screening material
types are compound, gene and oligo.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence, Tuple, Union

from infx.api.dispatch import Dispatcher
from infx.api.plates import PLATE_TYPES, as_plate_id
from infx.api.session import token_url
from infx.objects.typed import (
    TypedCollection,
    as_collection,
    combine,
    get_field,
    has_type,
    simplify,
    tag,
)
from infx.rpc.batch import make_request, make_requests
from infx.rpc.transport import RequestFailure

MATERIAL_TYPES: Dict[str, Tuple[str, ...]] = {
    "generic": (
        "compound",
        "control",
        "esirna",
        "gene",
        "mirna",
        "mirna_inhibitor",
        "mirna_mimic",
        "pooled_sirna",
        "sirna",
    ),
    "screening": ("compound", "gene", "oligo"),
}

MATERIAL_ID_CLASSES = {
    "generic": "MaterialIdentifierGeneric",
    "screening": "MaterialIdentifierScreening",
}

MATERIAL_TYPE_CLASSES = {
    "generic": "MaterialTypeIdentifierGeneric",
    "screening": "MaterialTypeIdentifierScreening",
}

MATERIAL_TAGS = (
    "MaterialGeneric",
    "MaterialScreening",
    "MaterialIdentifierGeneric",
    "MaterialIdentifierScreening",
)


def _check_mode(mode: str) -> str:
    if mode not in MATERIAL_TYPES:
        raise ValueError(f"Unknown material mode '{mode}'. Options: {list(MATERIAL_TYPES)}")
    return mode


def list_material_types(
    mode: str = "screening",
    types: Optional[Union[str, Sequence[str]]] = None,
) -> Any:
    """
    Material type identifier objects.

    Args:
        mode: ``"screening"`` or ``"generic"``.
        types: Type name(s) to return; all types of the mode if ``None``.

    Returns:
        ``MaterialTypeIdentifierScreening`` or
        ``MaterialTypeIdentifierGeneric`` object(s).
    """
    mode = _check_mode(mode)
    available = MATERIAL_TYPES[mode]

    if types is None:
        types = available
    elif isinstance(types, str):
        types = [types]

    unknown = [t for t in types if t.lower() not in available]
    if unknown:
        raise ValueError(f"Unknown {mode} material type(s): {unknown}")

    return simplify(TypedCollection(
        tag({"materialTypeCode": t.upper()}, MATERIAL_TYPE_CLASSES[mode]) for t in types
    ))


def material_id(
    code: Union[str, int, Sequence[Union[str, int]]],
    mat_type: Union[str, Sequence[str]] = "gene",
    mode: str = "screening",
) -> Any:
    """
    Build material identifier objects.

    Args:
        code: Material code(s), e.g. an Entrez gene id or a compound name.
        mat_type: Material type, either one for all codes or one per code.
        mode: ``"screening"`` or ``"generic"``.

    Returns:
        ``MaterialIdentifierScreening`` or ``MaterialIdentifierGeneric``
        object(s).

    Example:
        >>> material_id(2475)  # MTOR
        MaterialIdentifierScreening({...})
    """
    mode = _check_mode(mode)
    codes = [code] if isinstance(code, (str, int)) else list(code)
    types = [mat_type] * len(codes) if isinstance(mat_type, str) else list(mat_type)

    if len(types) != len(codes):
        raise ValueError(f"Got {len(codes)} material code(s) but {len(types)} type(s)")

    return simplify(TypedCollection(
        tag(
            {
                "materialTypeIdentifier": list_material_types(mode, t),
                "materialCode": str(c),
            },
            MATERIAL_ID_CLASSES[mode],
        )
        for c, t in zip(codes, types)
    ))


def _convert_material_ids(x: Any, mode: str) -> Any:
    x = as_collection(x)
    codes = get_field(x, "materialCode")
    types = get_field(get_field(x, "materialTypeIdentifier"), "materialTypeCode")
    return material_id(codes, [t.lower() for t in types], mode)


as_screening_mat_id = Dispatcher(
    "as_screening_mat_id",
    arg=0,
    doc="Convert material objects to MaterialIdentifierScreening objects.",
)


@as_screening_mat_id.register("MaterialIdentifierScreening")
def _(x, **kwargs):
    return simplify(as_collection(x))


@as_screening_mat_id.register("MaterialGeneric", "MaterialScreening", "MaterialIdentifierGeneric")
def _(x, **kwargs):
    return _convert_material_ids(x, "screening")


as_generic_mat_id = Dispatcher(
    "as_generic_mat_id",
    arg=0,
    doc="Convert material objects to MaterialIdentifierGeneric objects.",
)


@as_generic_mat_id.register("MaterialIdentifierGeneric")
def _(x, **kwargs):
    return simplify(as_collection(x))


@as_generic_mat_id.register("MaterialGeneric", "MaterialScreening", "MaterialIdentifierScreening")
def _(x, **kwargs):
    return _convert_material_ids(x, "generic")


# =============================================================================
# Listing
# =============================================================================

list_material = Dispatcher(
    "list_material",
    doc="""
    List materials.

    Dispatched on material identifiers, ``MaterialGeneric`` objects are
    returned (``getMaterialByCodes``). Dispatched on plates,
    ``PlateWellMaterialMapping`` objects are returned
    (``listPlateMaterialMapping``), one request per material type.
    With ``grouped=True`` the plate listing returns one
    ``(material_type, mappings)`` pair per material type.
    """,
)


@list_material.register("MaterialIdentifierGeneric")
def _(token, x, **kwargs):
    return make_request(
        token_url("gis", token, **kwargs),
        "getMaterialByCodes",
        [token, list(as_collection(x))],
        **kwargs,
    )


@list_material.register("MaterialIdentifierScreening")
def _(token, x, **kwargs):
    return list_material(token, as_generic_mat_id(x), **kwargs)


@list_material.register(*PLATE_TYPES)
def _(token, x, material_type: Any = None, grouped: bool = False, **kwargs):
    plates = list(as_collection(as_plate_id(x)))

    if material_type is None:
        material_types = [None]
    else:
        if not has_type(material_type, "MaterialTypeIdentifierScreening"):
            raise TypeError("material_type must be MaterialTypeIdentifierScreening object(s)")
        material_types = list(as_collection(material_type))

    results = make_requests(
        token_url("sas", token, **kwargs),
        "listPlateMaterialMapping",
        [[token, plates, t] for t in material_types],
        **kwargs,
    )
    if grouped:
        return [
            (t, r) for t, r in zip(material_types, results) if not isinstance(r, RequestFailure)
        ]
    return combine(*(r for r in results if not isinstance(r, RequestFailure)))


def extract_well_material(x: Any, row: Union[str, int], col: int) -> Any:
    """
    Select the material of one well from a plate material mapping.

    Args:
        x: A single ``PlateWellMaterialMapping`` object.
        row: Plate row, as a letter or a 1-based number.
        col: 1-based plate column.

    Returns:
        The material entry of the well, or ``None`` for an empty well.
    """
    if not has_type(x, "PlateWellMaterialMapping") or isinstance(x, list):
        raise TypeError("Expecting a single PlateWellMaterialMapping object")

    if isinstance(row, str):
        if len(row) != 1 or not row.isalpha():
            raise ValueError(f"Invalid plate row '{row}'")
        row = ord(row.upper()) - ord("A") + 1

    geometry = x["plateGeometry"]
    width, height = geometry["width"], geometry["height"]

    if not 1 <= row <= height:
        raise ValueError(f"Row {row} outside plate of height {height}")
    if not 1 <= col <= width:
        raise ValueError(f"Column {col} outside plate of width {width}")

    return x["mapping"][(row - 1) * width + col - 1]
