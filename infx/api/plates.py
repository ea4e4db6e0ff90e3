"""
Plate and experiment identifiers.

The screening API addresses plates by ``PlateIdentifier`` and experiments by
``ExperimentIdentifier`` objects. The helpers here build them from the
richer objects returned by listing and search calls, without an API call.
"""

from __future__ import annotations

from typing import Any, Optional

from infx.api.dispatch import Dispatcher
from infx.api.session import token_url
from infx.objects.typed import TypedCollection, as_collection, prune_nulls, simplify, tag
from infx.rpc.batch import make_request

PLATE_TYPES = ("PlateIdentifier", "Plate", "PlateMetadata", "Sample")


def _split_identifier(identifier: str, n_parts: int) -> list[str]:
    parts = [p for p in identifier.split("/") if p]
    if len(parts) != n_parts:
        raise ValueError(f"Cannot parse identifier '{identifier}'")
    return parts


def _plate_id(code: str, space: Optional[str], perm_id: Optional[str]):
    return tag(
        prune_nulls({"plateCode": code, "spaceCodeOrNull": space, "permId": perm_id}),
        "PlateIdentifier",
    )


as_plate_id = Dispatcher(
    "as_plate_id",
    arg=0,
    doc="Convert plate-like objects to PlateIdentifier objects.",
)


@as_plate_id.register("PlateIdentifier")
def _(x, **kwargs):
    return simplify(as_collection(x))


@as_plate_id.register("Plate", "PlateMetadata")
def _(x, **kwargs):
    return simplify(TypedCollection(
        _plate_id(p["plateCode"], p.get("spaceCodeOrNull"), p.get("permId"))
        for p in as_collection(x)
    ))


@as_plate_id.register("Sample")
def _(x, **kwargs):
    ids = []
    for sample in as_collection(x):
        space, code = _split_identifier(sample["identifier"], 2)
        ids.append(_plate_id(code, space, sample.get("permId")))
    return simplify(TypedCollection(ids))


as_experiment_id = Dispatcher(
    "as_experiment_id",
    arg=0,
    doc="Convert Experiment objects to ExperimentIdentifier objects.",
)


@as_experiment_id.register("ExperimentIdentifier")
def _(x, **kwargs):
    return simplify(as_collection(x))


@as_experiment_id.register("Experiment")
def _(x, **kwargs):
    ids = []
    for exp in as_collection(x):
        space, project, code = _split_identifier(exp["identifier"], 3)
        ids.append(tag(
            prune_nulls({
                "spaceCode": space,
                "projectCode": project,
                "experimentCode": code,
                "permId": exp.get("permId"),
            }),
            "ExperimentIdentifier",
        ))
    return simplify(TypedCollection(ids))


def list_plates(token: Any, experiment: Any = None, **kwargs) -> Any:
    """
    List plates, optionally limited to an experiment.

    Args:
        token: Session token.
        experiment: ``Experiment`` or ``ExperimentIdentifier`` object.
        **kwargs: Passed to the request functions.

    Returns:
        ``Plate`` object(s).
    """
    url = token_url("sas", token, **kwargs)
    if experiment is None:
        return make_request(url, "listPlates", [token], **kwargs)
    return make_request(url, "listPlates", [token, as_experiment_id(experiment)], **kwargs)
