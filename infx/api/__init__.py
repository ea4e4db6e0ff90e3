"""
openBIS listing functions.

Thin wrappers around :func:`infx.rpc.make_request` that build the parameter
lists of the openBIS v1 API calls, dispatching on the type tags of their
arguments.
"""

from infx.api.datasets import (
    dataset_code,
    list_dataset_ids,
    list_dataset_types,
    list_datasets,
    list_image_references,
    list_references,
    resolve_fetch_opts,
)
from infx.api.dispatch import Dispatcher, dispatch_tags
from infx.api.materials import (
    as_generic_mat_id,
    as_screening_mat_id,
    extract_well_material,
    list_material,
    list_material_types,
    material_id,
)
from infx.api.plates import as_experiment_id, as_plate_id, list_plates
from infx.api.session import (
    Token,
    is_token_valid,
    login_openbis,
    logout_openbis,
    openbis_session,
)
from infx.api.wells import list_wells, well_pos

__all__ = [
    # Session
    "Token",
    "login_openbis",
    "logout_openbis",
    "is_token_valid",
    "openbis_session",
    # Dispatch
    "Dispatcher",
    "dispatch_tags",
    # Plates and wells
    "as_plate_id",
    "as_experiment_id",
    "list_plates",
    "list_wells",
    "well_pos",
    # Datasets
    "list_datasets",
    "list_dataset_ids",
    "list_dataset_types",
    "dataset_code",
    "resolve_fetch_opts",
    "list_references",
    "list_image_references",
    # Materials
    "material_id",
    "list_material_types",
    "as_screening_mat_id",
    "as_generic_mat_id",
    "list_material",
    "extract_well_material",
]
