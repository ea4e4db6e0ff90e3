"""
infx: a client for the openBIS v1 JSON-RPC API of high-throughput screening
data.

This package provides tools for:
- Decoding typed openBIS objects and resolving their ``@id`` references
- Issuing JSON-RPC request batches, serially or with bounded concurrency
- Logging in and listing plates, wells, datasets and materials
"""

__version__ = "0.1.0"

from infx.api import (
    dataset_code,
    list_dataset_types,
    list_datasets,
    list_material,
    list_plates,
    list_references,
    list_wells,
    login_openbis,
    logout_openbis,
    material_id,
    openbis_session,
)
from infx.errors import (
    AuthenticationError,
    DanglingReference,
    InfxError,
    MalformedObject,
    RpcError,
    TransportError,
    TypeMismatch,
    UnknownEndpoint,
)
from infx.objects import (
    Reference,
    TypedCollection,
    TypedObject,
    as_dataframe,
    get_field,
    has_type,
    resolve_references,
)
from infx.rpc import RequestFailure, api_url, make_request, make_requests
from infx.utils.config import InfxConfig, get_config, load_config, set_config
from infx.utils.logging import logger, setup_logging

__all__ = [
    # Objects
    "TypedObject",
    "TypedCollection",
    "Reference",
    "get_field",
    "has_type",
    "as_dataframe",
    "resolve_references",
    # Requests
    "api_url",
    "make_request",
    "make_requests",
    "RequestFailure",
    # API
    "login_openbis",
    "logout_openbis",
    "openbis_session",
    "list_plates",
    "list_wells",
    "list_datasets",
    "list_dataset_types",
    "dataset_code",
    "list_references",
    "list_material",
    "material_id",
    # Errors
    "InfxError",
    "TransportError",
    "RpcError",
    "MalformedObject",
    "TypeMismatch",
    "DanglingReference",
    "UnknownEndpoint",
    "AuthenticationError",
    # Config
    "InfxConfig",
    "load_config",
    "get_config",
    "set_config",
    # Logging
    "logger",
    "setup_logging",
    # Version
    "__version__",
]
