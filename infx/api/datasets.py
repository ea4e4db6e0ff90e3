"""
Datasets and dataset references.

Datasets are listed for samples (plates), experiments or dataset codes. The
screening API additionally exposes dataset *references*: typed pointers to
image, segmentation and feature datasets of a plate, and to the images of a
single dataset on the datastore server.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Union

from infx.api.dispatch import Dispatcher
from infx.api.materials import MATERIAL_TAGS
from infx.api.plates import PLATE_TYPES, as_plate_id
from infx.api.session import token_url
from infx.api.wells import list_wells
from infx.objects.typed import as_collection, combine, get_field
from infx.rpc.batch import make_request, make_requests
from infx.rpc.transport import RequestFailure

FETCH_OPTIONS = {
    "children": ["CHILDREN"],
    "parents": ["PARENTS"],
    "all": ["CHILDREN", "PARENTS"],
}

REFERENCE_METHODS = {
    "raw": "listRawImageDatasets",
    "segmentation": "listSegmentationImageDatasets",
    "feature": "listFeatureVectorDatasets",
}

DATASET_REFERENCE_TYPES = (
    "DatasetIdentifier",
    "DatasetReference",
    "FeatureVectorDatasetReference",
    "FeatureVectorDatasetWellReference",
    "ImageDatasetReference",
    "MicroscopyImageReference",
    "PlateImageReference",
)


def resolve_fetch_opts(include: Optional[str] = None) -> List[str]:
    """
    Map an ``include`` flag to openBIS dataset fetch options.

    Args:
        include: ``None``, ``"children"``, ``"parents"`` or ``"all"``.

    Returns:
        List of fetch option names (empty for ``None``).
    """
    if include is None:
        return []
    try:
        return list(FETCH_OPTIONS[include])
    except KeyError:
        raise ValueError(
            f"Unknown include option '{include}'. Options: {[None, *FETCH_OPTIONS]}"
        ) from None


def _merge(results: list) -> Any:
    return combine(*(r for r in results if not isinstance(r, RequestFailure)))


def _pairs(requested: Sequence[Any], results: list) -> List[tuple]:
    return [(x, r) for x, r in zip(requested, results) if not isinstance(r, RequestFailure)]


# =============================================================================
# Datasets
# =============================================================================

list_datasets = Dispatcher(
    "list_datasets",
    doc="""
    List datasets.

    Datasets can be listed for ``Sample`` objects, ``Experiment`` objects or
    dataset codes. ``include`` (``"children"``, ``"parents"`` or ``"all"``)
    asks the server to also fetch connected datasets.
    """,
)


@list_datasets.register("Sample")
def _(token, x, include: Optional[str] = None, **kwargs):
    url = token_url("gis", token, **kwargs)
    samples = list(as_collection(x))
    opts = resolve_fetch_opts(include)

    if opts:
        return make_request(url, "listDataSets", [token, samples, opts], **kwargs)
    if len(samples) == 1:
        return make_request(url, "listDataSetsForSample", [token, samples[0], True], **kwargs)
    return make_request(url, "listDataSets", [token, samples], **kwargs)


@list_datasets.register("Experiment")
def _(token, x, include: Optional[str] = None, **kwargs):
    return make_request(
        token_url("gis", token, **kwargs),
        "listDataSetsForExperiments",
        [token, list(as_collection(x)), resolve_fetch_opts(include)],
        **kwargs,
    )


@list_datasets.register("str")
def _(token, x, include: Optional[str] = None, **kwargs):
    codes = [x] if isinstance(x, str) else list(x)
    opts = resolve_fetch_opts(include)
    url = token_url("gis", token, **kwargs)

    # the two-argument form returns children and parents as well
    if include == "all":
        return make_request(url, "getDataSetMetaData", [token, codes], **kwargs)
    return make_request(url, "getDataSetMetaData", [token, codes, opts], **kwargs)


dataset_code = Dispatcher(
    "dataset_code",
    arg=0,
    doc="Extract dataset codes from dataset objects and references.",
)


@dataset_code.register("DataSet")
def _(x):
    return get_field(x, "code")


@dataset_code.register(*DATASET_REFERENCE_TYPES)
def _(x):
    return get_field(x, "datasetCode")


@dataset_code.register("DataSetFileDTO")
def _(x):
    return get_field(x, "dataSetCode")


list_dataset_ids = Dispatcher(
    "list_dataset_ids",
    doc="""
    List ``DatasetIdentifier`` objects for dataset codes or DataSet objects.
    """,
)


@list_dataset_ids.register("str")
def _(token, x, **kwargs):
    codes = [x] if isinstance(x, str) else list(x)
    return make_request(
        token_url("sas", token, **kwargs), "getDatasetIdentifiers", [token, codes], **kwargs
    )


@list_dataset_ids.register("DataSet")
def _(token, x, **kwargs):
    codes = dataset_code(x)
    return list_dataset_ids(token, [codes] if isinstance(codes, str) else codes, **kwargs)


def list_dataset_types(token: Any, **kwargs) -> Any:
    """List all dataset types known to the server."""
    return make_request(token_url("gis", token, **kwargs), "listDataSetTypes", [token], **kwargs)


# =============================================================================
# References
# =============================================================================

def list_image_references(
    token: Any,
    x: Any,
    channels: Union[str, Sequence[str]],
    wells: Any = None,
    grouped: bool = False,
    **kwargs,
) -> Any:
    """
    List image references of datasets on the datastore server.

    One request is issued per dataset, all in one batch.

    Args:
        token: Session token.
        x: Dataset identifier or reference object(s).
        channels: Imaging channel name(s).
        wells: Optional ``WellPosition`` object(s) to restrict the listing
            to (``listPlateImageReferences``).
        grouped: Return one ``(dataset, references)`` pair per dataset
            instead of a single combined result.
        **kwargs: Passed to the request functions.

    Returns:
        ``PlateImageReference`` or ``MicroscopyImageReference`` object(s).
        Datasets whose request failed are left out.
    """
    datasets = as_collection(x)
    channels = channels if isinstance(channels, str) else list(channels)

    if wells is None:
        method = "listImageReferences"
        params = [[token, ds, channels] for ds in datasets]
    else:
        method = "listPlateImageReferences"
        wells = list(as_collection(wells))
        params = [[token, ds, wells, channels] for ds in datasets]

    results = make_requests(token_url("dsrs", token, **kwargs), method, params, **kwargs)
    if grouped:
        return _pairs(datasets, results)
    return _merge(results)


list_references = Dispatcher(
    "list_references",
    doc="""
    List dataset references.

    Dispatched on plates, ``kind`` selects raw image (``"raw"``),
    segmentation image (``"segmentation"``) or feature vector
    (``"feature"``) dataset references. Dispatched on materials, the wells
    containing the material are listed together with their datasets.
    Dispatched on datasets and dataset references, image references are
    listed (see :func:`list_image_references`).
    """,
)


@list_references.register(*PLATE_TYPES)
def _(token, x, kind: str = "raw", **kwargs):
    if kind not in REFERENCE_METHODS:
        raise ValueError(f"Unknown reference kind '{kind}'. Options: {list(REFERENCE_METHODS)}")
    return make_request(
        token_url("sas", token, **kwargs),
        REFERENCE_METHODS[kind],
        [token, list(as_collection(as_plate_id(x)))],
        **kwargs,
    )


@list_references.register(*MATERIAL_TAGS)
def _(token, x, experiment: Any = None, **kwargs):
    return list_wells(token, x, experiment=experiment, include_datasets=True, **kwargs)


@list_references.register(*DATASET_REFERENCE_TYPES)
def _(token, x, **kwargs):
    return list_image_references(token, x, **kwargs)


@list_references.register("DataSet")
def _(token, x, **kwargs):
    return list_image_references(token, list_dataset_ids(token, x, **_without_image_options(kwargs)), **kwargs)


def _without_image_options(kwargs: dict) -> dict:
    # options of list_image_references are not understood by list_dataset_ids
    return {k: v for k, v in kwargs.items() if k not in ("wells", "channels", "grouped")}
