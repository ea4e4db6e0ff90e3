"""
openBIS API endpoint URLs.

Each openBIS v1 service is exposed under its own JSON-RPC path. Short
names are used throughout the package to refer to them:

- ``gis``: general information service
- ``gics``: general information changing service
- ``qgs``: query service
- ``sas``: screening API service
- ``dsrs``: datastore server screening service (image references)
- ``dsfs``: datastore server generic service (files)
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional

from infx.errors import UnknownEndpoint
from infx.utils.config import get_config

API_ENDPOINTS: Dict[str, str] = {
    "gis": "openbis/openbis/rmi-general-information-v1.json",
    "gics": "openbis/openbis/rmi-general-information-changing-v1.json",
    "qgs": "openbis/openbis/rmi-query-v1.json",
    "sas": "openbis/openbis/rmi-screening-api-v1.json",
    "dsrs": "datastore_server/rmi-datastore-server-screening-api-v1.json",
    "dsfs": "datastore_server/rmi-dss-api-v1.json",
}


def api_url(
    endpoint: str = "gis",
    host_url: Optional[str] = None,
    full_url: Optional[str] = None,
    endpoints: Optional[Mapping[str, str]] = None,
    **kwargs,
) -> str:
    """
    Build the URL of an openBIS API endpoint.

    Args:
        endpoint: Short endpoint name (see module docstring).
        host_url: Server base URL. Defaults to the configured host.
        full_url: Literal URL; when given, the endpoint table is bypassed.
        endpoints: Extra name -> path entries, merged over the built-in and
            configured tables.
        **kwargs: Ignored, so request keyword arguments can be forwarded.

    Returns:
        Concrete endpoint URL.

    Raises:
        UnknownEndpoint: If ``endpoint`` is not a known name.

    Example:
        >>> api_url("sas", "https://openbis.example.org")
        'https://openbis.example.org/openbis/openbis/rmi-screening-api-v1.json'
    """
    if full_url is not None:
        return full_url

    server = get_config().server
    table = {**API_ENDPOINTS, **server.endpoints, **(endpoints or {})}

    if endpoint not in table:
        raise UnknownEndpoint(
            f"Unknown API endpoint '{endpoint}'. Options: {sorted(table)}"
        )

    host_url = (host_url or server.host_url).rstrip("/")
    return f"{host_url}/{table[endpoint]}"
