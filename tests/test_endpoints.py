"""
Unit tests for endpoint URL resolution.
"""

import pytest

from infx.errors import UnknownEndpoint
from infx.rpc.endpoints import API_ENDPOINTS, api_url
from infx.utils.config import InfxConfig, ServerConfig, set_config

HOST = "https://openbis.test"


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def custom_server():
    """Activate a config with an extra endpoint, restoring the previous one."""
    previous = set_config(InfxConfig(
        server=ServerConfig(host_url="https://configured.test", endpoints={"v3": "openbis/openbis/rmi-application-server-v3.json"}),
    ))
    yield
    set_config(previous)


# =============================================================================
# Test api_url
# =============================================================================

class TestApiUrl:
    """Tests for api_url."""

    @pytest.mark.parametrize("endpoint", sorted(API_ENDPOINTS))
    def test_known_endpoints(self, endpoint):
        assert api_url(endpoint, HOST) == f"{HOST}/{API_ENDPOINTS[endpoint]}"

    def test_screening_endpoint(self):
        assert api_url("sas", HOST) == f"{HOST}/openbis/openbis/rmi-screening-api-v1.json"

    def test_datastore_endpoint(self):
        assert api_url("dsrs", HOST) == (
            f"{HOST}/datastore_server/rmi-datastore-server-screening-api-v1.json"
        )

    def test_trailing_slash(self):
        assert api_url("gis", HOST + "/") == api_url("gis", HOST)

    def test_default_endpoint(self):
        assert api_url(host_url=HOST) == api_url("gis", HOST)

    def test_unknown_endpoint(self):
        with pytest.raises(UnknownEndpoint):
            api_url("nope", HOST)

    def test_unknown_endpoint_is_value_error(self):
        with pytest.raises(ValueError):
            api_url("nope", HOST)

    def test_full_url(self):
        assert api_url("nope", full_url="https://proxy.test/rpc") == "https://proxy.test/rpc"

    def test_extra_endpoints(self):
        url = api_url("custom", HOST, endpoints={"custom": "openbis/custom.json"})

        assert url == f"{HOST}/openbis/custom.json"

    def test_extra_kwargs_ignored(self):
        assert api_url("gis", HOST, n_try=3) == api_url("gis", HOST)

    def test_configured_server(self, custom_server):
        assert api_url("gis").startswith("https://configured.test/")
        assert api_url("v3") == (
            "https://configured.test/openbis/openbis/rmi-application-server-v3.json"
        )
