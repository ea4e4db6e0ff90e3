"""
Unit tests for JSON-RPC batch construction and response processing.
"""

import json

import httpx
import pytest

from infx.errors import MalformedObject, RpcError, TransportError
from infx.objects.typed import TypedCollection, TypedObject, tag
from infx.rpc.batch import (
    RequestBatch,
    check_rpc,
    make_request,
    make_requests,
    package,
    process_json,
)
from infx.rpc.schemas import RpcResponse
from infx.rpc.transport import RequestFailure

URL = "https://openbis.test/openbis/openbis/rmi-general-information-v1.json"


# =============================================================================
# Fixtures
# =============================================================================

class RpcServer:
    """Mock JSON-RPC server answering each method with a canned function."""

    def __init__(self, **methods):
        self.methods = methods
        self.requests = []

    def __call__(self, request):
        payload = json.loads(request.content)
        self.requests.append(payload)

        handler = self.methods.get(payload["method"])
        if handler is None:
            body = {"jsonrpc": "2.0", "id": payload["id"],
                    "error": {"code": -32601, "message": "Method not found"}}
        else:
            body = {"jsonrpc": "2.0", "id": payload["id"], "result": handler(*payload["params"])}
        return httpx.Response(200, json=body)

    @property
    def transport(self):
        return httpx.MockTransport(self)


@pytest.fixture
def server():
    return RpcServer(
        echo=lambda *params: params[0],
        listDataSets=lambda token, codes: [
            {"@type": "DataSet", "@id": i + 1, "code": code, "parents": None}
            for i, code in enumerate(codes)
        ],
    )


def rpc_response(status_code=200, **body):
    return httpx.Response(status_code, json=body)


# =============================================================================
# Test request construction
# =============================================================================

class TestRequestBatch:
    """Tests for broadcasting and body construction."""

    def test_method_broadcast(self):
        batch = RequestBatch.build(URL, "foo", [[1], [2], [3]])

        assert len(batch) == 3
        assert batch.methods == ["foo", "foo", "foo"]
        assert batch.urls == [URL] * 3
        assert batch.ids == [0, 1, 2]

    def test_url_broadcast(self):
        batch = RequestBatch.build(["a", "b"], "foo", [[1]])

        assert batch.params == [[1], [1]]
        assert batch.urls == ["a", "b"]

    def test_bodies(self):
        batch = RequestBatch.build(URL, "getDataSetMetaData", [["token", ["A"]]], version="2.0")
        body = json.loads(batch.bodies()[0])

        assert body == {
            "jsonrpc": "2.0",
            "method": "getDataSetMetaData",
            "params": ["token", ["A"]],
            "id": 0,
        }

    def test_typed_params_serialised(self):
        plate = tag({"plateCode": "KB2-03-1I", "spaceCodeOrNull": "INFECTX"}, "PlateIdentifier")
        body = json.loads(RequestBatch.build(URL, "listPlateWells", [["token", plate]]).bodies()[0])

        assert body["params"][1]["@type"] == "PlateIdentifier"
        assert body["params"][1]["plateCode"] == "KB2-03-1I"

    def test_explicit_ids(self):
        batch = RequestBatch.build(URL, "foo", [[1], [2]], ids=["a", "b"])

        assert [json.loads(b)["id"] for b in batch.bodies()] == ["a", "b"]

    def test_bare_params_rejected(self):
        with pytest.raises(ValueError):
            RequestBatch.build(URL, "foo", ["token", "code"])

    def test_empty_params_rejected(self):
        with pytest.raises(ValueError):
            RequestBatch.build(URL, "foo", [])

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            RequestBatch.build(URL, ["foo", "bar"], [[1], [2], [3]])

    def test_invalid_method(self):
        with pytest.raises(TypeError):
            RequestBatch.build(URL, ["foo", ""], [[1], [2]])


# =============================================================================
# Test response checking
# =============================================================================

class TestCheckRpc:
    """Tests for JSON-RPC envelope validation."""

    body = json.dumps({"jsonrpc": "2.0", "method": "foo", "params": [], "id": 0}).encode()

    def test_result(self):
        response = rpc_response(jsonrpc="2.0", id=0, result=[1, 2])

        assert check_rpc(response, self.body) == [1, 2]

    def test_null_result(self):
        assert check_rpc(rpc_response(jsonrpc="2.0", id=0, result=None), self.body) is None

    def test_http_error(self):
        with pytest.raises(TransportError) as exc_info:
            check_rpc(rpc_response(503, jsonrpc="2.0", id=0, result=1), self.body)
        assert exc_info.value.status_code == 503

    def test_malformed_envelope(self):
        with pytest.raises(TransportError):
            check_rpc(rpc_response(jsonrpc="2.0", id=0), self.body)

    def test_not_json(self):
        with pytest.raises(TransportError):
            check_rpc(httpx.Response(200, content=b"<html>"), self.body)

    def test_error_envelope(self):
        response = rpc_response(
            jsonrpc="2.0", id=0, error={"code": -32603, "message": "Invalid session"}
        )

        with pytest.raises(RpcError) as exc_info:
            check_rpc(response, self.body)
        assert exc_info.value.code == -32603
        assert "Invalid session" in str(exc_info.value)

    def test_envelope_model(self):
        envelope = RpcResponse.model_validate(
            {"id": 1, "result": None, "error": {"code": 1, "message": "x"}}
        )

        assert envelope.failed
        with pytest.raises(ValueError):
            RpcResponse.model_validate({"id": 1, "result": 3, "error": {"code": 1, "message": "x"}})


# =============================================================================
# Test response processing
# =============================================================================

class TestProcessJson:
    """Tests for the default post-processing pipeline."""

    def test_pipeline(self):
        result = process_json([
            {
                "@type": "DataSet",
                "code": "A",
                "experiment": {"@type": "Experiment", "@id": 1, "code": "E"},
            },
            {"@type": "DataSet", "code": "B", "experiment": 1, "parents": None},
        ])

        assert isinstance(result, TypedCollection)
        assert result[1]["experiment"]["code"] == "E"
        assert "parents" not in result[1]

    def test_single_result_simplified(self):
        result = process_json([{"@type": "DataSet", "code": "A"}])

        assert isinstance(result, TypedObject)

    def test_empty_result(self):
        result = process_json([])

        assert isinstance(result, TypedCollection)
        assert len(result) == 0

    def test_scalar_result(self):
        assert process_json("session-token") == "session-token"
        assert process_json(True) is True

    def test_malformed_member_dropped(self):
        result = process_json([
            {"@type": 5, "code": "bad"},
            {"@type": "DataSet", "code": "A"},
        ])

        assert isinstance(result, TypedObject)
        assert result["code"] == "A"

    def test_heterogeneous_kept(self):
        result = package([tag({"code": "A"}, "DataSet"), tag({"code": "E"}, "Experiment")])

        assert not isinstance(result, TypedCollection)
        assert len(result) == 2


# =============================================================================
# Test entry points
# =============================================================================

class TestMakeRequests:
    """Tests for make_requests and make_request against a mock server."""

    @pytest.mark.parametrize("mode", ["serial", "parallel"])
    def test_broadcast_batch(self, server, mode):
        results = make_requests(URL, "echo", [[1], [2], [3]], mode=mode, transport=server.transport)

        assert results == [1, 2, 3]
        assert [r["method"] for r in server.requests] == ["echo"] * 3

    def test_typed_results(self, server):
        result = make_request(URL, "listDataSets", ["token", ["A", "B"]], transport=server.transport)

        assert isinstance(result, TypedCollection)
        assert result.type_name == "DataSet"
        assert "parents" not in result[0]

    def test_rpc_error_in_batch(self, server):
        results = make_requests(URL, ["echo", "missing"], [[1], [2]], n_try=3,
                                transport=server.transport)

        assert results[0] == 1
        assert isinstance(results[1], RequestFailure)
        assert isinstance(results[1].error, RpcError)
        assert len(server.requests) == 2

    def test_make_request_raises(self, server):
        with pytest.raises(RpcError):
            make_request(URL, "missing", ["token"], transport=server.transport)

    def test_custom_finalize(self, server):
        results = make_requests(URL, "echo", [["raw"]], finalize=lambda x: x * 2,
                                transport=server.transport)

        assert results == ["rawraw"]

    def test_empty_batch(self, server):
        assert make_requests(URL, "echo", [], transport=server.transport) == []
        assert server.requests == []

    def test_endpoint_kwargs_accepted(self, server):
        result = make_request(URL, "echo", [1], host_url="https://other.test",
                              transport=server.transport)

        assert result == 1

    def test_unknown_kwargs_rejected(self, server):
        with pytest.raises(TypeError):
            make_requests(URL, "echo", [[1]], retries=3, transport=server.transport)

    @pytest.mark.parametrize("mode", ["serial", "parallel"])
    def test_malformed_identity_fails_one_request(self, mode):
        def samples(token, i):
            identity = [i] if i == 1 else i + 1
            return [{"@type": "Sample", "@id": identity, "code": f"S{i}"}]

        server = RpcServer(listSamples=samples)
        results = make_requests(URL, "listSamples", [["t", 0], ["t", 1], ["t", 2]],
                                mode=mode, transport=server.transport)

        assert results[0]["code"] == "S0"
        assert isinstance(results[1], RequestFailure)
        assert isinstance(results[1].error, MalformedObject)
        assert results[2]["code"] == "S2"

    @pytest.mark.parametrize("mode", ["serial", "parallel"])
    @pytest.mark.parametrize("kwargs", [{"n_con": 0}, {"n_try": 0}, {"mode": ""}])
    def test_invalid_settings_rejected(self, server, kwargs, mode):
        kwargs = {"mode": mode, **kwargs}

        with pytest.raises(ValueError):
            make_requests(URL, "echo", [[1]], transport=server.transport, **kwargs)
        assert server.requests == []
