"""
JSON-RPC batch requests against openBIS.

- **endpoints**: short endpoint names to service URLs.
- **transport**: serial or bounded-concurrency HTTP execution with retries.
- **batch**: JSON-RPC request construction and response processing.
- **schemas**: JSON-RPC envelope models.
"""

from infx.rpc.batch import (
    RequestBatch,
    check_rpc,
    create_rpc_handle,
    make_request,
    make_requests,
    package,
    process_json,
)
from infx.rpc.endpoints import API_ENDPOINTS, api_url
from infx.rpc.schemas import RpcErrorDetail, RpcRequest, RpcResponse
from infx.rpc.transport import (
    RequestFailure,
    execute,
    execute_async,
    execute_serial,
)

__all__ = [
    # Endpoints
    "API_ENDPOINTS",
    "api_url",
    # Transport
    "RequestFailure",
    "execute",
    "execute_async",
    "execute_serial",
    # Batch
    "RequestBatch",
    "make_requests",
    "make_request",
    "process_json",
    "package",
    "check_rpc",
    "create_rpc_handle",
    # Schemas
    "RpcRequest",
    "RpcResponse",
    "RpcErrorDetail",
]
