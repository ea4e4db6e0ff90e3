"""
JSON-RPC batch requests.

:func:`make_requests` turns method names and parameter lists into JSON-RPC
2.0 request bodies, executes them through :mod:`infx.rpc.transport` and
pipes every successful payload through :func:`process_json`:

    coerce -> prune nulls -> resolve references -> package as collection

Singleton arguments are broadcast to the batch length, so a single method
can be called with many parameter lists (or many URLs) at once:

    >>> make_requests(url, "getDataSetMetaData", [[token, ["A"]], [token, ["B"]]])
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import httpx
from pydantic import ValidationError

from infx.errors import MalformedObject, RpcError, TransportError, TypeMismatch
from infx.objects.resolve import resolve_references
from infx.objects.typed import (
    TypedCollection,
    TypedObject,
    coerce,
    prune_nulls,
    simplify,
    to_json,
)
from infx.rpc.schemas import RpcRequest, RpcResponse
from infx.rpc.transport import RequestFailure, UrlLike, execute
from infx.utils.config import RequestConfig, get_config
from infx.utils.logging import logger

# Keyword arguments consumed by api_url(); accepted and ignored here so that
# listing functions can forward one set of keyword arguments to both.
_ENDPOINT_KWARGS = frozenset({"host_url", "full_url", "endpoints"})


# =============================================================================
# Response processing
# =============================================================================

def package(data: Any) -> Any:
    """Wrap a list of same-typed objects as a (simplified) collection."""
    if isinstance(data, TypedCollection):
        return simplify(data)
    if isinstance(data, list):
        if not data:
            return TypedCollection()
        if all(isinstance(x, TypedObject) for x in data):
            try:
                return simplify(TypedCollection(data))
            except TypeMismatch as exc:
                logger.warning(f"Heterogeneous result kept as plain list: {exc}")
    return data


def process_json(payload: Any) -> Any:
    """
    Default post-processing of a JSON-RPC result.

    Top-level members with a malformed discriminator are logged and dropped;
    the remaining members are still resolved and returned.
    """
    if isinstance(payload, list):
        data = []
        for i, item in enumerate(payload):
            try:
                data.append(coerce(item))
            except MalformedObject as exc:
                logger.error(f"Dropping malformed object at position {i}: {exc}")
    else:
        data = coerce(payload)

    data = prune_nulls(data)
    data = resolve_references(data)
    return package(data)


# =============================================================================
# Request construction
# =============================================================================

def _as_list(x: Any) -> List[Any]:
    if isinstance(x, (str, bytes)) or callable(x):
        return [x]
    return list(x)


@dataclass
class RequestBatch:
    """
    Length-normalised JSON-RPC calls sharing a version tag.

    Attributes:
        urls: Target URL (or deferred URL) per call.
        methods: Method name per call.
        params: Parameter list per call.
        ids: Correlation id per call.
        version: JSON-RPC version tag.
    """

    urls: List[UrlLike]
    methods: List[str]
    params: List[List[Any]]
    ids: List[Any]
    version: str = "2.0"

    @classmethod
    def build(
        cls,
        urls: Union[UrlLike, Sequence[UrlLike]],
        methods: Union[str, Sequence[str]],
        params: Sequence[Sequence[Any]],
        ids: Optional[Sequence[Any]] = None,
        version: str = "2.0",
    ) -> "RequestBatch":
        """
        Broadcast singleton arguments to the common batch length.

        Raises:
            ValueError: On a bare (unwrapped) parameter list, or on
                non-singleton arguments of differing lengths.
        """
        if not isinstance(params, (list, tuple)) or not params:
            raise ValueError("params must be a non-empty list of parameter lists")
        if not all(isinstance(p, (list, tuple)) for p in params):
            raise ValueError(
                "Each element of params must be the parameter list of one call; "
                "wrap a single parameter list as [params]"
            )

        columns: Dict[str, List[Any]] = {
            "urls": _as_list(urls),
            "methods": _as_list(methods),
            "params": [list(p) for p in params],
        }
        if ids is not None:
            columns["ids"] = _as_list(ids)

        n = max(len(v) for v in columns.values())
        for name, values in columns.items():
            if len(values) not in (1, n):
                raise ValueError(
                    f"Cannot broadcast {name} of length {len(values)} to batch length {n}"
                )
            if len(values) == 1:
                columns[name] = values * n

        for method in columns["methods"]:
            if not isinstance(method, str) or not method:
                raise TypeError(f"Method names must be non-empty strings, got {method!r}")

        return cls(
            urls=columns["urls"],
            methods=columns["methods"],
            params=columns["params"],
            ids=columns.get("ids", list(range(n))),
            version=version,
        )

    def __len__(self) -> int:
        return len(self.methods)

    def requests(self) -> List[RpcRequest]:
        return [
            RpcRequest(jsonrpc=self.version, method=m, params=to_json(p), id=i)
            for m, p, i in zip(self.methods, self.params, self.ids)
        ]

    def bodies(self) -> List[bytes]:
        """Serialised request bodies, one per call."""
        return [r.model_dump_json().encode("utf-8") for r in self.requests()]


# =============================================================================
# Transport hooks
# =============================================================================

def create_rpc_handle(body: bytes, timeout: Optional[float] = None) -> Dict[str, Any]:
    """POST a serialised JSON-RPC body."""
    handle: Dict[str, Any] = {
        "method": "POST",
        "content": body,
        "headers": {"Content-Type": "application/json"},
    }
    if timeout is not None:
        handle["timeout"] = timeout
    return handle


def check_rpc(response: httpx.Response, body: bytes) -> Any:
    """
    Validate a JSON-RPC response.

    Returns:
        The ``result`` member of the envelope.

    Raises:
        TransportError: On a non-200 status or a malformed envelope.
        RpcError: If the envelope reports an error.
    """
    if response.status_code != 200:
        raise TransportError(
            f"HTTP status {response.status_code}", status_code=response.status_code
        )

    try:
        envelope = RpcResponse.model_validate_json(response.content)
    except ValidationError as exc:
        raise TransportError(f"Malformed JSON-RPC envelope: {exc}") from exc

    if envelope.error is not None:
        raise RpcError(envelope.error.code, envelope.error.message, envelope.error.data)

    sent_id = json.loads(body).get("id")
    if envelope.id is not None and envelope.id != sent_id:
        logger.warning(f"Response id {envelope.id!r} does not match request id {sent_id!r}")

    return envelope.result


# =============================================================================
# Entry points
# =============================================================================

def make_requests(
    urls: Union[UrlLike, Sequence[UrlLike]],
    methods: Union[str, Sequence[str]],
    params: Sequence[Sequence[Any]],
    ids: Optional[Sequence[Any]] = None,
    version: Optional[str] = None,
    finalize: Callable[[Any], Any] = process_json,
    n_con: Optional[int] = None,
    n_try: Optional[int] = None,
    mode: Optional[str] = None,
    timeout: Optional[float] = None,
    show_progress: Optional[bool] = None,
    verify: Optional[bool] = None,
    transport: Optional[Union[httpx.BaseTransport, httpx.AsyncBaseTransport]] = None,
    config: Optional[RequestConfig] = None,
    **kwargs,
) -> List[Any]:
    """
    Issue a batch of JSON-RPC requests.

    Args:
        urls: Endpoint URL(s); a single URL is used for every call.
        methods: Method name(s); a single name is used for every call.
        params: One parameter list per call. A single call still needs the
            outer list: ``[[token, x]]``.
        ids: Correlation ids, defaulting to the position in the batch.
        version: JSON-RPC version tag.
        finalize: Post-processing of each successful result.
        n_con: Maximum requests in flight.
        n_try: Maximum attempts per request.
        mode: ``"parallel"`` or ``"serial"``.
        timeout: Per-exchange timeout in seconds.
        show_progress: Show a progress bar.
        verify: TLS certificate verification.
        transport: httpx transport to use instead of the network (testing).
        config: Request settings; unset arguments default from here, then
            from the active configuration.
        **kwargs: Endpoint arguments (``host_url``, ``full_url``,
            ``endpoints``) forwarded alongside by listing functions; ignored.

    Returns:
        One entry per call, in order. Failed calls hold a
        :class:`~infx.rpc.transport.RequestFailure`.
    """
    unknown = set(kwargs) - _ENDPOINT_KWARGS
    if unknown:
        raise TypeError(f"Unexpected keyword argument(s): {sorted(unknown)}")

    active = get_config()
    config = config or active.request

    if isinstance(params, (list, tuple)) and len(params) == 0:
        logger.debug("Empty parameter list, no requests issued")
        return []

    batch = RequestBatch.build(
        urls, methods, params, ids=ids, version=config.version if version is None else version
    )
    timeout = config.timeout if timeout is None else timeout

    client_kwargs: Dict[str, Any] = {
        "verify": active.server.verify if verify is None else verify,
    }
    if transport is not None:
        client_kwargs["transport"] = transport

    logger.debug(
        f"Issuing {len(batch)} request(s): {sorted(set(batch.methods))}"
    )

    return execute(
        batch.urls,
        batch.bodies(),
        create_handle=lambda body: create_rpc_handle(body, timeout),
        check=check_rpc,
        finalize=finalize,
        n_con=config.n_con if n_con is None else n_con,
        n_try=config.n_try if n_try is None else n_try,
        mode=config.mode if mode is None else mode,
        client_kwargs=client_kwargs,
        show_progress=config.show_progress if show_progress is None else show_progress,
    )


def make_request(
    url: UrlLike,
    method: str,
    params: Sequence[Any],
    **kwargs,
) -> Any:
    """
    Issue a single JSON-RPC request.

    Args:
        url: Endpoint URL.
        method: Method name.
        params: The parameter list of the call (not wrapped).
        **kwargs: Passed to :func:`make_requests`.

    Returns:
        The processed result.

    Raises:
        TransportError: If all attempts failed.
        RpcError: If the server rejected the call.

    Example:
        >>> make_request(api_url("gis"), "listDataSetTypes", [token])
    """
    result = make_requests(url, method, [params], **kwargs)[0]
    if isinstance(result, RequestFailure):
        result.raise_error()
    return result
