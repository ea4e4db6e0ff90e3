"""
Batch HTTP transport.

This module executes a batch of independent HTTP exchanges, either one at a
time or with bounded concurrency, using ``httpx``. What is sent and how a
response is judged is left to three hooks:

- ``create_handle(body)`` returns the keyword arguments of
  :meth:`httpx.Client.request` (method, content, headers, timeout).
- ``check(response, body)`` returns the payload of a good response or raises
  :class:`~infx.errors.TransportError` (retried) or
  :class:`~infx.errors.RpcError` (not retried).
- ``finalize(payload)`` post-processes a successful payload, once per request.

A request that keeps failing does not abort the batch: its position in the
result list holds a :class:`RequestFailure` instead.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import httpx
from tqdm.auto import tqdm

from infx.errors import InfxError, RpcError, TransportError
from infx.utils.logging import logger

UrlLike = Union[str, Callable[[], str]]
CreateHandle = Callable[[Any], Dict[str, Any]]
Check = Callable[[httpx.Response, Any], Any]
Finalize = Callable[[Any], Any]

EXECUTION_MODES = ("parallel", "serial")


# =============================================================================
# Results
# =============================================================================

@dataclass
class RequestFailure:
    """
    Placeholder for a request that did not produce a result.

    Attributes:
        index: Position of the request within its batch.
        url: URL used by the last attempt.
        attempts: Number of attempts made.
        error: The exception of the last attempt.
    """

    index: int
    url: Optional[str]
    attempts: int
    error: Exception

    def __bool__(self) -> bool:
        return False

    def raise_error(self) -> None:
        raise self.error

    def __repr__(self) -> str:
        return f"RequestFailure(index={self.index}, attempts={self.attempts}, error={self.error!r})"


# =============================================================================
# Default hooks
# =============================================================================

def default_create_handle(body: Any) -> Dict[str, Any]:
    """GET without a body, POST the body otherwise."""
    if body is None:
        return {"method": "GET"}
    return {"method": "POST", "content": body}


def default_check(response: httpx.Response, body: Any) -> bytes:
    """Accept HTTP 200 and return the raw response content."""
    if response.status_code != 200:
        raise TransportError(
            f"HTTP status {response.status_code} from {response.request.url}",
            status_code=response.status_code,
        )
    return response.content


def default_finalize(payload: Any) -> Any:
    return payload


# =============================================================================
# Single exchange
# =============================================================================

def _resolve_url(url: UrlLike) -> str:
    """Evaluate a deferred URL right before use."""
    return url() if callable(url) else url


def _as_transport_error(exc: Exception) -> TransportError:
    if isinstance(exc, TransportError):
        return exc
    error = TransportError(f"{type(exc).__name__}: {exc}")
    error.__cause__ = exc
    return error


def _finish(index: int, url: str, attempts: int, payload: Any, finalize: Finalize) -> Any:
    try:
        return finalize(payload)
    except InfxError as exc:
        logger.error(f"Request {index}: could not process response from {url}: {exc}")
        return RequestFailure(index, url, attempts, exc)


def _exchange(
    client: httpx.Client,
    index: int,
    url: UrlLike,
    body: Any,
    create_handle: CreateHandle,
    check: Check,
    finalize: Finalize,
    n_try: int,
) -> Any:
    target: Optional[str] = None
    error: Optional[Exception] = None

    for attempt in range(1, n_try + 1):
        try:
            target = _resolve_url(url)
            response = client.request(url=target, **create_handle(body))
            payload = check(response, body)
        except RpcError as exc:
            logger.warning(f"Request {index} to {target} rejected: {exc}")
            return RequestFailure(index, target, attempt, exc)
        except (TransportError, httpx.HTTPError) as exc:
            error = _as_transport_error(exc)
            logger.warning(f"Request {index} to {target} failed (attempt {attempt}/{n_try}): {error}")
            continue
        return _finish(index, target, attempt, payload, finalize)

    logger.warning(f"Request {index} to {target} failed after {n_try} attempt(s)")
    return RequestFailure(index, target, n_try, error)


async def _exchange_async(
    client: httpx.AsyncClient,
    index: int,
    url: UrlLike,
    body: Any,
    create_handle: CreateHandle,
    check: Check,
    finalize: Finalize,
    n_try: int,
) -> Any:
    target: Optional[str] = None
    error: Optional[Exception] = None

    for attempt in range(1, n_try + 1):
        try:
            target = _resolve_url(url)
            response = await client.request(url=target, **create_handle(body))
            payload = check(response, body)
        except RpcError as exc:
            logger.warning(f"Request {index} to {target} rejected: {exc}")
            return RequestFailure(index, target, attempt, exc)
        except (TransportError, httpx.HTTPError) as exc:
            error = _as_transport_error(exc)
            logger.warning(f"Request {index} to {target} failed (attempt {attempt}/{n_try}): {error}")
            continue
        return _finish(index, target, attempt, payload, finalize)

    logger.warning(f"Request {index} to {target} failed after {n_try} attempt(s)")
    return RequestFailure(index, target, n_try, error)


# =============================================================================
# Batch execution
# =============================================================================

def _prepare(
    urls: Sequence[UrlLike],
    bodies: Optional[Sequence[Any]],
    n_con: int,
    n_try: int,
    mode: str,
) -> tuple[List[UrlLike], List[Any]]:
    if isinstance(urls, str) or callable(urls):
        urls = [urls]
    urls = list(urls)

    if bodies is None:
        bodies = [None] * len(urls)
    bodies = list(bodies)

    if len(bodies) != len(urls):
        raise ValueError(
            f"Got {len(urls)} url(s) but {len(bodies)} request bodies"
        )
    _check_settings(n_con, n_try, mode)
    return urls, bodies


def _check_settings(n_con: int, n_try: int, mode: str) -> None:
    if n_con < 1:
        raise ValueError(f"n_con must be at least 1, got {n_con}")
    if n_try < 1:
        raise ValueError(f"n_try must be at least 1, got {n_try}")
    if mode not in EXECUTION_MODES:
        raise ValueError(f"Unknown execution mode '{mode}'. Options: {EXECUTION_MODES}")


def _log_summary(results: List[Any], mode: str) -> None:
    n_failed = sum(isinstance(r, RequestFailure) for r in results)
    if n_failed:
        logger.warning(f"{n_failed}/{len(results)} request(s) failed ({mode})")
    else:
        logger.debug(f"Completed {len(results)} request(s) ({mode})")


def execute_serial(
    urls: Sequence[UrlLike],
    bodies: Optional[Sequence[Any]] = None,
    create_handle: CreateHandle = default_create_handle,
    check: Check = default_check,
    finalize: Finalize = default_finalize,
    n_try: int = 2,
    client_kwargs: Optional[Dict[str, Any]] = None,
    show_progress: bool = False,
) -> List[Any]:
    """
    Execute requests one at a time, in input order.

    Each request, retries included, completes before the next one starts.
    See :func:`execute` for the arguments.
    """
    urls, bodies = _prepare(urls, bodies, 1, n_try, "serial")
    results: List[Any] = []

    with httpx.Client(**(client_kwargs or {})) as client:
        for index in tqdm(range(len(urls)), desc="Requests", disable=not show_progress):
            results.append(
                _exchange(client, index, urls[index], bodies[index],
                          create_handle, check, finalize, n_try)
            )

    _log_summary(results, "serial")
    return results


async def execute_async(
    urls: Sequence[UrlLike],
    bodies: Optional[Sequence[Any]] = None,
    create_handle: CreateHandle = default_create_handle,
    check: Check = default_check,
    finalize: Finalize = default_finalize,
    n_con: int = 5,
    n_try: int = 2,
    client_kwargs: Optional[Dict[str, Any]] = None,
    show_progress: bool = False,
) -> List[Any]:
    """
    Execute requests concurrently with at most ``n_con`` in flight.

    A request holds its slot through all of its retries; as soon as it
    finishes, the next pending request takes the slot over. Results are
    returned in input order. See :func:`execute` for the arguments.
    """
    urls, bodies = _prepare(urls, bodies, n_con, n_try, "parallel")
    results: List[Any] = [None] * len(urls)
    semaphore = asyncio.Semaphore(n_con)

    kwargs = dict(client_kwargs or {})
    kwargs.setdefault(
        "limits",
        httpx.Limits(max_connections=n_con, max_keepalive_connections=n_con),
    )

    with tqdm(total=len(urls), desc="Requests", disable=not show_progress) as pbar:
        async with httpx.AsyncClient(**kwargs) as client:

            async def run(index: int) -> None:
                async with semaphore:
                    results[index] = await _exchange_async(
                        client, index, urls[index], bodies[index],
                        create_handle, check, finalize, n_try,
                    )
                pbar.update(1)

            await asyncio.gather(*(run(i) for i in range(len(urls))))

    _log_summary(results, "parallel")
    return results


def execute(
    urls: Sequence[UrlLike],
    bodies: Optional[Sequence[Any]] = None,
    create_handle: CreateHandle = default_create_handle,
    check: Check = default_check,
    finalize: Finalize = default_finalize,
    n_con: int = 5,
    n_try: int = 2,
    mode: str = "parallel",
    client_kwargs: Optional[Dict[str, Any]] = None,
    show_progress: bool = False,
) -> List[Any]:
    """
    Execute a batch of HTTP requests.

    Args:
        urls: One URL per request. Entries may be zero-argument callables,
            evaluated immediately before every attempt (for URLs that expire).
            A callable raising :class:`~infx.errors.TransportError` counts
            as a failed attempt.
        bodies: Optional per-request payloads, passed to ``create_handle``.
        create_handle: Builds the request arguments from a body.
        check: Validates a response and returns its payload.
        finalize: Post-processes a successful payload.
        n_con: Maximum number of requests in flight (parallel mode).
        n_try: Maximum number of attempts per request.
        mode: ``"parallel"`` or ``"serial"``.
        client_kwargs: Extra arguments for the httpx client (``verify``,
            ``transport``, ...).
        show_progress: Show a progress bar.

    Returns:
        List of results aligned with ``urls``; failed positions hold a
        :class:`RequestFailure`.

    Example:
        >>> results = execute(urls, bodies, n_con=2, n_try=3)
        >>> failed = [r for r in results if isinstance(r, RequestFailure)]
    """
    _check_settings(n_con, n_try, mode)

    if mode == "serial":
        return execute_serial(
            urls, bodies, create_handle, check, finalize,
            n_try=n_try, client_kwargs=client_kwargs, show_progress=show_progress,
        )

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        pass
    else:
        raise RuntimeError(
            "execute() cannot run parallel mode inside a running event loop; "
            "await execute_async() or use mode='serial'"
        )

    return asyncio.run(
        execute_async(
            urls, bodies, create_handle, check, finalize,
            n_con=n_con, n_try=n_try, client_kwargs=client_kwargs,
            show_progress=show_progress,
        )
    )
