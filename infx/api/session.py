"""
openBIS login sessions.

A login yields a :class:`Token`, the session token string together with the
server it was issued by. Every listing function takes the token as its
first argument and forwards it as the first JSON-RPC parameter.

Sessions are ended explicitly, either with :func:`logout_openbis` or by
using :func:`openbis_session`, which logs out on every exit path:

    >>> with openbis_session("user", "secret") as token:
    ...     types = list_dataset_types(token)
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Optional

from infx.errors import AuthenticationError, RpcError
from infx.rpc.batch import make_request
from infx.rpc.endpoints import api_url
from infx.utils.config import get_config
from infx.utils.logging import logger


class Token(str):
    """An openBIS session token bound to its host."""

    host_url: str

    def __new__(cls, value: str, host_url: Optional[str] = None) -> "Token":
        token = super().__new__(cls, value)
        token.host_url = host_url or get_config().server.host_url
        return token

    def __reduce__(self):
        return (type(self), (str(self), self.host_url))

    def __repr__(self) -> str:
        return f"Token({str.__repr__(self)}, host_url={self.host_url!r})"


def token_url(endpoint: str, token: Any, **kwargs) -> str:
    """Endpoint URL on the host the token was issued by."""
    kwargs.setdefault("host_url", getattr(token, "host_url", None))
    return api_url(endpoint, **kwargs)


def login_openbis(
    username: str,
    password: str,
    host_url: Optional[str] = None,
    **kwargs,
) -> Token:
    """
    Log in to openBIS.

    Args:
        username: openBIS user name.
        password: Password.
        host_url: Server base URL. Defaults to the configured host.
        **kwargs: Passed to the request functions.

    Returns:
        Session token.

    Raises:
        AuthenticationError: If the server does not issue a token.
    """
    host_url = host_url or get_config().server.host_url
    result = make_request(
        api_url("gis", host_url=host_url, **kwargs),
        "tryToAuthenticateForAllServices",
        [username, password],
        **kwargs,
    )

    if not isinstance(result, str) or not result:
        raise AuthenticationError(f"Login of user '{username}' at {host_url} failed")

    logger.info(f"Logged in to {host_url} as '{username}'")
    return Token(result, host_url)


def logout_openbis(token: Token, **kwargs) -> None:
    """
    End an openBIS session.

    Args:
        token: Session token.
        **kwargs: Passed to the request functions.
    """
    make_request(token_url("gis", token, **kwargs), "logout", [token], **kwargs)
    logger.info(f"Logged out of {getattr(token, 'host_url', 'openBIS')}")


def is_token_valid(token: Token, **kwargs) -> bool:
    """Check whether a session token is still active."""
    try:
        result = make_request(
            token_url("gis", token, **kwargs), "isSessionActive", [token], **kwargs
        )
    except RpcError as exc:
        logger.debug(f"Session check rejected: {exc}")
        return False
    return bool(result)


@contextmanager
def openbis_session(
    username: str,
    password: str,
    host_url: Optional[str] = None,
    **kwargs,
) -> Iterator[Token]:
    """
    Log in for the duration of a ``with`` block.

    The session is logged out when the block exits, also on exceptions.
    """
    token = login_openbis(username, password, host_url, **kwargs)
    try:
        yield token
    finally:
        logout_openbis(token, **kwargs)
