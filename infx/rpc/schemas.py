"""
Pydantic models for JSON-RPC 2.0 envelopes.

Request bodies are built from :class:`RpcRequest` and response bodies are
validated against :class:`RpcResponse` before their payload is handed on
to typed-object coercion.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RpcRequest(BaseModel):
    """A single JSON-RPC call."""

    model_config = ConfigDict(extra="forbid")

    jsonrpc: str = Field("2.0", description="JSON-RPC version tag.")
    method: str = Field(..., min_length=1, description="Remote method name.")
    params: List[Any] = Field(default_factory=list, description="Positional parameters.")
    id: Any = Field(None, description="Correlation id echoed by the server.")


class RpcErrorDetail(BaseModel):
    """The ``error`` member of a failed call."""

    code: int
    message: str
    data: Any = None


class RpcResponse(BaseModel):
    """
    A JSON-RPC response envelope.

    Exactly one of ``result`` and ``error`` must be present; ``result`` may
    be ``null``.
    """

    model_config = ConfigDict(extra="allow")

    jsonrpc: Optional[str] = None
    id: Any = None
    result: Any = None
    error: Optional[RpcErrorDetail] = None

    @model_validator(mode="before")
    @classmethod
    def check_members(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            raise ValueError("JSON-RPC response must be an object")
        has_result = "result" in data
        has_error = data.get("error") is not None
        if not has_result and not has_error:
            raise ValueError("JSON-RPC response carries neither 'result' nor 'error'")
        # Some servers send "result": null alongside an error
        if has_result and has_error and data["result"] is not None:
            raise ValueError("JSON-RPC response carries both 'result' and 'error'")
        return data

    @property
    def failed(self) -> bool:
        return self.error is not None
