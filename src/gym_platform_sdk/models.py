"""Pydantic models for Gym Platform SDK.

Frozen models for the token pair, outgoing request descriptors and the
response envelope returned by every backend service.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class TokenPair(BaseModel):
    """Access/refresh token pair held by a token store."""

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)


class RefreshTokenData(BaseModel):
    """``data`` member of a successful refresh-token response."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    access_token: str = Field(..., min_length=1, alias="accessToken")
    refresh_token: str = Field(..., min_length=1, alias="refreshToken")


class RefreshTokenResponse(BaseModel):
    """Body of ``POST /auth/refresh-token``; any other shape is a failure."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    success: Literal[True]
    data: RefreshTokenData

    def to_token_pair(self) -> TokenPair:
        """Get the refreshed credentials."""
        return TokenPair(
            access_token=self.data.access_token,
            refresh_token=self.data.refresh_token,
        )


class ApiResponse(BaseModel):
    """Normalized success envelope handed back to domain service wrappers."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: Any = None
    message: str | None = None
    errors: Any = None


class RequestDescriptor(BaseModel):
    """One outgoing request, immutable once built.

    ``endpoint_path`` is the path without base URL or query string and is
    what the public-endpoint allowlist is matched against.
    """

    model_config = ConfigDict(frozen=True)

    method: str
    url: str
    endpoint_path: str
    headers: dict[str, str] = Field(default_factory=dict)
    params: dict[str, Any] | list[tuple[str, Any]] | None = None
    body: Any = None
    files: Any = None
    form: dict[str, Any] | None = None

    @property
    def is_multipart(self) -> bool:
        """Multipart uploads let httpx set the Content-Type boundary."""
        return self.files is not None

    def request_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``httpx.AsyncClient.request``."""
        kwargs: dict[str, Any] = {}
        if self.params:
            kwargs["params"] = self.params
        if self.is_multipart:
            kwargs["files"] = self.files
            if self.form:
                kwargs["data"] = self.form
        elif self.body is not None:
            kwargs["json"] = self.body
        return kwargs
