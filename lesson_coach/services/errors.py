"""Error taxonomy shared by the recording pipeline and provider proxies."""

from __future__ import annotations

from fastapi import status


class CoachServiceError(RuntimeError):
    """Base class for errors surfaced to clients as ``{"error": ...}``."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR


class ValidationError(CoachServiceError):
    """Raised when request input is missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(CoachServiceError):
    """Raised when a session, chunk or datastore row does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class FilesystemError(CoachServiceError):
    """Raised when a session directory operation fails."""


class RemoteServiceError(CoachServiceError):
    """Raised when an upstream provider answers with a non-success status."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(
        self,
        message: str,
        *,
        provider_status: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.provider_status = provider_status
        self.body = body


class ProviderNotConfiguredError(CoachServiceError):
    """Raised when an endpoint needs a provider credential that is absent."""

    status_code = status.HTTP_501_NOT_IMPLEMENTED

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


__all__ = [
    "CoachServiceError",
    "ValidationError",
    "NotFoundError",
    "FilesystemError",
    "RemoteServiceError",
    "ProviderNotConfiguredError",
]
