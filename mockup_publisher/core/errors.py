"""
Error taxonomy shared by the OAuth flows, provider clients and publish pipeline.

Every error carries the HTTP status the API responds with; ``to_dict`` renders
the structured body returned to callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class MockupPublisherError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": type(self).__name__, "detail": self.message}


class ValidationError(MockupPublisherError):
    """Caller input is malformed. Never retried."""

    status_code = 400


class ResourceNotFound(MockupPublisherError):
    """A locally persisted record does not exist for the caller."""

    status_code = 404


class InvalidState(MockupPublisherError):
    """OAuth state token is unknown, expired or already consumed."""

    status_code = 400


class TokenExchangeFailed(MockupPublisherError):
    """The provider token endpoint rejected a code or refresh exchange."""

    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        status: Optional[int] = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status = status
        self.body = body

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update(provider=self.provider, status=self.status)
        return payload


class AuthExpired(MockupPublisherError):
    """Stored credentials can no longer be refreshed; re-authorization required."""

    status_code = 401

    def __init__(self, message: str, *, provider: str) -> None:
        super().__init__(message)
        self.provider = provider

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["provider"] = self.provider
        return payload


class ProviderNotConnected(AuthExpired):
    """No credential has ever been stored for the provider."""


class ProviderRequestFailed(MockupPublisherError):
    """An upstream API answered with a non-2xx status other than 401."""

    status_code = 502

    def __init__(self, *, provider: str, status: int, body: str) -> None:
        super().__init__(f"{provider} request failed with status {status}")
        self.provider = provider
        self.status: Optional[int] = status
        self.body = body

    @property
    def retryable(self) -> bool:
        return self.status is not None and (self.status == 429 or self.status >= 500)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update(provider=self.provider, status=self.status, body=self.body[:2000])
        return payload


class ProviderUnreachable(ProviderRequestFailed):
    """The upstream API could not be reached (connection error or timeout)."""

    status_code = 504

    def __init__(self, *, provider: str, reason: str) -> None:
        MockupPublisherError.__init__(self, f"{provider} could not be reached: {reason}")
        self.provider = provider
        self.status = None
        self.body = ""

    @property
    def retryable(self) -> bool:
        return True


class ContentGenerationFailed(MockupPublisherError):
    """The inference provider could not produce listing content."""

    status_code = 503


@dataclass(slots=True)
class AssetUploadFailure:
    """One listing image that could not be attached to the marketplace draft."""

    file_id: str
    rank: int
    reason: str


class PartialPublishFailure(MockupPublisherError):
    """Publishing finished but some listing images were skipped.

    Attached to a successful ``PublishResult`` rather than raised.
    """

    status_code = 200

    def __init__(self, failures: list[AssetUploadFailure]) -> None:
        super().__init__(f"{len(failures)} listing image upload(s) failed")
        self.failures = failures

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["failures"] = [
            {"file_id": item.file_id, "rank": item.rank, "reason": item.reason}
            for item in self.failures
        ]
        return payload


class PublishFailed(MockupPublisherError):
    """A publish stage failed after which no further stages ran.

    Earlier side effects are not rolled back; any orphaned marketplace draft or
    stored artifact is reported so the caller can reconcile it.
    """

    def __init__(
        self,
        *,
        stage: str,
        outcome: str,
        cause: BaseException,
        marketplace_listing_id: Optional[str] = None,
        artifact_ref: Optional[str] = None,
    ) -> None:
        super().__init__(f"Publishing failed during '{stage}': {cause}")
        self.stage = stage
        self.outcome = outcome
        self.cause = cause
        self.marketplace_listing_id = marketplace_listing_id
        self.artifact_ref = artifact_ref
        if isinstance(cause, MockupPublisherError):
            self.status_code = cause.status_code
        else:
            self.status_code = 502

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update(
            stage=self.stage,
            outcome=self.outcome,
            cause=type(self.cause).__name__,
            marketplace_listing_id=self.marketplace_listing_id,
            artifact_ref=self.artifact_ref,
        )
        return payload


__all__ = [
    "AssetUploadFailure",
    "AuthExpired",
    "ContentGenerationFailed",
    "InvalidState",
    "MockupPublisherError",
    "PartialPublishFailure",
    "ProviderNotConnected",
    "ProviderRequestFailed",
    "ProviderUnreachable",
    "PublishFailed",
    "ResourceNotFound",
    "TokenExchangeFailed",
    "ValidationError",
]
