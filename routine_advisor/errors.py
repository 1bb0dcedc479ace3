from __future__ import annotations


class AdvisorError(Exception):
    """Base class for failures surfaced to the chat log."""


class FetchError(AdvisorError):
    """Catalog or generation endpoint could not be reached or parsed."""


class RemoteRejection(AdvisorError):
    """Generation endpoint answered with a non-success status."""

    def __init__(self, status: int, detail: str) -> None:
        super().__init__(f"status={status} detail={detail}")
        self.status = status
        self.detail = detail


class GenerationInProgress(AdvisorError):
    """A routine or follow-up request is already waiting on the backend."""
