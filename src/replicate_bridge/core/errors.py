"""Error taxonomy for the Replicate bridge.

Every failure the bridge can report to a client is one of the exceptions
below.  Each carries the HTTP status code the gateway should answer with and
a human-readable message that is rendered verbatim as ``{"error": ...}``.

============================  ======  =====================================
Exception                     Status  Raised when
============================  ======  =====================================
:class:`InvalidRequest`       400     Missing/blank prompt, malformed body
:class:`Unauthorized`         401     No API credential configured
:class:`RemoteServiceError`   500     Non-2xx or unreadable response
:class:`RemoteJobFailed`      500     Prediction failed or was canceled
:class:`RemoteJobTimeout`     500     Poll attempt budget exhausted
============================  ======  =====================================

Nothing here is retried automatically; the poller's non-terminal loop is the
only retry in the system.
"""

from __future__ import annotations

# Remote bodies are echoed into messages; longer ones are cut.
MAX_MESSAGE_BODY = 500


def _summarize(body: str) -> str:
    detail = body.strip().replace("\n", " ")
    if len(detail) > MAX_MESSAGE_BODY:
        detail = detail[:MAX_MESSAGE_BODY].rstrip() + "..."
    return detail


class BridgeError(Exception):
    """Base class for all errors surfaced to bridge clients.

    Attributes:
        status_code: HTTP status code used by the gateway.
        message: Human-readable description shown to the user.
    """

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequest(BridgeError):
    """The client sent a request that cannot be processed as-is."""

    status_code = 400


class Unauthorized(BridgeError):
    """No API credential is configured."""

    status_code = 401

    def __init__(self, message: str = "API key not configured") -> None:
        super().__init__(message)


class RemoteServiceError(BridgeError):
    """Replicate answered with a non-2xx status or could not be reached.

    Attributes:
        remote_status: HTTP status returned by Replicate, or ``None`` when the
            request never produced a response (DNS, timeout, refused...).
        body: Full response body text, or the transport error description.
            Only the rendered ``message`` is shortened.
    """

    def __init__(self, remote_status: int | None, body: str) -> None:
        self.remote_status = remote_status
        self.body = body
        detail = _summarize(body)
        if remote_status is None:
            message = f"Replicate API request failed: {detail}"
        else:
            message = f"Replicate API error: {remote_status} - {detail}"
        super().__init__(message)


class RemoteJobFailed(BridgeError):
    """The prediction reached a terminal failure state."""

    def __init__(self, reason: str, *, canceled: bool = False) -> None:
        self.reason = reason
        self.canceled = canceled
        message = reason if canceled else f"Prediction failed: {reason}"
        super().__init__(message)

    @classmethod
    def cancellation(cls) -> RemoteJobFailed:
        return cls("Prediction was canceled", canceled=True)


class RemoteJobTimeout(BridgeError):
    """The prediction did not finish within the poll attempt budget."""

    def __init__(self, job_id: str, attempts_made: int) -> None:
        self.job_id = job_id
        self.attempts_made = attempts_made
        super().__init__(f"Prediction {job_id} timed out after {attempts_made} attempts")
