"""Prediction (job) representation.

Replicate returns predictions as loosely-typed JSON.  This module turns that
JSON into a :class:`Job`:

- ``status`` stays a plain string.  Replicate owns the status vocabulary and
  may add new values; :class:`JobStatus` only names the ones the bridge acts
  on, and anything unknown is treated as "still running".
- ``output`` is a tagged union (:data:`JobOutput`) instead of "whatever the
  JSON contained", so consumers match on shape rather than probing types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from replicate_bridge.core.errors import RemoteServiceError


class JobStatus(StrEnum):
    """Prediction statuses the bridge knows about."""

    STARTING = "starting"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


TERMINAL_STATUSES = frozenset({JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.CANCELED})


@dataclass(frozen=True)
class NoOutput:
    """The prediction carries no output (absent, null, or an unknown shape)."""


@dataclass(frozen=True)
class SingleOutput:
    """The prediction output is a single reference string."""

    value: str


@dataclass(frozen=True)
class ManyOutput:
    """The prediction output is an ordered list.

    Elements are kept exactly as received; filtering happens in the
    normalizer.
    """

    values: tuple[Any, ...]


JobOutput = NoOutput | SingleOutput | ManyOutput


def parse_output(raw: Any) -> JobOutput:
    """Classify a raw ``output`` value into a :data:`JobOutput` variant."""
    if isinstance(raw, str):
        return SingleOutput(raw)
    if isinstance(raw, list):
        return ManyOutput(tuple(raw))
    return NoOutput()


@dataclass(frozen=True)
class Job:
    """A Replicate prediction as last seen by the bridge.

    Attributes:
        id: Opaque prediction identifier.
        status: Status string as reported by Replicate.
        output: Parsed output variant.
        error: Error detail reported for failed predictions.
        raw: The unmodified JSON object, returned by the pass-through
            ``GET /prediction/{id}`` endpoint.
    """

    id: str
    status: str
    output: JobOutput = field(default_factory=NoOutput)
    error: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @classmethod
    def from_payload(cls, payload: Any) -> Job:
        """Build a :class:`Job` from a decoded Replicate response.

        Raises:
            RemoteServiceError: If the payload is not an object or has no id.
        """
        if not isinstance(payload, dict):
            raise RemoteServiceError(None, f"unexpected prediction payload: {payload!r}")

        job_id = payload.get("id")
        if not isinstance(job_id, str) or not job_id:
            raise RemoteServiceError(None, f"prediction payload has no id: {payload!r}")

        error = payload.get("error")
        return cls(
            id=job_id,
            status=str(payload.get("status") or ""),
            output=parse_output(payload.get("output")),
            error=str(error) if error not in (None, "") else None,
            raw=payload,
        )
