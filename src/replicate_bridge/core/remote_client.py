"""Authenticated access to the Replicate predictions API.

:class:`ReplicateClient` is a thin, stateless wrapper over an injected
``httpx.AsyncClient``.  It knows three primitives:

==========  ==========================================  ====================
Method      Endpoint                                    Purpose
==========  ==========================================  ====================
POST        ``/predictions``                            Create a prediction
GET         ``/predictions/{id}``                       Fetch one prediction
POST        ``/predictions/{id}/cancel``                Cancel a prediction
==========  ==========================================  ====================

The credential is read from the :class:`~replicate_bridge.core.config.ConfigStore`
on every call, so a key changed through ``POST /config`` takes effect for the
next request without rebuilding the client.

Error handling strategy:
    - No credential configured -> :class:`Unauthorized`, raised before any I/O.
    - Non-2xx response -> :class:`RemoteServiceError` with status and the full
      response body.
    - Transport failure or undecodable body -> :class:`RemoteServiceError`
      with ``remote_status=None``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from replicate_bridge.core.config import ConfigStore
from replicate_bridge.core.errors import RemoteServiceError, Unauthorized
from replicate_bridge.core.jobs import Job

logger = logging.getLogger(__name__)


class ReplicateClient:
    """Authenticated calls to the Replicate predictions API.

    Args:
        http: Shared async HTTP client.  Its ``base_url`` must point at the
            Replicate API root (e.g. ``https://api.replicate.com/v1``).
        store: Runtime configuration holding the API credential.
    """

    def __init__(self, http: httpx.AsyncClient, store: ConfigStore) -> None:
        self._http = http
        self._store = store

    def _headers(self) -> dict[str, str]:
        credential = self._store.read().credential
        if not credential:
            raise Unauthorized()
        return {
            "Authorization": f"Bearer {credential}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, payload: Mapping[str, Any] | None = None) -> Job:
        headers = self._headers()
        try:
            response = await self._http.request(method, path, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Replicate %s %s failed: %s", method, path, exc)
            raise RemoteServiceError(None, str(exc) or exc.__class__.__name__) from exc

        if not response.is_success:
            raise RemoteServiceError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteServiceError(None, f"invalid JSON from Replicate: {response.text}") from exc

        return Job.from_payload(data)

    async def create_job(self, model_id: str, input: Mapping[str, Any]) -> Job:
        """Submit a new prediction.

        Args:
            model_id: Replicate model or version identifier, sent as
                ``version``.
            input: Model input.  Always contains ``prompt``; optional tuning
                fields are only present when the caller supplied them so that
                the model's own defaults apply otherwise.

        Returns:
            The freshly created job, typically in ``starting`` status.
        """
        job = await self._request("POST", "/predictions", {"version": model_id, "input": dict(input)})
        logger.info("Prediction created: %s (model=%s)", job.id, model_id)
        return job

    async def fetch_job(self, job_id: str) -> Job:
        """Fetch the current state of a prediction."""
        return await self._request("GET", f"/predictions/{job_id}")

    async def cancel_job(self, job_id: str) -> Job:
        """Ask Replicate to cancel a running prediction."""
        job = await self._request("POST", f"/predictions/{job_id}/cancel")
        logger.info("Prediction cancel requested: %s (status=%s)", job.id, job.status)
        return job
