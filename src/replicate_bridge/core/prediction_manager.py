"""Prediction lifecycle management for the Replicate bridge.

:class:`PredictionManager` is the single object the HTTP layer talks to.  It
ties together the runtime :class:`~replicate_bridge.core.config.ConfigStore`,
the :class:`~replicate_bridge.core.remote_client.ReplicateClient`, a fresh
:class:`~replicate_bridge.core.poller.Poller` per generation, and the
:func:`~replicate_bridge.core.normalizer.normalize` step.

Generation flow
---------------
1. Reject a missing or blank prompt (:class:`InvalidRequest`).
2. Resolve the model: the request's model if non-blank, else the configured
   default.
3. Reject the call if no credential is configured (:class:`Unauthorized`).
4. Build the model input.  ``prompt`` is always sent; ``width``, ``height``,
   ``num_outputs``, ``guidance_scale`` and ``num_inference_steps`` are sent
   only when they coerce to a finite number, so Replicate's per-model
   defaults apply otherwise.
5. Create the prediction, poll it to a terminal state, normalize the output.

Failures from step 5 propagate unchanged; a failed generation never returns
a partial image list.  Each call is independent: there is no dedup, no
result cache and no cap on concurrent generations.

Usage
-----
::

    manager = PredictionManager(store, ReplicateClient(http, store))
    result = await manager.generate(GenerationRequest(prompt="a cat"))
    print(result.images)
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any

from replicate_bridge.core.catalog import MODEL_CATALOG, ModelInfo
from replicate_bridge.core.config import ConfigStore, ProviderConfig
from replicate_bridge.core.errors import InvalidRequest, Unauthorized
from replicate_bridge.core.jobs import Job
from replicate_bridge.core.normalizer import normalize
from replicate_bridge.core.poller import DEFAULT_INTERVAL, DEFAULT_MAX_ATTEMPTS, Poller, SleepFunc
from replicate_bridge.core.remote_client import ReplicateClient

logger = logging.getLogger(__name__)

# Optional numeric model inputs, in the order they are forwarded.
NUMERIC_INPUTS = ("width", "height", "num_outputs", "guidance_scale", "num_inference_steps")


def coerce_number(value: Any) -> int | float | None:
    """Coerce a loosely-typed value to a finite number, or ``None`` to drop it.

    ``None``, empty strings, booleans, non-numeric strings, ``NaN`` and
    infinities all yield ``None``.  Integers stay integers; numeric strings
    become ``int`` when they parse as one, ``float`` otherwise.  Digit
    separators (``"1_000"``) are not numeric input and are dropped.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not text or "_" in text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            parsed = float(text)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


@dataclass
class GenerationRequest:
    """A request to generate images.

    Attributes:
        prompt: Text prompt; must be non-blank.
        model_id: Replicate model id; blank or ``None`` uses the default.
        width, height, num_outputs, guidance_scale, num_inference_steps:
            Optional tuning values, coerced with :func:`coerce_number`.
    """

    prompt: str | None
    model_id: str | None = None
    width: Any = None
    height: Any = None
    num_outputs: Any = None
    guidance_scale: Any = None
    num_inference_steps: Any = None

    def clean_prompt(self) -> str:
        return self.prompt.strip() if isinstance(self.prompt, str) else ""

    def resolve_model(self, default_model_id: str) -> str:
        if isinstance(self.model_id, str) and self.model_id.strip():
            return self.model_id.strip()
        return default_model_id

    def build_input(self) -> dict[str, Any]:
        """Return the model input mapping sent to Replicate."""
        model_input: dict[str, Any] = {"prompt": self.clean_prompt()}
        for name in NUMERIC_INPUTS:
            number = coerce_number(getattr(self, name))
            if number is not None:
                model_input[name] = number
        return model_input


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of a successful generation."""

    images: list[str]
    prompt: str
    model_id: str
    job_id: str


class PredictionManager:
    """Gateway operations over the runtime config and Replicate.

    Args:
        store: Runtime provider configuration.
        client: Replicate API client bound to the same store.
        max_attempts: Poll attempt budget per generation.
        interval: Seconds between poll attempts.
        sleep: Async sleep used by the poller (injectable for tests).
    """

    def __init__(
        self,
        store: ConfigStore,
        client: ReplicateClient,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval: float = DEFAULT_INTERVAL,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self._store = store
        self._client = client
        self._max_attempts = max_attempts
        self._interval = interval
        self._sleep = sleep

    # -- Configuration --------------------------------------------------------

    def health(self) -> ProviderConfig:
        return self._store.read()

    def get_config(self) -> ProviderConfig:
        return self._store.read()

    def set_config(
        self,
        credential: str | None = None,
        default_model_id: str | None = None,
    ) -> ProviderConfig:
        """Update the runtime configuration.

        The credential is not checked against Replicate here; an invalid key
        surfaces as a :class:`RemoteServiceError` on first use.
        """
        snapshot = self._store.update(credential=credential, default_model_id=default_model_id)
        logger.info(
            "Configuration updated (configured=%s, default_model=%s)",
            snapshot.configured,
            snapshot.default_model_id,
        )
        return snapshot

    # -- Catalog --------------------------------------------------------------

    def list_models(self) -> list[ModelInfo]:
        """Return the static model catalog.

        Raises:
            Unauthorized: No credential is configured.  The catalog needs no
                network call, but it is gated like every other operation.
        """
        self._require_credential()
        return list(MODEL_CATALOG)

    # -- Predictions ----------------------------------------------------------

    def new_poller(self) -> Poller:
        return Poller(
            self._client,
            max_attempts=self._max_attempts,
            interval=self._interval,
            sleep=self._sleep,
        )

    async def generate(
        self,
        request: GenerationRequest,
        cancel_event: asyncio.Event | None = None,
    ) -> GenerationResult:
        """Run one create -> poll -> normalize cycle.

        Args:
            request: What to generate.
            cancel_event: Optional event that cancels the prediction when set.

        Returns:
            The normalized result.

        Raises:
            InvalidRequest: The prompt is missing or blank.
            Unauthorized: No credential is configured.
            RemoteServiceError: A Replicate call failed.
            RemoteJobFailed: The prediction failed or was canceled.
            RemoteJobTimeout: The poll budget ran out.
        """
        prompt = request.clean_prompt()
        if not prompt:
            raise InvalidRequest("Prompt is required")

        snapshot = self._store.read()
        model_id = request.resolve_model(snapshot.default_model_id)
        if not snapshot.configured:
            raise Unauthorized()

        logger.info("Generating image with model: %s", model_id)
        logger.debug("Prompt: %s", prompt)

        job = await self._client.create_job(model_id, request.build_input())
        poller = self.new_poller()
        completed = await poller.wait(job.id, cancel_event=cancel_event)

        images = normalize(completed)
        if images:
            logger.info("Prediction %s completed with %d image(s)", completed.id, len(images))
        else:
            logger.warning("Prediction %s succeeded without any image output", completed.id)

        return GenerationResult(images=images, prompt=prompt, model_id=model_id, job_id=completed.id)

    async def get_job(self, job_id: str) -> Job:
        self._require_credential()
        return await self._client.fetch_job(job_id)

    async def cancel_job(self, job_id: str) -> Job:
        self._require_credential()
        return await self._client.cancel_job(job_id)

    def _require_credential(self) -> None:
        if not self._store.configured:
            raise Unauthorized()
