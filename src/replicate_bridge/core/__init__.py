"""Core prediction lifecycle for the Replicate bridge.

Architecture Overview
---------------------
The core is layered leaves-first:

1. **Configuration** (config.py):
   - ``BridgeConfig``: static settings via Pydantic Settings
     (``REPLICATE_BRIDGE_*`` environment variables, ``.env``)
   - ``ConfigStore``: runtime credential and default model, swapped
     atomically on update

2. **Remote access** (remote_client.py, jobs.py):
   - ``ReplicateClient``: authenticated create/fetch/cancel calls
   - ``Job``: prediction with a tagged-union output

3. **Lifecycle** (poller.py, normalizer.py, prediction_manager.py):
   - ``Poller``: bounded fixed-interval poll loop
   - ``normalize``: output variant -> ordered image references
   - ``PredictionManager``: the operations exposed over HTTP

Errors raised anywhere in the core belong to the taxonomy in errors.py.
"""

from replicate_bridge.core.config import BridgeConfig, ConfigStore, ProviderConfig, config
from replicate_bridge.core.errors import (
    BridgeError,
    InvalidRequest,
    RemoteJobFailed,
    RemoteJobTimeout,
    RemoteServiceError,
    Unauthorized,
)
from replicate_bridge.core.jobs import Job, JobStatus
from replicate_bridge.core.normalizer import normalize
from replicate_bridge.core.poller import Poller, PollState
from replicate_bridge.core.prediction_manager import (
    GenerationRequest,
    GenerationResult,
    PredictionManager,
)
from replicate_bridge.core.remote_client import ReplicateClient

__all__ = [
    "BridgeConfig",
    "BridgeError",
    "ConfigStore",
    "GenerationRequest",
    "GenerationResult",
    "InvalidRequest",
    "Job",
    "JobStatus",
    "PollState",
    "Poller",
    "PredictionManager",
    "ProviderConfig",
    "RemoteJobFailed",
    "RemoteJobTimeout",
    "RemoteServiceError",
    "ReplicateClient",
    "Unauthorized",
    "config",
    "normalize",
]
