"""Static catalog of Replicate models offered to the chat UI.

The list is curated by hand and passed through unchanged; it is not fetched
from Replicate's model registry.
"""

from __future__ import annotations

from pydantic import BaseModel


class ModelInfo(BaseModel):
    """One selectable model."""

    id: str
    name: str
    description: str


MODEL_CATALOG: tuple[ModelInfo, ...] = (
    ModelInfo(
        id="black-forest-labs/flux-schnell",
        name="FLUX.1 Schnell",
        description="Fast image generation with FLUX.1",
    ),
    ModelInfo(
        id="black-forest-labs/flux-dev",
        name="FLUX.1 Dev",
        description="High-quality image generation with FLUX.1",
    ),
    ModelInfo(
        id="stability-ai/sdxl",
        name="Stable Diffusion XL",
        description="High-quality text-to-image generation",
    ),
    ModelInfo(
        id="stability-ai/stable-diffusion",
        name="Stable Diffusion",
        description="Classic Stable Diffusion model",
    ),
)
