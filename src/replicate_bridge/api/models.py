"""Pydantic request models for the Replicate bridge API.

The browser extension sends loosely-typed JSON (numbers from ``<input>``
fields may arrive as strings, unset fields as ``""``).  These models accept
that input without rejecting it: wrongly-typed strings are treated as absent,
and numeric fields are coerced leniently.  Validation that produces a
user-facing error (such as a blank prompt) happens in the core, so that every
failure maps onto the bridge's error taxonomy.

Models
------
ConfigUpdateRequest
    Payload for ``POST /config``.
GenerateRequest
    Payload for ``POST /generate``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from replicate_bridge.core.prediction_manager import GenerationRequest, coerce_number


def _string_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


class ConfigUpdateRequest(BaseModel):
    """Request body for the ``POST /config`` endpoint.

    Attributes:
        api_key: New Replicate API token (JSON ``apiKey``).  A blank string
            clears the credential; a non-string value is ignored.
        default_model: New default model id (JSON ``defaultModel``).  Blank
            or non-string values are ignored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_key: str | None = Field(
        default=None,
        alias="apiKey",
        description="Replicate API token; blank clears it.",
    )
    default_model: str | None = Field(
        default=None,
        alias="defaultModel",
        description="Default Replicate model id; blank is ignored.",
    )

    @field_validator("api_key", "default_model", mode="before")
    @classmethod
    def _ignore_non_strings(cls, value: Any) -> str | None:
        return _string_or_none(value)


class GenerateRequest(BaseModel):
    """Request body for the ``POST /generate`` endpoint.

    Attributes:
        prompt: Text prompt.  Required, but checked by the core so that a
            missing prompt is reported as ``400 {"error": "Prompt is
            required"}``.
        model: Replicate model id.  Falls back to the configured default.
        width: Output width in pixels.
        height: Output height in pixels.
        num_outputs: Number of images to request.
        guidance_scale: Classifier-free guidance scale.
        num_inference_steps: Number of denoising steps.

    Numeric fields that do not coerce to a finite number are dropped, so the
    model's own defaults apply.
    """

    model_config = ConfigDict(extra="ignore")

    prompt: str | None = Field(default=None, description="Text prompt.")
    model: str | None = Field(default=None, description="Replicate model id.")
    width: int | float | None = Field(default=None, description="Output width.")
    height: int | float | None = Field(default=None, description="Output height.")
    num_outputs: int | float | None = Field(default=None, description="Images to generate.")
    guidance_scale: int | float | None = Field(default=None, description="Guidance scale.")
    num_inference_steps: int | float | None = Field(default=None, description="Denoising steps.")

    @field_validator("prompt", "model", mode="before")
    @classmethod
    def _ignore_non_strings(cls, value: Any) -> str | None:
        return _string_or_none(value)

    @field_validator(
        "width",
        "height",
        "num_outputs",
        "guidance_scale",
        "num_inference_steps",
        mode="before",
    )
    @classmethod
    def _coerce_numbers(cls, value: Any) -> int | float | None:
        return coerce_number(value)

    def to_generation_request(self) -> GenerationRequest:
        return GenerationRequest(
            prompt=self.prompt,
            model_id=self.model,
            width=self.width,
            height=self.height,
            num_outputs=self.num_outputs,
            guidance_scale=self.guidance_scale,
            num_inference_steps=self.num_inference_steps,
        )
