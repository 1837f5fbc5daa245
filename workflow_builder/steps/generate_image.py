"""Generate Image action step.

Calls the AI gateway's OpenAI-compatible image endpoint with the key stored
for the integration (AI_GATEWAY_API_KEY) and returns the image as base64.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from workflow_builder.settings import IntegrationSettings, get_settings
from workflow_builder.steps.handler import StepResult, step
from workflow_builder.steps.registry import register_step

logger = logging.getLogger("workflow_builder.steps.generate_image")

API_KEY = "AI_GATEWAY_API_KEY"


class AIGatewayClient:
    """Minimal async client for the gateway's /images/generations endpoint."""

    def __init__(
        self,
        api_key: str,
        settings: IntegrationSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._size = settings.image_size
        self._client = httpx.AsyncClient(
            base_url=settings.ai_gateway_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(settings.http_timeout, connect=10.0),
            transport=transport,
        )

    async def __aenter__(self) -> "AIGatewayClient":
        return self

    async def __aexit__(self, *_args: object) -> None:
        await self._client.aclose()

    async def generate_image(self, model: str, prompt: str) -> str | None:
        """Return the first generated image as base64, or None when none came back.

        Raises httpx.HTTPStatusError on a non-success status.
        """
        r = await self._client.post(
            "/images/generations",
            json={
                "model": model,
                "prompt": prompt,
                "size": self._size,
                "n": 1,
                "response_format": "b64_json",
            },
        )
        r.raise_for_status()
        images = r.json().get("data") or []
        if not images or not isinstance(images[0], dict):
            return None
        return images[0].get("b64_json") or None


@register_step(label="Generate Image")
@step("ai-gateway/generate-image", integration="ai-gateway", failure_prefix="Image generation failed")
async def generate_image_step(core: dict[str, Any], credentials: dict[str, str]) -> StepResult:
    api_key = credentials.get(API_KEY)
    if not api_key:
        return StepResult.missing_credential(API_KEY)

    prompt = str(core.get("imagePrompt") or "").strip()
    if not prompt:
        return StepResult.invalid_input("Image prompt is required")
    model = core.get("imageModel") or get_settings().image_model

    async with AIGatewayClient(api_key) as client:
        base64 = await client.generate_image(model, prompt)

    if not base64:
        return StepResult.fail("Failed to generate image: No image returned")
    logger.debug("Generated image with %s (%d base64 chars)", model, len(base64))
    return StepResult.ok(base64=base64)
