"""Describe an uploaded image, for prompt seeding in the dashboard."""

import json
import logging
import time
from typing import Any, Dict

import openai
from openai import OpenAI

from .config import Settings
from .errors import ConfigurationError, InvalidRequestError, ProviderError
from .providers.common import ProviderContext, call_json

logger = logging.getLogger(__name__)

DESCRIBE_PROMPT = "Describe this image in detail."
DEFAULT_FAL_MODEL = "fal-ai/llava-1.6-34b"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"


def default_openai_client(settings: Settings) -> OpenAI:
    return OpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        organization=settings.openai_org_id,
        project=settings.openai_project_id,
        timeout=settings.request_timeout,
        max_retries=0,
    )


def describe_image(ctx: ProviderContext, body: Dict[str, Any], sleep=time.sleep) -> Dict[str, str]:
    image = body.get("image")
    if not image or not isinstance(image, str):
        raise InvalidRequestError("Image data URL is required")

    provider = body.get("provider")
    model = body.get("model") if isinstance(body.get("model"), str) and body.get("model") else None

    if provider in (None, "", "fal-ai"):
        return _describe_with_fal(ctx, image, model or DEFAULT_FAL_MODEL, sleep)
    if provider == "openai":
        return _describe_with_openai(ctx, image, model or DEFAULT_OPENAI_MODEL)
    raise InvalidRequestError(f"Unsupported provider: {provider}")


def _describe_with_fal(ctx: ProviderContext, image: str, model: str, sleep) -> Dict[str, str]:
    settings = ctx.settings
    if not settings.fal_api_key:
        raise ConfigurationError("Fal AI API key not configured")

    base = f"{settings.fal_api_base}/{model}"
    logger.info("[image-to-text] Calling Fal AI vision model: %s", model)
    submitted = call_json(
        ctx,
        "POST",
        f"{base}/submit",
        "Fal AI",
        json={"image_url": image, "prompt": DESCRIBE_PROMPT, "sync_mode": "async"},
        headers={"Authorization": f"Key {settings.fal_api_key}"},
    )
    request_id = submitted.get("request_id")
    if not request_id:
        logger.error("[image-to-text] Fal AI submit error: %s", submitted)
        raise ProviderError("Failed to submit to Fal AI")
    logger.info("[image-to-text] Fal AI job submitted: %s", request_id)

    for _ in range(settings.fal_poll_attempts):
        sleep(settings.fal_poll_interval)
        result = call_json(
            ctx,
            "GET",
            f"{base}/{request_id}",
            "Fal AI",
            headers={"Authorization": f"Key {settings.fal_api_key}", "Accept": "application/json"},
        )
        status = result.get("status")
        if status == "COMPLETED":
            output = result.get("output")
            text = None
            if isinstance(output, dict):
                text = output.get("text") or output.get("description")
            if not text:
                text = json.dumps(output)
            return {"text": text, "provider": "fal-ai", "model": model}
        if status == "FAILED":
            raise ProviderError("Image processing failed", status_code=500)

    logger.warning("[image-to-text] Fal AI request %s did not finish in time", request_id)
    raise ProviderError("Timeout waiting for result", status_code=504)


def _describe_with_openai(ctx: ProviderContext, image: str, model: str) -> Dict[str, str]:
    if not ctx.settings.openai_api_key:
        raise ConfigurationError("OpenAI API key not configured")

    client = ctx.client("openai", ctx.openai_factory or default_openai_client)
    logger.info("[image-to-text] Calling OpenAI vision model: %s", model)
    try:
        resp = client.chat.completions.create(
            model=model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": DESCRIBE_PROMPT},
                        {"type": "image_url", "image_url": {"url": image}},
                    ],
                }
            ],
            max_tokens=500,
        )
    except openai.APIStatusError as e:
        logger.error("[image-to-text] OpenAI error %s: %s", e.status_code, e.message)
        raise ProviderError(e.message, status_code=e.status_code) from e
    except openai.APIError as e:
        logger.error("[image-to-text] OpenAI request failed: %s", e)
        raise ProviderError(str(e)) from e

    text = resp.choices[0].message.content if resp.choices else None
    if not text:
        raise ProviderError("No text returned from OpenAI")
    return {"text": text, "provider": "openai", "model": model}
