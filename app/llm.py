"""Generative-model seam: text (plus one optional attachment) in, raw text out.

Everything vendor-specific lives here. The rest of the pipeline only sees
`invoke_model(system_instruction, history, content) -> str`.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import os

import anthropic
import httpx
from pydantic import BaseModel

from app.config import settings
from app.errors import ModelInvocationError
from app.models import Attachment, ChatMessage, ChatRole

logger = logging.getLogger(__name__)


class ModelContent(BaseModel):
    """The newest user turn: text and at most one inline binary part."""

    text: str = ""
    attachment: Attachment | None = None


class ModelClient:
    """Interface every provider implements."""

    name = "base"

    async def invoke_model(
        self,
        system_instruction: str,
        history: list[ChatMessage],
        content: ModelContent,
    ) -> str:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


def _decode_text_attachment(attachment: Attachment) -> str:
    try:
        return base64.b64decode(attachment.data, validate=True).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError) as e:
        raise ModelInvocationError(f"Attachment {attachment.name!r} is not valid base64: {e}")


class ClaudeClient(ModelClient):
    name = "claude"

    def __init__(self, api_key: str | None = None, model: str | None = None) -> None:
        self._client = anthropic.AsyncAnthropic(api_key=api_key)
        self._model = model or settings.claude_model

    def _content_blocks(self, content: ModelContent) -> list[dict]:
        blocks: list[dict] = []
        att = content.attachment
        if att is not None:
            if att.mime_type.startswith("image/"):
                blocks.append(
                    {
                        "type": "image",
                        "source": {"type": "base64", "media_type": att.mime_type, "data": att.data},
                    }
                )
            elif att.mime_type == "application/pdf":
                blocks.append(
                    {
                        "type": "document",
                        "source": {"type": "base64", "media_type": att.mime_type, "data": att.data},
                    }
                )
            elif att.mime_type.startswith("text/"):
                blocks.append(
                    {
                        "type": "text",
                        "text": f"[Attachment: {att.name}]\n{_decode_text_attachment(att)}",
                    }
                )
            else:
                raise ModelInvocationError(f"Unsupported attachment type: {att.mime_type}")
        blocks.append({"type": "text", "text": content.text})
        return blocks

    async def invoke_model(
        self,
        system_instruction: str,
        history: list[ChatMessage],
        content: ModelContent,
    ) -> str:
        messages = [
            {
                "role": "assistant" if msg.role == ChatRole.MODEL else "user",
                "content": msg.text,
            }
            for msg in history
        ]
        messages.append({"role": "user", "content": self._content_blocks(content)})

        response = await self._client.messages.create(
            model=self._model,
            max_tokens=settings.max_output_tokens,
            temperature=0,
            system=system_instruction,
            messages=messages,
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )

    async def aclose(self) -> None:
        await self._client.close()


class OllamaClient(ModelClient):
    name = "ollama"

    def __init__(self, url: str | None = None, model: str | None = None) -> None:
        self._url = (url or settings.ollama_url).rstrip("/")
        self._model = model or settings.ollama_model
        self._http = httpx.AsyncClient(timeout=120)

    async def invoke_model(
        self,
        system_instruction: str,
        history: list[ChatMessage],
        content: ModelContent,
    ) -> str:
        messages = [{"role": "system", "content": system_instruction}]
        messages.extend(
            {
                "role": "assistant" if msg.role == ChatRole.MODEL else "user",
                "content": msg.text,
            }
            for msg in history
        )

        latest: dict = {"role": "user", "content": content.text}
        att = content.attachment
        if att is not None:
            if att.mime_type.startswith("image/"):
                latest["images"] = [att.data]
            elif att.mime_type.startswith("text/"):
                latest["content"] = (
                    f"[Attachment: {att.name}]\n{_decode_text_attachment(att)}\n\n{content.text}"
                )
            else:
                raise ModelInvocationError(f"Unsupported attachment type for Ollama: {att.mime_type}")
        messages.append(latest)

        response = await self._http.post(
            f"{self._url}/api/chat",
            json={"model": self._model, "messages": messages, "format": "json", "stream": False},
        )
        response.raise_for_status()
        return response.json()["message"]["content"]

    async def aclose(self) -> None:
        await self._http.aclose()


class DisabledClient(ModelClient):
    """Used when no provider is configured; every call fails over to a fallback."""

    name = "none"

    async def invoke_model(
        self,
        system_instruction: str,
        history: list[ChatMessage],
        content: ModelContent,
    ) -> str:
        raise ModelInvocationError("No model provider configured")


def build_model_client(provider: str | None = None) -> ModelClient:
    provider = provider or settings.llm_provider

    if provider == "claude":
        api_key = settings.anthropic_api_key or os.environ.get("ANTHROPIC_API_KEY", "")
        if not api_key:
            logger.info("No Anthropic API key configured, model calls disabled")
            return DisabledClient()
        return ClaudeClient(api_key=api_key)

    if provider == "ollama":
        return OllamaClient()

    return DisabledClient()


_client: ModelClient | None = None


def get_model_client() -> ModelClient:
    global _client
    if _client is None:
        _client = build_model_client()
    return _client


async def close_model_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


async def invoke_with_timeout(
    client: ModelClient,
    system_instruction: str,
    history: list[ChatMessage],
    content: ModelContent,
    timeout: float | None = None,
) -> str:
    """Call the model, mapping timeouts and provider errors to ModelInvocationError."""
    timeout = timeout if timeout is not None else settings.model_timeout_seconds
    try:
        return await asyncio.wait_for(
            client.invoke_model(system_instruction, history, content), timeout
        )
    except asyncio.TimeoutError:
        raise ModelInvocationError(f"Model call timed out after {timeout}s")
    except ModelInvocationError:
        raise
    except Exception as e:
        raise ModelInvocationError(f"{client.name} call failed: {e}") from e
