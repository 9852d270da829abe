"""Wrapper around OpenAI-compatible chat models for contract extraction."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from .config import ModelConfig
from .errors import MissingCredentialsError, ModelRequestError

LOGGER = logging.getLogger(__name__)

_DATACLASS_KW = {"slots": True} if sys.version_info >= (3, 10) else {}

SYSTEM_PROMPT = "You are an expert real estate contract analyzer. Output STRICT JSON only."


@dataclass(**_DATACLASS_KW)
class ChatMessage:
    """Lightweight chat message container."""

    role: str
    content: Any

    def as_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content}


class LLMClient:
    """Sends one prompt to the model and returns the raw response text.

    Timeouts and transport retries are delegated to the openai SDK; this class
    only translates SDK failures into :class:`ModelRequestError`.
    """

    def __init__(
        self,
        config: Optional[ModelConfig] = None,
        *,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.config = config or ModelConfig.from_env()
        if not self.config.api_key:
            raise MissingCredentialsError(
                "No model API key configured. Set OPENAI_API_KEY (or NEBIUS_API_KEY) "
                "or pass ModelConfig(api_key=...)."
            )
        self.model_name = self.config.model_name
        self.client = client or AsyncOpenAI(
            api_key=self.config.api_key,
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
            max_retries=self.config.max_retries,
        )
        self.generation_kwargs: Dict[str, Any] = {
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }
        if self.config.json_mode:
            self.generation_kwargs["response_format"] = {"type": "json_object"}

    async def get_model_response(self, prompt_text: str) -> str:
        """Send ``prompt_text`` as the user turn and return the completion text."""

        messages = self._build_messages(prompt_text)
        try:
            resp = await self.client.chat.completions.create(
                model=self.model_name,
                messages=messages,
                **self.generation_kwargs,
            )
        except openai.APITimeoutError as exc:
            raise ModelRequestError(f"Model request timed out: {exc}", reason="timeout") from exc
        except openai.RateLimitError as exc:
            raise ModelRequestError(
                f"Model request was rate limited: {exc}", reason="rate_limited", status_code=exc.status_code
            ) from exc
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise ModelRequestError(
                "Model request was rejected (HTTP %s). Check API key, base_url, and model access."
                % exc.status_code,
                reason="unauthorized",
                status_code=exc.status_code,
            ) from exc
        except openai.APIConnectionError as exc:
            raise ModelRequestError(f"Could not reach the model endpoint: {exc}", reason="connection") from exc
        except openai.APIStatusError as exc:
            raise ModelRequestError(
                f"Model request failed (HTTP {exc.status_code}): {exc}",
                status_code=exc.status_code,
            ) from exc

        text = ""
        if resp.choices:
            text = (resp.choices[0].message.content or "").strip()
        if not text:
            raise ModelRequestError("Model returned an empty response", reason="empty_response")
        LOGGER.info("Model response received (%s chars)", len(text))
        return text

    def _build_messages(self, prompt_text: str) -> List[Dict[str, Any]]:
        if self.config.message_content_mode == "parts":
            # Some OpenAI-compatible providers only accept content as a list of parts.
            user = ChatMessage("user", [{"type": "text", "text": prompt_text}])
        else:
            user = ChatMessage("user", prompt_text)
        return [ChatMessage("system", SYSTEM_PROMPT).as_dict(), user.as_dict()]
