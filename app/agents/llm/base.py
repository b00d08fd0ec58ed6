## Base LLM Client Interface
import json
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Sequence

from app.agents.schemas import ModelMessage, ModelReply, TokenUsage
from app.errors import UpstreamUnavailable
from app.log import get_logger

logger = get_logger(__name__)


def reply_from_completion(data: Any) -> ModelReply:
    """Pull the assistant text (and usage) out of a chat-completion body."""
    text = None
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            if isinstance(message, dict):
                text = message.get("content") or ""
        if text is None and data.get("output"):
            out = data["output"]
            text = out if isinstance(out, str) else json.dumps(out)
    if text is None:
        text = json.dumps(data)

    usage = None
    if isinstance(data, dict) and isinstance(data.get("usage"), dict):
        usage = TokenUsage.model_validate(data["usage"])
    return ModelReply(text=text, usage=usage)


class LLMClient(ABC):
    def __init__(self, *, model: str, max_retries: int = 0, retry_backoff: float = 1.0):
        self.model = model
        self.max_retries = max(0, max_retries)
        self.retry_backoff = retry_backoff

    @abstractmethod
    def _send(self, payload: dict[str, Any]) -> ModelReply:
        raise NotImplementedError

    def build_payload(
        self,
        messages: Sequence[ModelMessage],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        stop: list[str] | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": model or self.model,
            "messages": [m.model_dump() for m in messages],
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        if stop:
            payload["stop"] = stop
        return payload

    def complete(self, messages: Sequence[ModelMessage], **params: Any) -> ModelReply:
        """
        Send one chat completion. Only UpstreamUnavailable is retried, and only
        when max_retries > 0; UpstreamError goes straight back to the caller.
        """
        payload = self.build_payload(messages, **params)
        attempt = 0
        while True:
            try:
                return self._send(payload)
            except UpstreamUnavailable as e:
                if attempt >= self.max_retries:
                    raise
                delay = self.retry_backoff * (2 ** attempt)
                attempt += 1
                logger.warning(
                    "LLM unavailable (%s); retry %d/%d in %.1fs", e, attempt, self.max_retries, delay
                )
                time.sleep(delay)


LLMFactory = Callable[[], LLMClient]
