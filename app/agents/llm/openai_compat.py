from typing import Any

import openai
from openai import OpenAI

from app.agents.llm.base import LLMClient
from app.agents.schemas import ModelReply, TokenUsage
from app.errors import UpstreamError, UpstreamUnavailable
from app.log import get_logger

logger = get_logger(__name__)


class OpenAICompatClient(LLMClient):
    """Any OpenAI-compatible endpoint (Groq, Ollama, OpenAI) through the SDK."""

    def __init__(self, *, api_key: str, base_url: str, model: str, timeout: float = 120.0, **kwargs: Any):
        super().__init__(model=model, **kwargs)
        # Retries are handled by LLMClient.complete
        self.client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)

    def _send(self, payload: dict[str, Any]) -> ModelReply:
        try:
            resp = self.client.chat.completions.create(**payload)
        except openai.APIConnectionError as e:
            logger.error("LLM transport error: %s", e)
            raise UpstreamUnavailable(f"LLM provider is unavailable: {type(e).__name__}") from e
        except openai.APIStatusError as e:
            logger.error("LLM error %s: %s", e.status_code, e.message)
            raise UpstreamError(status=e.status_code, body=e.response.text) from e

        content = resp.choices[0].message.content if resp.choices else None
        usage = None
        if resp.usage is not None:
            usage = TokenUsage(
                prompt_tokens=resp.usage.prompt_tokens,
                completion_tokens=resp.usage.completion_tokens,
                total_tokens=resp.usage.total_tokens,
            )
        return ModelReply(text=(content or "").strip(), usage=usage)
