from typing import Any

import httpx

from app.agents.llm.base import LLMClient, reply_from_completion
from app.agents.schemas import ModelReply
from app.errors import UpstreamError, UpstreamUnavailable
from app.log import get_logger

logger = get_logger(__name__)


class OpenRouterClient(LLMClient):
    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        model: str,
        timeout: float = 120.0,
        site_url: str = "",
        app_title: str = "",
        transport: httpx.BaseTransport | None = None,
        **kwargs: Any,
    ):
        super().__init__(model=model, **kwargs)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.site_url = site_url
        self.app_title = app_title
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        # OpenRouter attribution headers
        if self.site_url:
            headers["HTTP-Referer"] = self.site_url
        if self.app_title:
            headers["X-Title"] = self.app_title
        return headers

    def _send(self, payload: dict[str, Any]) -> ModelReply:
        url = f"{self.base_url}/chat/completions"

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                r = client.post(url, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error("LLM transport error: %s", e)
            raise UpstreamUnavailable(f"LLM provider is unavailable: {type(e).__name__}") from e

        if not r.is_success:
            logger.error("LLM error %s: %s", r.status_code, r.text[:500])
            raise UpstreamError(status=r.status_code, body=r.text)

        try:
            data = r.json()
        except ValueError as e:
            raise UpstreamError("LLM provider returned a non-JSON body.", status=r.status_code, body=r.text) from e

        return reply_from_completion(data)
