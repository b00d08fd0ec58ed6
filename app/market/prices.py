## Current-price lookup (Yahoo Finance chart endpoint)
import httpx

from app.settings import settings
from app.log import get_logger

logger = get_logger(__name__)


class YahooPriceLookup:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.PRICE_API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.price_timeout_seconds
        self.transport = transport

    def current_price(self, ticker: str) -> float | None:
        """Latest regular-market price, or None when unavailable for any reason."""
        url = f"{self.base_url}/v8/finance/chart/{ticker}"
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                r = client.get(url, params={"interval": "1d", "range": "1d"})
            if not r.is_success:
                logger.warning("Price lookup for %s returned %s", ticker, r.status_code)
                return None
            data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Failed to fetch price for %s: %s", ticker, e)
            return None

        try:
            price = data["chart"]["result"][0]["meta"]["regularMarketPrice"]
        except (KeyError, IndexError, TypeError):
            return None
        if not isinstance(price, (int, float)) or isinstance(price, bool) or price <= 0:
            return None
        return float(price)
