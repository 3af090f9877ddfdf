"""Base class for tour provider adapters.

An adapter fetches a provider payload over HTTP and maps it to canonical
Offers. The mapping step is a pure function of the payload, so it is tested
without any network. Adapters without credentials serve deterministic demo
payloads in the provider's own wire format.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable

import httpx

from tourwise.exceptions import (
    ProviderError,
    ProviderMalformedResponse,
    ProviderTimeout,
    ProviderUnavailable,
)
from tourwise.schemas.search import SearchSpecification
from tourwise.services.offer import Offer

logger = logging.getLogger(__name__)


class TourProvider(ABC):
    name: str = ""
    base_url: str = ""
    default_timeout: float = 15.0

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout: float | None = None,
        use_mock: bool | None = None,
    ):
        self.timeout = timeout or self.default_timeout
        self._client = client
        self._owns_client = client is None
        self._use_mock = (not self.has_credentials()) if use_mock is None else use_mock

    @property
    def is_mock(self) -> bool:
        return self._use_mock

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    async def close(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def search(self, spec: SearchSpecification) -> list[Offer]:
        """Fetch and normalize offers, translating transport errors to ProviderError."""
        if self._use_mock:
            return self.normalize(self.mock_payload(spec), spec)

        try:
            payload = await self.fetch(spec)
        except ProviderError:
            raise
        except httpx.TimeoutException as e:
            raise ProviderTimeout(self.name, str(e) or "request timed out") from e
        except httpx.HTTPStatusError as e:
            raise ProviderUnavailable(self.name, f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise ProviderUnavailable(self.name, str(e) or type(e).__name__) from e
        except ValueError as e:
            # response.json() on a non-JSON body
            raise ProviderMalformedResponse(self.name, f"invalid JSON: {e}") from e

        return self.normalize(payload, spec)

    def normalize(self, payload: Any, spec: SearchSpecification | None = None) -> list[Offer]:
        """Map a raw payload to Offers. Bad items are skipped; a bad envelope raises."""
        try:
            items = list(self.extract_items(payload))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ProviderMalformedResponse(self.name, f"unexpected payload shape: {e!r}") from e

        offers: list[Offer] = []
        skipped = 0
        for item in items:
            try:
                offers.extend(self.map_item(item, spec))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                skipped += 1
                logger.warning(f"{self.name}: skipping malformed item: {e!r}")

        if skipped:
            logger.warning(f"{self.name}: skipped {skipped} of {len(items)} items")
        return offers

    # --- Provider-specific hooks ---

    @abstractmethod
    def has_credentials(self) -> bool:
        ...

    @abstractmethod
    async def fetch(self, spec: SearchSpecification) -> Any:
        """Perform the HTTP exchange and return the decoded payload."""

    @abstractmethod
    def extract_items(self, payload: Any) -> Iterable[Any]:
        """Pull the list of raw items out of the payload envelope."""

    @abstractmethod
    def map_item(self, item: Any, spec: SearchSpecification | None) -> list[Offer]:
        """Map one raw item to zero or more Offers."""

    @abstractmethod
    def mock_payload(self, spec: SearchSpecification) -> Any:
        """Demo payload in this provider's wire format."""


# --- Shared mapping helpers ---

def to_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(round(float(value)))


def positive_price(value: Any) -> int:
    """Required price field; zero, negative or missing makes the item malformed."""
    price = to_int(value)
    if price is None or price <= 0:
        raise ValueError(f"non-positive price: {value!r}")
    return price


def to_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def upgrade_image_url(url: str) -> str:
    """Swap thumbnail size segments for the large variant and force https."""
    for small in ("/800x600/", "/400x300/", "/200x150/"):
        if small in url:
            url = url.replace(small, "/1600x1200/")
    if url.startswith("http://"):
        url = "https://" + url[len("http://"):]
    return url
