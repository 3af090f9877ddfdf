"""Fan-out coordinator — queries every provider concurrently and collects offers plus status."""

import asyncio
import logging
import time
from dataclasses import dataclass, field

from tourwise.exceptions import ProviderError
from tourwise.schemas.search import SearchSpecification
from tourwise.services.offer import Offer
from tourwise.services.providers.base import TourProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderStatus:
    provider_id: str
    succeeded: bool
    error_kind: str | None = None
    offer_count: int = 0
    elapsed_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "provider_id": self.provider_id,
            "succeeded": self.succeeded,
            "error_kind": self.error_kind,
            "offer_count": self.offer_count,
            "elapsed_ms": self.elapsed_ms,
        }


@dataclass
class FanOutResult:
    offers: list[Offer] = field(default_factory=list)
    statuses: list[ProviderStatus] = field(default_factory=list)

    @property
    def any_succeeded(self) -> bool:
        return any(s.succeeded for s in self.statuses)


class FanOutCoordinator:
    """Runs one task per provider, each bounded by the provider's own timeout.

    A provider that times out or raises is reported in its status and never
    affects its siblings. With overall_timeout set, whatever has finished by
    the deadline is returned and the rest are cancelled and marked timeout.
    """

    def __init__(
        self,
        providers: list[TourProvider],
        offer_store=None,
        overall_timeout: float | None = None,
    ):
        self.providers = providers
        self.offer_store = offer_store
        self.overall_timeout = overall_timeout

    async def fan_out(self, spec: SearchSpecification) -> FanOutResult:
        if not self.providers:
            return FanOutResult()

        tasks = [
            asyncio.create_task(self._run_provider(p, spec), name=f"provider:{p.name}")
            for p in self.providers
        ]
        done, pending = await asyncio.wait(tasks, timeout=self.overall_timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        result = FanOutResult()
        for provider, task in zip(self.providers, tasks):
            if task in done:
                offers, status = task.result()
                result.offers.extend(offers)
            else:
                logger.warning(f"Provider {provider.name} missed the overall search deadline")
                status = ProviderStatus(
                    provider_id=provider.name,
                    succeeded=False,
                    error_kind="timeout",
                    elapsed_ms=int((self.overall_timeout or 0) * 1000),
                )
            result.statuses.append(status)

        if not result.any_succeeded:
            logger.warning(f"All {len(self.providers)} providers failed for {spec.destination}")

        if result.offers and self.offer_store is not None:
            await self._persist(result.offers)

        return result

    async def _run_provider(
        self, provider: TourProvider, spec: SearchSpecification
    ) -> tuple[list[Offer], ProviderStatus]:
        start = time.monotonic()
        error_kind = None
        offers: list[Offer] = []
        try:
            offers = await asyncio.wait_for(provider.search(spec), timeout=provider.timeout)
        except asyncio.TimeoutError:
            error_kind = "timeout"
            logger.warning(f"Provider {provider.name} timed out after {provider.timeout}s")
        except ProviderError as e:
            error_kind = e.error_kind
            logger.warning(f"Provider {provider.name} failed ({e.error_kind}): {e}")
        except Exception as e:
            error_kind = "unavailable"
            logger.warning(f"Provider {provider.name} raised unexpectedly: {e!r}")

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if error_kind is None:
            logger.info(f"Provider {provider.name}: {len(offers)} offers in {elapsed_ms}ms")
        return offers, ProviderStatus(
            provider_id=provider.name,
            succeeded=error_kind is None,
            error_kind=error_kind,
            offer_count=len(offers),
            elapsed_ms=elapsed_ms,
        )

    async def _persist(self, offers: list[Offer]) -> None:
        try:
            await self.offer_store.save_offers(offers)
        except Exception as e:
            logger.error(f"Offer batch save failed, continuing without persistence: {e}", exc_info=True)
