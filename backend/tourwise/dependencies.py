"""Composition root: builds the long-lived engine objects once per process."""

from tourwise.config import settings
from tourwise.database import async_session_factory
from tourwise.services.cache_service import CacheService
from tourwise.services.fanout_coordinator import FanOutCoordinator
from tourwise.services.language_assist import LanguageAssistChain
from tourwise.services.llm_client import LLMClient, default_backends
from tourwise.services.offer_store import OfferStore
from tourwise.services.providers import default_providers
from tourwise.services.scoring_engine import ScoringConfig
from tourwise.services.search_orchestrator import SearchOrchestrator

providers = default_providers()
llm_client = LLMClient(default_backends())
offer_store = OfferStore(async_session_factory)
cache_service = CacheService()

search_orchestrator = SearchOrchestrator(
    coordinator=FanOutCoordinator(
        providers,
        offer_store=offer_store if settings.persist_offers else None,
        overall_timeout=settings.search_timeout_seconds,
    ),
    language=LanguageAssistChain(llm_client),
    offer_store=offer_store,
    cache=cache_service,
    scoring_config=ScoringConfig.from_settings(),
    high_match_threshold=settings.high_match_threshold,
)


def get_search_orchestrator() -> SearchOrchestrator:
    return search_orchestrator


async def shutdown():
    for provider in providers:
        await provider.close()
    await llm_client.close()
    await cache_service.close()
