"""Search router — tour search and free-text request parsing."""

import logging

from fastapi import APIRouter, Depends

from tourwise.dependencies import get_search_orchestrator
from tourwise.schemas.search import ParseRequest, SearchRequest
from tourwise.services.search_orchestrator import SearchOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("")
async def search_tours(
    req: SearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_search_orchestrator),
):
    """Search all providers and return one page of ranked tour cards.

    Invalid search fields surface as InvalidSearchSpecification, which the
    app maps to HTTP 400.
    """
    result = await orchestrator.search(
        req.search_fields,
        query=req.query,
        user_id=req.user_id,
        weights=req.weights,
        explain=req.explain,
    )
    logger.info(
        f"Search {result['search_id']}: {result['pagination']['total']} cards, "
        f"{sum(1 for p in result['providers'] if p['succeeded'])}/{len(result['providers'])} providers ok"
    )
    return result


@router.post("/parse")
async def parse_request(
    req: ParseRequest,
    orchestrator: SearchOrchestrator = Depends(get_search_orchestrator),
):
    """Turn a free-text travel request into structured search parameters."""
    parsed = await orchestrator.parse(req.text, req.user_id, req.previous_context)
    return parsed.model_dump(mode="json")
