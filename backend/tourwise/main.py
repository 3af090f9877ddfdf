import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tourwise.config import settings
from tourwise.exceptions import InvalidSearchSpecification

# ─── Logging setup (file + console) ───
_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_LOG_DIR.mkdir(exist_ok=True)

_log_level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)

logging.basicConfig(
    level=_log_level,
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[
        logging.StreamHandler(),
        RotatingFileHandler(
            _LOG_DIR / "tourwise.log",
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        ),
    ],
)

# Quiet noisy libraries
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

from tourwise import dependencies
from tourwise.routers import search

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.persist_offers:
        try:
            from tourwise.database import init_models
            await init_models()
            logger.info("Database tables ready")
        except Exception as e:
            logger.warning(f"Database init skipped, persistence will degrade: {e}")

    mock = [p.name for p in dependencies.providers if p.is_mock]
    if mock:
        logger.info(f"Providers running on demo data (no credentials): {', '.join(mock)}")
    if not dependencies.llm_client.backends:
        logger.info("No language-model keys configured, free-text parsing uses heuristics only")

    yield

    await dependencies.shutdown()
    logger.info("HTTP and cache clients closed")


app = FastAPI(
    title="TourWise",
    description="Tour package search across multiple providers",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidSearchSpecification)
async def invalid_search_handler(request: Request, exc: InvalidSearchSpecification):
    return JSONResponse(status_code=400, content={"detail": str(exc), "errors": exc.errors})


app.include_router(search.router, prefix="/api/search", tags=["search"])


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "service": "tourwise"}
