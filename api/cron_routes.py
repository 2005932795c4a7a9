from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Annotated, Callable

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ingestion.connectors.marketstack import MarketStackConnector
from ingestion.connectors.newsdata import NewsDataConnector
from ingestion.connectors.oil_price_api import OilPriceAPIConnector
from ingestion.models.domain import JobOutcome
from ingestion.tasks.fetch_news import run_news_fetch_job
from ingestion.tasks.fetch_prices import run_price_fetch_job
from ingestion.utils.logging import get_logger
from publish.generator import run_generate_posts_job

from .auth import CronAuth
from .database import SettingsDep

logger = get_logger(__name__)

router = APIRouter(prefix="/api/cron", tags=["cron"], dependencies=[CronAuth])


@dataclass(frozen=True)
class PriceConnectors:
    primary: OilPriceAPIConnector
    secondary: MarketStackConnector


def get_price_connectors(settings: SettingsDep) -> PriceConnectors:
    return PriceConnectors(primary=OilPriceAPIConnector(settings), secondary=MarketStackConnector(settings))


def get_news_connector(settings: SettingsDep) -> NewsDataConnector:
    return NewsDataConnector(settings)


def _run_job(route: str, job: Callable[[], JobOutcome]) -> JSONResponse:
    t0 = time.perf_counter()
    try:
        outcome = job()
    except Exception as exc:
        # handled outcomes come back as JobOutcome; anything raised here is unexpected
        logger.exception("cron.unhandled", extra={"route": route})
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": str(exc) or exc.__class__.__name__,
                "duration_ms": int((time.perf_counter() - t0) * 1000),
            },
        )
    return JSONResponse(status_code=200, content=outcome.to_response())


@router.get("/fetch-prices")
def fetch_prices_route(
    settings: SettingsDep,
    connectors: Annotated[PriceConnectors, Depends(get_price_connectors)],
) -> JSONResponse:
    return _run_job(
        "fetch-prices",
        lambda: run_price_fetch_job(settings=settings, primary=connectors.primary, secondary=connectors.secondary),
    )


@router.get("/fetch-news")
def fetch_news_route(
    settings: SettingsDep,
    connector: Annotated[NewsDataConnector, Depends(get_news_connector)],
) -> JSONResponse:
    return _run_job("fetch-news", lambda: run_news_fetch_job(settings=settings, connector=connector))


@router.get("/generate-posts")
def generate_posts_route(settings: SettingsDep) -> JSONResponse:
    return _run_job("generate-posts", lambda: run_generate_posts_job(settings=settings))
