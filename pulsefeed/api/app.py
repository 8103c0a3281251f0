"""
HTTP API
========

FastAPI application serving delay-gated news, tier information and
on-demand article analysis.
"""

import asyncio
import contextlib
import math
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config.settings import get_settings
from ..database.models import PersistedNewsItem, Tier, Vertical
from ..dedup.redis_client import ping_redis
from ..runtime import Services, build_services
from ..services.enrichment_service import EnrichmentStatus
from ..utils.exceptions import DatabaseError, ValidationError
from ..utils.logging import get_logger_for_component

logger = get_logger_for_component("api")

MS_PER_MINUTE = 60 * 1000


def serialize_item(item: PersistedNewsItem) -> Dict[str, Any]:
    """JSON payload for one news item."""
    payload = item.model_dump(mode="json")
    payload["category"] = item.vertical.value
    return payload


def _maintenance_response(error: DatabaseError) -> JSONResponse:
    logger.error(f"News retrieval failed: {error}")
    return JSONResponse(
        status_code=503,
        content={
            "news": [],
            "count": 0,
            "maintenance": True,
            "error": "News storage temporarily unavailable",
        },
    )


def _parse_vertical(value: str) -> Vertical:
    try:
        return Vertical(value.lower())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid vertical: {value}")


def create_app(services: Optional[Services] = None, start_workers: bool = False) -> FastAPI:
    """Create the API application.

    Args:
        services: Pre-built services (default: built from settings on startup)
        start_workers: Run the poll and enrichment loops alongside the server

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = services is None
        app.state.services = services or build_services(settings)
        stop_event = asyncio.Event()
        tasks: List[asyncio.Task] = []

        if start_workers:
            svc = app.state.services
            tasks.append(asyncio.create_task(svc.poll_worker.run_forever(stop_event)))
            if svc.settings.enrichment.enabled:
                tasks.append(asyncio.create_task(svc.enrichment_worker.run_forever(stop_event)))
            logger.info(f"Started {len(tasks)} background workers")

        try:
            yield
        finally:
            stop_event.set()
            for task in tasks:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            if owned:
                await app.state.services.close()

    app = FastAPI(title="PulseFeed", lifespan=lifespan)

    if services is not None:
        app.state.services = services
        settings = services.settings
    else:
        settings = get_settings()
    origins = settings.api.cors_origins

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    def svc(request: Request) -> Services:
        return request.app.state.services

    def check_limit(services_: Services, limit: Optional[int]) -> None:
        max_limit = services_.settings.retrieval.max_limit
        if limit is not None and limit > max_limit:
            raise ValidationError(f"must not exceed {max_limit}", field_name="limit")

    async def resolve_delay_minutes(services_: Services, user_id: Optional[str]) -> int:
        if not user_id:
            return services_.settings.retrieval.anonymous_delay_minutes
        delay_ms = await services_.tiers.get_delivery_delay_ms(user_id)
        return math.ceil(delay_ms / MS_PER_MINUTE)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": exc.user_message})

    @app.get("/health")
    async def health(request: Request):
        services_ = svc(request)
        database_ok = services_.db.ping()
        redis_ok = await ping_redis(services_.redis)
        healthy = database_ok and redis_ok
        return JSONResponse(
            status_code=200 if healthy else 503,
            content={
                "status": "healthy" if healthy else "unhealthy",
                "database": "connected" if database_ok else "unavailable",
                "redis": "connected" if redis_ok else "unavailable",
                "analysis": services_.analyzer.status(),
                "dedup": services_.gate.stats().to_dict(),
            },
        )

    @app.get("/api/news")
    async def list_news(
        request: Request,
        vertical: Optional[str] = None,
        limit: Optional[int] = Query(None, ge=1),
        user_id: Optional[str] = Query(None, alias="userId"),
    ):
        services_ = svc(request)
        selected = _parse_vertical(vertical) if vertical else None
        check_limit(services_, limit)
        delay_minutes = await resolve_delay_minutes(services_, user_id)

        try:
            news = services_.retrieval.get_recent(
                vertical=selected, limit=limit, delay_minutes=delay_minutes
            )
        except DatabaseError as e:
            return _maintenance_response(e)

        return {"news": [serialize_item(item) for item in news], "count": len(news)}

    @app.get("/api/news/{vertical}")
    async def list_vertical_news(
        request: Request,
        vertical: str,
        limit: Optional[int] = Query(None, ge=1),
        ticker: Optional[str] = None,
        user_id: Optional[str] = Query(None, alias="userId"),
    ):
        services_ = svc(request)
        selected = _parse_vertical(vertical)
        check_limit(services_, limit)

        symbol = None
        if ticker:
            symbol = services_.ticker_fetcher.normalize_ticker(ticker)
            if selected == Vertical.STOCKS:
                await services_.ticker_fetcher.fetch(symbol)

        delay_minutes = await resolve_delay_minutes(services_, user_id)

        try:
            news = services_.retrieval.get_recent(
                vertical=selected, ticker=symbol, limit=limit, delay_minutes=delay_minutes
            )
        except DatabaseError as e:
            return _maintenance_response(e)

        return {"news": [serialize_item(item) for item in news], "count": len(news)}

    @app.get("/api/tier/{user_id}")
    async def get_tier(request: Request, user_id: str):
        services_ = svc(request)
        tier = await services_.tiers.get_tier(user_id)
        delay_ms = services_.tiers.delay_ms_for(tier)
        return {
            "userId": user_id,
            "tier": tier.value,
            "isPremium": tier != Tier.FREE,
            "deliveryDelay": delay_ms,
            "deliveryDelayMinutes": delay_ms / MS_PER_MINUTE,
        }

    @app.get("/api/news/{item_id}/ai")
    async def get_analysis(
        request: Request,
        item_id: int,
        user_id: Optional[str] = Query(None, alias="userId"),
    ):
        services_ = svc(request)
        if not user_id or await services_.tiers.get_tier(user_id) != Tier.PRO:
            raise HTTPException(status_code=403, detail="Pro tier required for AI features")

        item = services_.enrichment.get_item(item_id)
        if item is None:
            raise HTTPException(status_code=404, detail="News item not found")

        if not item.ai_processed:
            return JSONResponse(
                status_code=202,
                content={
                    "status": EnrichmentStatus.PROCESSING.value,
                    "requested": item.ai_analysis_requested,
                    "message": "AI analysis in progress",
                },
            )

        return {
            "status": "complete",
            "sentiment": item.ai_sentiment.model_dump() if item.ai_sentiment else None,
            "price_impact": item.ai_price_impact.model_dump() if item.ai_price_impact else None,
            "summary": item.ai_summary.model_dump() if item.ai_summary else None,
            "processed_at": item.ai_processed_at.isoformat() if item.ai_processed_at else None,
        }

    @app.post("/api/news/{item_id}/analyze")
    async def request_analysis(request: Request, item_id: int):
        status = svc(request).enrichment.request_enrichment(item_id)
        if status == EnrichmentStatus.NOT_FOUND:
            return JSONResponse(status_code=404, content={"status": status.value})
        return {"status": status.value}

    return app
