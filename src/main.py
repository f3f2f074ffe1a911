# src/main.py

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging
import uuid

import redis

from api.routes import router
from config import build_settings, configure_logging
from engine.db import create_session_factory
from engine.queue import RedisJobQueue
from engine.store import ScanStore

logger = logging.getLogger(__name__)


def create_app(settings=None, store=None, job_queue=None) -> FastAPI:
    """
    Build the submission API. Store and queue are created from settings unless
    injected; both live as long as the app.
    Run with: uvicorn main:create_app --factory
    """
    settings = settings or build_settings()
    configure_logging(settings)

    app = FastAPI(title="Repo Scan Core")
    app.state.settings = settings
    app.state.store = store or ScanStore(create_session_factory(settings.database_url))
    app.state.job_queue = job_queue or RedisJobQueue(
        redis.Redis.from_url(settings.redis_url, decode_responses=True),
        settings.queue_name,
    )

    @app.middleware("http")
    async def add_trace_id_and_log(request: Request, call_next):
        trace_id = str(uuid.uuid4())
        request.state.trace_id = trace_id
        logger.info(f"[trace_id={trace_id}] Incoming request: {request.method} {request.url}")
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception(f"[trace_id={trace_id}] Unhandled error: {exc}")
            return JSONResponse(
                status_code=500,
                content={"success": False, "error": "Internal server error", "trace_id": trace_id}
            )
        response.headers["X-Trace-Id"] = trace_id
        return response

    app.include_router(router)
    return app
