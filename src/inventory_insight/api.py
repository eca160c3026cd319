import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from inventory_insight import __version__
from inventory_insight.core.config import get_settings
from inventory_insight.inventory import api as dashboard_api
from inventory_insight.nl_query import api as query_api
from inventory_insight.voice import api as voice_api

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info(f"[LIFESPAN] Inventory backend: {settings.inventory_backend}, model: {settings.gemini_model}")
    if not settings.gemini_api_key:
        logger.warning("[LIFESPAN] ⚠ GEMINI_API_KEY is not set, questions will fail at SQL generation")
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="Inventory Insight Engine API", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, replace with specific origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(query_api.router)
    app.include_router(dashboard_api.router)
    app.include_router(voice_api.router)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    @app.get("/metrics")
    async def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


configure_logging(get_settings().log_level)
app = create_app()


def main():
    uvicorn.run("inventory_insight.api:app", host="0.0.0.0", port=8002)


if __name__ == "__main__":
    main()
