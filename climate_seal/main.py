"""
Climate Seal - FastAPI Application
Carbon footprint accounting backend: LCA workflows, vendors and LLM helpers
"""
from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
from datetime import datetime
from sqlalchemy.exc import SQLAlchemyError
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from climate_seal.database import init_db
from climate_seal.config import settings
from climate_seal.core.security import get_current_user
from climate_seal.agents.registry import AGENT_CLASS_MAP

from climate_seal.api.routes import (
    health,
    auth,
    agents,
    ai,
    vendors,
    purchase_goods,
    workflows,
    checkpoints,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting Climate Seal API...")

    try:
        init_db()
        logger.info("Database initialized")
    except SQLAlchemyError as e:
        logger.error(f"Database initialization failed: {str(e)}")

    logger.info(f"{len(AGENT_CLASS_MAP)} agents loaded, LLM provider {settings.llm_provider}")
    logger.info(f"API running on {settings.app_env} environment")
    yield
    logger.info("Shutting down Climate Seal API...")


app = FastAPI(
    title=settings.app_name,
    description="Backend API for Climate Seal carbon footprint accounting",
    version="1.0.0",
    lifespan=lifespan,
)

# Respect forwarded proto/host from the reverse proxy.
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict:
    return {
        "name": settings.app_name,
        "environment": settings.app_env,
        "timestamp": datetime.utcnow().isoformat(),
    }


prefix = settings.api_v1_prefix

app.include_router(health.router, prefix=prefix, tags=["Health"])
app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["Auth"])
app.include_router(agents.router, prefix=f"{prefix}/agents", tags=["Agents"])
app.include_router(ai.router, prefix=f"{prefix}/ai", tags=["AI"])
app.include_router(
    vendors.router, prefix=f"{prefix}/vendors", tags=["Vendors"], dependencies=[Depends(get_current_user)]
)
app.include_router(
    purchase_goods.router,
    prefix=f"{prefix}/purchase-goods",
    tags=["Purchase Goods"],
    dependencies=[Depends(get_current_user)],
)
app.include_router(workflows.router, prefix=f"{prefix}/workflows", tags=["Workflows"])
app.include_router(checkpoints.router, prefix=f"{prefix}/workflows", tags=["Checkpoints"])
