"""
Health API Routes
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from climate_seal.config import settings
from climate_seal.database import check_database_connection, database_health, get_db

router = APIRouter()


@router.get("/health")
async def health_check() -> JSONResponse:
    """Application and database health"""
    db = database_health()
    ok = bool(db.get("ok")) and check_database_connection()
    return JSONResponse(
        status_code=status.HTTP_200_OK if ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if ok else "degraded",
            "database": db,
        },
    )


@router.get("/health/integrations")
async def check_integrations(db: Session = Depends(get_db)) -> dict:
    """Verify LLM and match API configuration and database connectivity."""
    checks = {
        "dashscope": bool(settings.dashscope_api_key.get_secret_value()),
        "openai": bool(settings.openai_api_key.get_secret_value()),
        "anthropic": bool(settings.anthropic_api_key.get_secret_value()),
        "gemini": bool(settings.google_gemini_api_key.get_secret_value()),
        "climateseal": bool(settings.climateseal_api_url),
    }
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = True
    except SQLAlchemyError:
        checks["database"] = False

    return {
        "integrations": checks,
        "llmProvider": settings.llm_provider,
        "ready": checks["database"] and checks[settings.llm_provider],
        "missing": [k for k, v in checks.items() if not v],
    }
