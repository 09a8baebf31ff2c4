"""Shared API dependencies and error translation."""
from typing import Any, Dict

from fastapi import HTTPException, status

from climate_seal.core.exceptions import AppError, NotFoundError, ValidationError
from climate_seal.core.security import get_current_user

__all__ = ["get_current_user", "http_error", "agent_response"]


def http_error(exc: AppError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def agent_response(result: Dict[str, Any]) -> Dict[str, Any]:
    """Pass a successful ``BaseAgent.run`` result through; turn a failure into an HTTP error."""
    if result.get("success"):
        return result
    code = (
        status.HTTP_400_BAD_REQUEST
        if result.get("error_type") == "validation"
        else status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    raise HTTPException(status_code=code, detail=result.get("error") or result.get("message"))
