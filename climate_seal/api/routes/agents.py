"""
Agents API Routes
Inspect the LLM helper agents and their recent runs
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Dict, Any, List, Optional

from climate_seal.agents.registry import AGENT_CLASS_MAP
from climate_seal.database import get_db
from climate_seal.models import AgentLog

router = APIRouter()


@router.get("/")
async def list_agents() -> List[Dict[str, Any]]:
    """Registered agents"""
    return [
        {"name": name, "description": (cls.__doc__ or "").strip().split("\n")[0]}
        for name, cls in AGENT_CLASS_MAP.items()
    ]


@router.get("/logs")
async def recent_agent_logs(
    limit: int = 100,
    agent_name: Optional[str] = None,
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """Recent agent execution logs"""
    query = db.query(AgentLog)
    if agent_name:
        query = query.filter(AgentLog.agent_name == agent_name)
    logs = query.order_by(AgentLog.created_at.desc()).limit(limit).all()
    return [
        {
            "id": str(l.id),
            "agent_name": l.agent_name,
            "action": l.action,
            "status": l.status,
            "message": l.message,
            "error_details": l.error_details,
            "execution_time_ms": l.execution_time_ms,
            "metadata": l.meta or {},
            "created_at": l.created_at.isoformat() if l.created_at else None,
        }
        for l in logs
    ]
