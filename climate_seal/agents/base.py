"""
Base Agent Class - foundation for the LLM helper agents.
Every agent inherits from this class.
"""
from typing import Dict, Any, Optional
from datetime import datetime
import logging
from abc import ABC, abstractmethod
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from climate_seal.core.exceptions import ValidationError
from climate_seal.models import AgentLog

logger = logging.getLogger(__name__)


class BaseAgent(ABC):
    """Base class for all agents"""

    agent_name: str = "agent"

    def __init__(self, db: Optional[Session] = None, agent_name: Optional[str] = None):
        self.agent_name = agent_name or self.agent_name
        self.db = db

    def _log(self, action: str, status: str, message: str,
             error_details: Optional[str] = None,
             execution_time_ms: Optional[int] = None,
             metadata: Optional[Dict[str, Any]] = None):
        """Record agent activity in the database when a session is attached"""
        if self.db is None:
            return
        try:
            log = AgentLog(
                agent_name=self.agent_name,
                action=action,
                status=status,
                message=message,
                error_details=error_details,
                execution_time_ms=execution_time_ms,
                meta=metadata or {}
            )
            self.db.add(log)
            self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error logging for agent {self.agent_name}: {str(e)}")
            self.db.rollback()

    @abstractmethod
    async def execute(self, **kwargs: Any) -> Dict[str, Any]:
        """
        Main execution method - must be implemented by each agent
        Returns: Dict with 'success' bool and 'data'
        """

    async def run(self, **kwargs: Any) -> Dict[str, Any]:
        """
        Wrapper method that handles timing, logging and error handling
        """
        start_time = datetime.utcnow()

        try:
            logger.info(f"Starting agent {self.agent_name}")

            result = await self.execute(**kwargs)

            execution_time = int((datetime.utcnow() - start_time).total_seconds() * 1000)

            self._log(
                action="execute",
                status="success",
                message="Agent completed successfully",
                execution_time_ms=execution_time,
                metadata=self._summarize(result.get("data")),
            )

            logger.info(f"Agent {self.agent_name} completed in {execution_time}ms")

            return result

        except Exception as e:
            execution_time = int((datetime.utcnow() - start_time).total_seconds() * 1000)

            self._log(
                action="execute",
                status="error",
                message=f"Agent failed: {str(e)}",
                error_details=str(e),
                execution_time_ms=execution_time
            )

            logger.error(f"Agent {self.agent_name} failed: {str(e)}")

            return {
                "success": False,
                "error": str(e),
                "error_type": "validation" if isinstance(e, ValidationError) else "integration",
                "message": f"Agent {self.agent_name} failed"
            }

    @staticmethod
    def _summarize(data: Any) -> Dict[str, Any]:
        if isinstance(data, list):
            return {"items": len(data)}
        if isinstance(data, dict):
            return {"keys": sorted(data.keys())[:20]}
        return {}
