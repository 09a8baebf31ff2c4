"""
AI helper routes: each one runs a single agent and returns ``{success, data}``.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from climate_seal.agents.csv_parser import CsvParserAgent
from climate_seal.agents.evidence_validator import EvidenceValidatorAgent
from climate_seal.agents.result_reranker import ResultRerankerAgent
from climate_seal.agents.search_optimizer import SearchOptimizerAgent
from climate_seal.agents.transport_autofill import TransportAutofillAgent
from climate_seal.api.dependencies import agent_response
from climate_seal.database import get_db
from climate_seal.schemas.ai import AgentInputRequest, ParseCsvRequest, TransportRequest

router = APIRouter()


@router.post("/parse-csv")
async def parse_csv(payload: ParseCsvRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    result = await CsvParserAgent(db=db).run(csv_content=payload.content)
    return agent_response(result)


@router.post("/optimize-search")
async def optimize_search(payload: AgentInputRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    result = await SearchOptimizerAgent(db=db).run(input=payload.input)
    return agent_response(result)


@router.post("/rerank-results")
async def rerank_results(payload: AgentInputRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    result = await ResultRerankerAgent(db=db).run(input=payload.input)
    return agent_response(result)


@router.post("/validate-evidence")
async def validate_evidence(
    sourceName: str = Form(""),
    activityValue: str = Form(""),
    activityUnit: str = Form(""),
    evidenceFile: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    evidence = await evidenceFile.read() if evidenceFile is not None else b""
    result = await EvidenceValidatorAgent(db=db).run(
        source_name=sourceName.strip(),
        activity_value=activityValue.strip(),
        activity_unit=activityUnit.strip(),
        evidence=evidence,
        filename=evidenceFile.filename if evidenceFile is not None else None,
        content_type=evidenceFile.content_type if evidenceFile is not None else None,
    )
    return agent_response(result)


@router.post("/autofill-transport")
async def autofill_transport(payload: TransportRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    result = await TransportAutofillAgent(db=db).run(nodes=payload.nodes)
    return agent_response(result)
