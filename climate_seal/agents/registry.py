"""
Agent registry for runtime execution.
Maps agent names to concrete agent classes.
"""
from typing import Dict, Type

from climate_seal.agents.base import BaseAgent
from climate_seal.agents.csv_parser import CsvParserAgent
from climate_seal.agents.evidence_validator import EvidenceValidatorAgent
from climate_seal.agents.result_reranker import ResultRerankerAgent
from climate_seal.agents.search_optimizer import SearchOptimizerAgent
from climate_seal.agents.transport_autofill import TransportAutofillAgent


AGENT_CLASS_MAP: Dict[str, Type[BaseAgent]] = {
    CsvParserAgent.agent_name: CsvParserAgent,
    SearchOptimizerAgent.agent_name: SearchOptimizerAgent,
    ResultRerankerAgent.agent_name: ResultRerankerAgent,
    EvidenceValidatorAgent.agent_name: EvidenceValidatorAgent,
    TransportAutofillAgent.agent_name: TransportAutofillAgent,
}


def get_agent(agent_name: str, db=None) -> BaseAgent:
    agent_cls = AGENT_CLASS_MAP.get(agent_name)
    if agent_cls is None:
        raise KeyError(f"Unknown agent '{agent_name}'")
    return agent_cls(db=db)
