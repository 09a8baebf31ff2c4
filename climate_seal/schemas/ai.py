from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class ParseCsvRequest(BaseModel):
    csv_content: Optional[str] = Field(default=None, alias="csvContent")
    file_content_as_csv_string: Optional[str] = Field(default=None, alias="fileContentAsCsvString")

    model_config = {"populate_by_name": True}

    @property
    def content(self) -> str:
        return self.csv_content or self.file_content_as_csv_string or ""


class AgentInputRequest(BaseModel):
    input: dict[str, Any] = Field(default_factory=dict)


class TransportRequest(BaseModel):
    nodes: Any = None
