from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class WorkflowCreate(BaseModel):
    name: str
    description: str = ""
    status: str = "draft"
    is_public: bool = Field(default=False, alias="isPublic")
    scene_info: dict[str, Any] = Field(default_factory=dict, alias="sceneInfo")
    nodes: list[dict[str, Any]] = Field(default_factory=list)
    edges: list[dict[str, Any]] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class WorkflowUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    is_public: Optional[bool] = Field(default=None, alias="isPublic")
    scene_info: Optional[dict[str, Any]] = Field(default=None, alias="sceneInfo")

    model_config = {"populate_by_name": True}


class GraphUpdate(BaseModel):
    nodes: list[dict[str, Any]]
    edges: list[dict[str, Any]] = Field(default_factory=list)


class ActionRequest(BaseModel):
    operation: str
    node_id: Optional[str] = Field(default=None, alias="nodeId")
    content: Any = None
    data: Any = None
    source: Optional[str] = None
    target: Optional[str] = None
    layout_type: Optional[str] = Field(default=None, alias="layoutType")
    file_name: Optional[str] = Field(default=None, alias="fileName")

    model_config = {"populate_by_name": True}

    def to_action(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "nodeId": self.node_id,
            "content": self.content,
            "data": self.data,
            "source": self.source,
            "target": self.target,
            "layoutType": self.layout_type,
            "fileName": self.file_name,
        }


class LayoutRequest(BaseModel):
    layout_type: str = Field(default="normal", alias="layoutType")

    model_config = {"populate_by_name": True}


class FactorMatchRequest(BaseModel):
    node_ids: Optional[list[str]] = Field(default=None, alias="nodeIds")
    use_ai: bool = Field(default=False, alias="useAi")

    model_config = {"populate_by_name": True}


class TransportAutofillRequest(BaseModel):
    node_ids: Optional[list[str]] = Field(default=None, alias="nodeIds")

    model_config = {"populate_by_name": True}


class CheckpointSave(BaseModel):
    name: str
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    version: str = "1.0"
    data: Optional[dict[str, Any]] = None
    settings: dict[str, Any] = Field(default_factory=dict)
    chat_history: Optional[list[Any]] = Field(default=None, alias="chatHistory")

    model_config = {"populate_by_name": True}


class CheckpointImport(BaseModel):
    document: str
