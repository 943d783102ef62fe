"""
API Request/Response Schemas using Pydantic.

Structure of HTTP responses for the schemaboard API.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List


class DesignCreated(BaseModel):
    project_id: str = Field(..., description="Project the design belongs to")
    path: str = Field(..., description="Object path of the design document")
    content_type: str = Field(..., description="MIME type of the stored document")


class DiagramResponse(BaseModel):
    project_id: str = Field(..., description="Project the diagram belongs to")
    Nodes: List[Dict[str, Any]] = Field(default_factory=list, description="Entity nodes of the diagram")
    Edges: List[Dict[str, Any]] = Field(default_factory=list, description="Relationships between nodes")


class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human readable error")
