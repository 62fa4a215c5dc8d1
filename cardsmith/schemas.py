"""Request and response schemas for the tool and CLI surfaces.

Payloads arrive from the canvas client in camelCase; every alias also accepts
the snake_case field name.
"""

from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from cardsmith.kb.base import KBFilters, clamp_limit
from cardsmith.models import CardRequest, NodeContext


class ValidationError(Exception):
    """Custom exception for validation errors"""
    pass


P = TypeVar("P", bound=BaseModel)


def parse_payload(model: Type[P], data: Optional[dict]) -> P:
    """
    Validate a payload dict

    Raises:
        ValidationError: With a one-line summary of every field error
    """
    try:
        return model.model_validate(data or {})
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or model.__name__}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(f"Invalid {model.__name__}: {problems}") from e


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RelatedNodePayload(_Payload):
    """Neighbouring node reference"""
    id: Optional[str] = Field(None, description="Node id")
    label: str = Field(..., description="Node label")
    type: str = Field("unknown", description="Node type")
    relation: Optional[str] = Field(None, description="Edge label")
    summary: Optional[str] = Field(None, description="Short summary")


class NodeIntentPayload(_Payload):
    """Kickoff intent answers"""
    idea: Optional[str] = Field(None, alias="coreIdea")
    problem: Optional[str] = None
    primary_audience: Optional[str] = Field(None, alias="primaryAudience")
    core_outcome: Optional[str] = Field(None, alias="coreOutcome")
    launch_scope: Optional[str] = Field(None, alias="launchScope")
    primary_risk: Optional[str] = Field(None, alias="primaryRisk")
    tag: Optional[str] = Field(None, description="Auto-classification tag")


class NodePayload(_Payload):
    """Node a card is composed for"""
    id: str = Field("node", description="Node id")
    label: str = Field(..., min_length=1, description="Node label")
    type: str = Field("requirement", description="Node type (root, frontend, backend, requirement, doc)")
    domain: Optional[str] = Field(None, description="Domain ring")
    summary: Optional[str] = Field(None, description="Free-text summary")
    tags: List[str] = Field(default_factory=list)
    related_nodes: List[RelatedNodePayload] = Field(default_factory=list, alias="relatedNodes")
    intent: Optional[NodeIntentPayload] = None

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "id": "n-42",
                "label": "Checkout Service",
                "type": "backend",
                "domain": "tech",
                "summary": "Handles carts, payment authorisation and order creation.",
                "tags": ["payments", "orders"],
            }
        },
    )

    def to_model(self) -> NodeContext:
        return NodeContext.from_dict(self.model_dump())


class SectionPayload(_Payload):
    """Card section slot"""
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    body: Optional[str] = None


class CardPayload(_Payload):
    """Card being filled in"""
    id: str = Field("card", description="Card id")
    title: str = Field("", description="Card title")
    template_id: Optional[str] = Field(None, alias="templateId")
    sections: List[SectionPayload] = Field(default_factory=list)
    checklist: Optional[List[str]] = None

    def to_model(self) -> CardRequest:
        return CardRequest.from_dict(self.model_dump())


class KBComposePayload(_Payload):
    """Knowledge base filter"""
    node_types: List[str] = Field(default_factory=list)
    domains: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    limit: int = Field(5, description="Result count, clamped to 1..20")
    query: Optional[str] = Field(None, description="Text for semantic re-ranking")

    def to_filters(self) -> KBFilters:
        return KBFilters(
            node_types=tuple(self.node_types),
            domains=tuple(self.domains),
            tags=tuple(self.tags),
            limit=clamp_limit(self.limit),
            query=self.query,
        )


class TemplateSummary(BaseModel):
    """Recommended template"""
    id: str
    label: str
    description: str
    card_type: str
    reason: Optional[str] = None


class RecommendResponse(BaseModel):
    """Response from recommend_cards"""
    node_type: str
    domain: Optional[str] = None
    recommendations: List[TemplateSummary]
    total_found: int
