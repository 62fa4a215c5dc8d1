"""Shared test helpers."""

import json

import pytest

from cardsmith.drafting.providers.base import Completion, LLMProvider


class StubProvider(LLMProvider):
    """Provider returning a canned response or raising."""

    def __init__(self, text=None, error=None, usage=None):
        self.text = text
        self.error = error
        self.usage = usage
        self.calls = []

    @property
    def name(self):
        return "stub"

    def complete(self, system, user, timeout):
        self.calls.append({"system": system, "user": user, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return Completion(text=self.text, usage=self.usage)


def sections_response(sections, confidence=None, notes=None):
    """JSON text in the shape the model is asked for."""
    data = {"sections": [{"title": title, "body": body} for title, body in sections]}
    if notes:
        data["notes"] = notes
    if confidence is not None:
        data["quality"] = {"confidence": confidence}
    return json.dumps(data)


@pytest.fixture(autouse=True)
def no_api_keys(monkeypatch):
    """Tests never reach a real service."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("CARDSMITH_KB_ROOT", raising=False)
    monkeypatch.delenv("CARDSMITH_DB", raising=False)


@pytest.fixture
def checkout_node():
    from cardsmith.models import NodeContext

    return NodeContext(id="n-1", label="Checkout Service", type="backend", domain="tech")


@pytest.fixture
def rich_node():
    from cardsmith.models import NodeContext, RelatedNode

    return NodeContext(
        id="n-2",
        label="Checkout Service",
        type="backend",
        domain="tech",
        summary=(
            "Handles cart validation, payment authorisation and order creation for the "
            "storefront. Owns the order state machine and publishes order events to "
            "fulfilment and analytics consumers."
        ),
        tags=("payments", "orders", "api", "postgres", "events", "checkout"),
        related_nodes=(RelatedNode(label="Payment Gateway", type="backend", relation="calls"),),
    )


def _write(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


@pytest.fixture
def kb_root(tmp_path):
    """A small knowledge base: three documents and four fragments."""
    root = tmp_path / "kb"
    _write(root / "catalog.json", {
        "kb_version": "1",
        "items": [
            {
                "id": "backend_api_001", "name": "Backend API PRD", "version": "1",
                "node_types": ["backend"], "domains": ["Tech"], "tags": ["api", "rest"],
                "path": "prds/backend_api_001.json",
                "stack_keywords": ["FastAPI", "PostgreSQL"],
                "risk_profile": ["Breaking API changes"],
            },
            {
                "id": "data_pipeline_004", "name": "Data Pipeline PRD", "version": "1",
                "node_types": ["requirement"], "domains": ["data-ai"], "tags": ["etl"],
                "path": "prds/data_pipeline_004.json",
            },
            {
                "id": "go_microservices_011", "name": "Go Microservices PRD", "version": "1",
                "node_types": ["backend"], "domains": ["tech"], "tags": ["grpc"],
                "path": "prds/go_microservices_011.json",
            },
        ],
    })
    _write(root / "prds" / "backend_api_001.json", {
        "id": "backend_api_001",
        "name": "Backend API PRD",
        "description": "REST service template",
        "sections": [
            {"title": "System Design", "key": "system_design", "content": "Layered service with a repository per aggregate."},
            {"title": "API Endpoints", "key": "api_endpoints", "content": "Versioned REST endpoints under /v1."},
        ],
    })
    _write(root / "prds" / "data_pipeline_004.json", {
        "id": "data_pipeline_004",
        "name": "Data Pipeline PRD",
        "sections": [{"title": "Sources", "key": "sources", "content": "Batch and streaming sources."}],
    })
    _write(root / "prds" / "go_microservices_011.json", {
        "id": "go_microservices_011",
        "name": "Go Microservices PRD",
        "sections": [{"title": "Deployment", "key": "deployment", "content": "Blue/green deploys on Kubernetes."}],
    })
    _write(root / "fragments" / "risks" / "payment.json", {
        "id": "risk-payments", "type": "risk_mitigation", "for": ["backend"],
        "content": {"risk": "Payment provider outage", "mitigations": ["Add fallback gateway"]},
    })
    _write(root / "fragments" / "quality" / "ac.json", {
        "id": "ac-api", "type": "acceptance_criteria", "for": ["tech"],
        "content": ["Endpoints documented in OpenAPI", "p95 latency under 300ms"],
    })
    _write(root / "fragments" / "design" / "matrix.json", {
        "id": "dm-storage", "type": "decision_matrix", "for": ["backend"],
        "content": [{"option": "PostgreSQL", "pros": "Transactions", "cons": "Ops overhead"}],
    })
    _write(root / "fragments" / "data" / "kpis.json", {
        "id": "kpi-data", "type": "kpi_set", "for": ["data-ai"],
        "content": [{"name": "Freshness", "target": "< 1h"}],
    })
    return root
