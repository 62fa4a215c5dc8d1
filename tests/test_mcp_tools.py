# tests/test_mcp_tools.py
"""Tests for MCP tool registration and behaviour."""

from unittest.mock import MagicMock

import pytest


def _capture(register, *args):
    """Run a register_* function against a mock server and return the tool functions."""
    mcp = MagicMock()
    captured = {}

    def capture_tool():
        def decorator(fn):
            captured[fn.__name__] = fn
            return fn
        return decorator

    mcp.tool = capture_tool
    register(mcp, *args)
    return captured


@pytest.fixture
def card_tools():
    from cardsmith.composer import CardComposer
    from cardsmith.config import ComposerConfig
    from cardsmith.tools.card_tools import register_card_tools

    composer = CardComposer(config=ComposerConfig(provider="none"))
    yield _capture(register_card_tools, composer)
    composer.close()


class TestCardTools:
    def test_get_card_template(self, card_tools):
        result = card_tools["get_card_template"]("okrCard")
        assert result["label"] == "OKR Card"
        assert [s["title"] for s in result["sections"]] == ["Objective", "Key Results"]

    def test_get_unknown_template(self, card_tools):
        assert card_tools["get_card_template"]("nope") == {"error": "Unknown template: nope"}

    def test_recommend_cards(self, card_tools):
        result = card_tools["recommend_cards"]("requirement", "operations")
        assert result["total_found"] == 2
        assert [r["id"] for r in result["recommendations"]] == ["operationsRunbook", "monitoringChecklist"]

    def test_generate_card_content(self, card_tools):
        result = card_tools["generate_card_content"](
            {"id": "n-1", "label": "Checkout Service", "type": "backend", "domain": "tech",
             "relatedNodes": [{"label": "Payments", "type": "backend"}]},
            {"id": "c-1", "templateId": "adrSummary"},
        )
        assert [s["title"] for s in result["sections"]] == ["Decision", "Context", "Consequences"]
        assert result["used_fallback"] is True
        assert "Related nodes supplied for extra context (+6)" in result["accuracy"]["factors"]

    def test_generate_card_content_invalid_node(self, card_tools):
        result = card_tools["generate_card_content"]({"type": "backend"}, {})
        assert result["error"].startswith("Invalid NodePayload")


class TestKBTools:
    def test_kb_compose(self, kb_root):
        from cardsmith.embeddings import EmbeddingService
        from cardsmith.kb.file_store import FileKnowledgeBase
        from cardsmith.tools.kb_tools import register_kb_tools

        tools = _capture(register_kb_tools, FileKnowledgeBase(kb_root), EmbeddingService())
        result = tools["kb_compose"](node_types=["backend"], domains=["tech"], tags=["api"], limit=99)

        assert result["match_stage"] == "strict"
        assert result["selected_count"] == 1
        assert result["prds"][0]["id"] == "backend_api_001"
        assert result["provenance"]["input"]["limit"] == 20
        assert [f["id"] for f in result["fragments"]] == ["dm-storage", "ac-api", "risk-payments"]

    def test_kb_compose_without_knowledge_base(self):
        from cardsmith.embeddings import EmbeddingService
        from cardsmith.tools.kb_tools import register_kb_tools

        tools = _capture(register_kb_tools, None, EmbeddingService())
        assert "error" in tools["kb_compose"](node_types=["backend"])

    def test_kb_compose_broken_knowledge_base(self, tmp_path):
        from cardsmith.embeddings import EmbeddingService
        from cardsmith.kb.file_store import FileKnowledgeBase
        from cardsmith.tools.kb_tools import register_kb_tools

        tools = _capture(register_kb_tools, FileKnowledgeBase(tmp_path), EmbeddingService())
        assert "Missing knowledge base file" in tools["kb_compose"]()["error"]

    def test_embedding_info(self):
        from cardsmith.embeddings import EmbeddingService
        from cardsmith.tools.kb_tools import register_kb_tools

        tools = _capture(register_kb_tools, None, EmbeddingService(dimensions=256))
        assert tools["embedding_info"]() == {
            "model": "text-embedding-3-large", "dimensions": 256, "available": False,
        }


def test_create_server_registers_tools():
    from cardsmith.composer import CardComposer
    from cardsmith.config import ComposerConfig
    from cardsmith.mcp_server import create_server

    composer = CardComposer(config=ComposerConfig(provider="none"))
    try:
        server = create_server(composer)
    finally:
        composer.close()

    assert set(server._tool_manager._tools) == {
        "get_card_template", "recommend_cards", "generate_card_content", "kb_compose", "embedding_info",
    }
