# tests/test_embeddings.py
"""Tests for the OpenAI embedding service."""

from unittest.mock import MagicMock, patch

import numpy as np
import pytest


@pytest.fixture(autouse=True)
def fake_encoding():
    """Token counting without downloading a tokenizer."""
    encoding = MagicMock()
    encoding.encode.side_effect = lambda text: text.split()
    encoding.decode.side_effect = lambda tokens: " ".join(tokens)
    with patch("cardsmith.embeddings._get_encoding", return_value=encoding):
        yield encoding


def _response(*vectors, indices=None):
    response = MagicMock()
    indices = indices or list(range(len(vectors)))
    response.data = [MagicMock(embedding=v, index=i) for v, i in zip(vectors, indices)]
    return response


class TestEmbeddingService:
    def test_embed_single(self):
        """Embed one text and pass model and dimensions through."""
        from cardsmith.embeddings import EmbeddingService

        with patch("cardsmith.embeddings.openai") as mock_openai:
            create = mock_openai.OpenAI.return_value.embeddings.create
            create.return_value = _response([0.1, 0.2, 0.3, 0.4])
            service = EmbeddingService(dimensions=4, api_key="sk-test")
            result = service.embed("hello world")

        assert isinstance(result, np.ndarray)
        assert result.shape == (4,)
        assert create.call_args.kwargs == {
            "model": "text-embedding-3-large", "input": ["hello world"], "dimensions": 4,
        }

    def test_batch_rows_follow_input_order(self):
        """Rows are sorted by the index the service reports."""
        from cardsmith.embeddings import EmbeddingService

        with patch("cardsmith.embeddings.openai") as mock_openai:
            mock_openai.OpenAI.return_value.embeddings.create.return_value = _response(
                [0.0, 1.0], [1.0, 0.0], indices=[1, 0]
            )
            service = EmbeddingService(dimensions=2, api_key="sk-test")
            result = service.embed_batch(["first", "second"])

        assert result.shape == (2, 2)
        assert result[0].tolist() == [1.0, 0.0]
        assert result[1].tolist() == [0.0, 1.0]

    def test_batch_limit_checked_before_request(self):
        """More than 100 texts raise without calling the API."""
        from cardsmith.embeddings import EmbeddingService

        with patch("cardsmith.embeddings.openai") as mock_openai:
            service = EmbeddingService(dimensions=2, api_key="sk-test")
            with pytest.raises(ValueError):
                service.embed_batch([f"text {i}" for i in range(101)])

        mock_openai.OpenAI.return_value.embeddings.create.assert_not_called()

    def test_empty_batch(self):
        from cardsmith.embeddings import EmbeddingService

        result = EmbeddingService(dimensions=3, api_key="sk-test").embed_batch([])
        assert result.shape == (0, 3)

    @pytest.mark.parametrize("texts", [[""], ["ok", "   "]])
    def test_empty_text_in_batch_raises(self, texts):
        from cardsmith.embeddings import EmbeddingService

        with pytest.raises(ValueError):
            EmbeddingService(dimensions=2, api_key="sk-test").embed_batch(texts)

    def test_empty_text_raises(self):
        from cardsmith.embeddings import EmbeddingService

        with pytest.raises(ValueError):
            EmbeddingService(api_key="sk-test").embed("  ")

    def test_wrong_dimensions(self):
        from cardsmith.embeddings import EmbeddingDimensionError, EmbeddingService

        with patch("cardsmith.embeddings.openai") as mock_openai:
            mock_openai.OpenAI.return_value.embeddings.create.return_value = _response([0.1, 0.2])
            service = EmbeddingService(dimensions=4, api_key="sk-test")
            with pytest.raises(EmbeddingDimensionError):
                service.embed("hello")

    def test_unavailable_without_key(self):
        from cardsmith.embeddings import EmbeddingService, EmbeddingUnavailableError

        service = EmbeddingService()
        assert not service.is_available()
        assert service.model_info() == {
            "model": "text-embedding-3-large", "dimensions": 3072, "available": False,
        }
        with pytest.raises(EmbeddingUnavailableError):
            service.embed("hello")

    def test_key_from_environment(self, monkeypatch):
        from cardsmith.embeddings import EmbeddingService

        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert EmbeddingService().is_available()

    def test_api_error_wrapped(self):
        from openai import OpenAIError

        from cardsmith.embeddings import EmbeddingError, EmbeddingService

        with patch("cardsmith.embeddings.openai") as mock_openai:
            mock_openai.OpenAI.return_value.embeddings.create.side_effect = OpenAIError("rate limited")
            service = EmbeddingService(dimensions=2, api_key="sk-test")
            with pytest.raises(EmbeddingError, match="rate limited"):
                service.embed("hello")

    def test_long_text_truncated(self, fake_encoding):
        from cardsmith.embeddings import MAX_TOKENS, EmbeddingService

        with patch("cardsmith.embeddings.openai") as mock_openai:
            create = mock_openai.OpenAI.return_value.embeddings.create
            create.return_value = _response([0.5, 0.5])
            EmbeddingService(dimensions=2, api_key="sk-test").embed("word " * (MAX_TOKENS + 10))

        sent = create.call_args.kwargs["input"][0]
        assert len(sent.split()) == MAX_TOKENS

    def test_embed_reference_document(self):
        from cardsmith.embeddings import EmbeddingService
        from cardsmith.models import DocSection, ReferenceDocument

        doc = ReferenceDocument(
            id="d", name="Backend API PRD", description="REST", tags=("api",),
            technologies=("FastAPI",),
            sections=(DocSection(title="Design", key="design", content="Layers"),),
        )
        with patch("cardsmith.embeddings.openai") as mock_openai:
            create = mock_openai.OpenAI.return_value.embeddings.create
            create.return_value = _response([0.5, 0.5])
            EmbeddingService(dimensions=2, api_key="sk-test").embed_reference_document(doc, category="tech")

        sent = create.call_args.kwargs["input"][0]
        assert sent.startswith("Title: Backend API PRD\n\nCategory: tech")
        assert "Technologies: FastAPI" in sent
        assert sent.endswith("Design:\nLayers")
