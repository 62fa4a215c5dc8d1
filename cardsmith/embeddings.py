"""OpenAI embedding generation for reference-document ranking.

Wraps the OpenAI embeddings API: fixed model and dimensionality, token
truncation, ordered batches of up to 100 texts. Unlike drafting there is no
deterministic substitute for an embedding, so failures raise.
"""

import logging
import os
from typing import Optional

import numpy as np
import openai
import tiktoken
from openai import OpenAIError

from cardsmith.models import ReferenceDocument
from cardsmith.similarity import cosine_similarity

logger = logging.getLogger(__name__)

MODEL = "text-embedding-3-large"
DIMENSIONS = 3072
MAX_TOKENS = 8191  # text-embedding-3-large per-text token limit
MAX_BATCH_SIZE = 100
MAX_DOCUMENT_CHARS = 30000

# Lazy-loaded tokenizer
_encoding = None


def _get_encoding():
    global _encoding
    if _encoding is None:
        _encoding = tiktoken.encoding_for_model(MODEL)
    return _encoding


class EmbeddingError(Exception):
    """The embedding service could not produce a vector."""


class EmbeddingUnavailableError(EmbeddingError):
    """No API credentials are configured."""


class EmbeddingDimensionError(EmbeddingError, ValueError):
    """A returned vector does not have the configured dimensionality."""


class EmbeddingService:
    """Generate fixed-length embeddings using OpenAI.

    The client is created on first use so the service can be constructed
    (and report availability) without credentials.
    """

    cosine_similarity = staticmethod(cosine_similarity)

    def __init__(
        self,
        model: str = MODEL,
        dimensions: int = DIMENSIONS,
        api_key: Optional[str] = None,
    ):
        self.model = model
        self.dimensions = dimensions
        self._api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self._client = None

    @classmethod
    def from_config(cls, config) -> "EmbeddingService":
        return cls(model=config.embedding_model, dimensions=config.embedding_dimensions)

    def is_available(self) -> bool:
        return bool(self._api_key)

    def _get_client(self):
        if self._client is None:
            if not self._api_key:
                raise EmbeddingUnavailableError("OpenAI API key not configured")
            self._client = openai.OpenAI(api_key=self._api_key)
        return self._client

    @staticmethod
    def _truncate(text: str) -> str:
        """Truncate text to stay within the model's token limit."""
        enc = _get_encoding()
        tokens = enc.encode(text)
        if len(tokens) <= MAX_TOKENS:
            return text
        logger.warning(f"Truncating text from {len(tokens)} to {MAX_TOKENS} tokens")
        return enc.decode(tokens[:MAX_TOKENS])

    def _to_vector(self, embedding) -> np.ndarray:
        vector = np.array(embedding, dtype=np.float32)
        if vector.ndim != 1 or vector.shape[0] != self.dimensions:
            raise EmbeddingDimensionError(
                f"Invalid embedding dimensions: expected {self.dimensions}, got {vector.size}"
            )
        return vector

    def _create(self, inputs: list[str]):
        client = self._get_client()
        try:
            response = client.embeddings.create(
                model=self.model,
                input=inputs,
                dimensions=self.dimensions,
            )
        except OpenAIError as e:
            logger.error(f"Embedding request failed: {e}")
            raise EmbeddingError(f"Failed to generate embedding: {e}") from e
        if not response.data:
            raise EmbeddingError("No embedding data returned from OpenAI")
        return response

    def embed(self, text: str) -> np.ndarray:
        """
        Embed a single text.

        Raises:
            ValueError: If text is empty
            EmbeddingUnavailableError: If no API key is configured
            EmbeddingDimensionError: If the vector length is wrong
        """
        if not text or not text.strip():
            raise ValueError("Cannot embed empty text")

        response = self._create([self._truncate(text)])
        return self._to_vector(response.data[0].embedding)

    def embed_batch(self, texts: list[str]) -> np.ndarray:
        """
        Embed up to 100 texts in one request.

        Rows are returned in input order, whatever order the service reports
        them in.

        Returns:
            Array of shape (len(texts), dimensions); empty input gives an
            empty (0, dimensions) array
        """
        if len(texts) > MAX_BATCH_SIZE:
            raise ValueError(f"Batch size {len(texts)} exceeds limit of {MAX_BATCH_SIZE}")
        if not texts:
            return np.empty((0, self.dimensions), dtype=np.float32)
        if any(not text or not text.strip() for text in texts):
            raise ValueError("Cannot embed empty text in batch")

        response = self._create([self._truncate(text) for text in texts])
        if len(response.data) != len(texts):
            raise EmbeddingError(
                f"Expected {len(texts)} embeddings, got {len(response.data)}"
            )

        ordered = sorted(response.data, key=lambda item: item.index)
        return np.vstack([self._to_vector(item.embedding) for item in ordered])

    def embed_reference_document(self, document: ReferenceDocument, category: Optional[str] = None) -> np.ndarray:
        """Embed a reference document's combined title, metadata and sections."""
        parts = [f"Title: {document.name}"]
        if category:
            parts.append(f"Category: {category}")
        parts.append(f"Description: {document.description}")
        parts.append(f"Tags: {', '.join(document.tags)}")
        if document.technologies:
            parts.append(f"Technologies: {', '.join(document.technologies)}")
        for section in document.sections:
            parts.append(f"{section.title}:\n{section.content}")

        combined = "\n\n".join(parts)
        return self.embed(combined[:MAX_DOCUMENT_CHARS])

    def model_info(self) -> dict:
        return {
            "model": self.model,
            "dimensions": self.dimensions,
            "available": self.is_available(),
        }
