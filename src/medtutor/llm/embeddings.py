"""Text embeddings through the OpenAI embeddings endpoint."""

from __future__ import annotations

import logging
from typing import List, Optional

from openai import OpenAI

from medtutor.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

Vector = List[float]


class EmbeddingClient:
    """Batched embedding calls, one vector per input text.

    Example:
        >>> embedder = EmbeddingClient(api_key="sk-...")
        >>> vectors = embedder.embed(["metformin", "insulin"])
        >>> len(vectors)
        2
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "text-embedding-3-small",
        base_url: Optional[str] = None,
        timeout: float = 300.0,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self._client: Optional[OpenAI] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _ensure_client(self) -> OpenAI:
        if not self.is_configured:
            raise ConfigurationError()
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)
        return self._client

    def embed(self, texts: List[str]) -> List[Vector]:
        """Embed texts in a single request.

        Args:
            texts: Texts to embed.

        Returns:
            Vectors in the same order as ``texts``.

        Raises:
            ConfigurationError: If no API key is set.
            UpstreamError: If the provider call fails.
        """
        if not texts:
            return []

        client = self._ensure_client()
        try:
            response = client.embeddings.create(model=self.model, input=texts)
        except Exception as e:
            raise UpstreamError("Failed to create embeddings") from e

        # The API reports an index per item; don't rely on response order.
        data = sorted(response.data, key=lambda d: d.index)
        vectors = [list(d.embedding) for d in data]
        if len(vectors) != len(texts):
            raise UpstreamError(f"Expected {len(texts)} embeddings, got {len(vectors)}")
        return vectors

    def embed_query(self, text: str) -> Vector:
        return self.embed([text])[0]
