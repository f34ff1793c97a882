"""
Profile Embedding Client
========================

Calls the OpenAI embeddings endpoint to turn a profile's text into a vector.

The client never retries and never falls back: a missing API key, an HTTP
error or a malformed response all yield ``None`` so that the calling handler
can report the job as failed.
"""

import logging
from typing import List, Optional

from backend.services.config import DEFAULT_EMBEDDING_MODEL
from backend.services.exceptions import EmbeddingAPIError

logger = logging.getLogger(__name__)


class EmbeddingClient:
    """Text-in, vector-out wrapper around ``AsyncOpenAI.embeddings``."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_EMBEDDING_MODEL,
    ):
        self.api_key = api_key
        self.model = model

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def embed(self, text: str) -> Optional[List[float]]:
        """
        Generate an embedding vector for ``text``.

        Args:
            text: Input text to embed.

        Returns:
            The embedding as a list of floats, or None on any failure.
        """
        if not self.is_configured:
            logger.error("OPENAI_API_KEY not set")
            return None

        try:
            return await self._request_embedding(text)
        except EmbeddingAPIError as exc:
            logger.error("Embedding API error: %s", exc)
            return None
        except Exception as exc:
            logger.error("Failed to generate embedding: %s", exc)
            return None

    async def _request_embedding(self, text: str) -> List[float]:
        # Lazy import keeps the SDK off the import path of the HTTP layer
        from openai import APIStatusError, AsyncOpenAI

        client = AsyncOpenAI(api_key=self.api_key)

        try:
            response = await client.embeddings.create(
                model=self.model,
                input=text,
            )
        except APIStatusError as exc:
            raise EmbeddingAPIError(
                message="Embedding request rejected",
                http_status=exc.status_code,
                model=self.model,
                original_error=exc,
            ) from exc

        if not response.data or not response.data[0].embedding:
            raise EmbeddingAPIError(
                message="Embedding response contained no vector",
                model=self.model,
            )

        embedding: List[float] = list(response.data[0].embedding)
        logger.debug(
            "OpenAI embedding generated: model=%s dims=%d",
            self.model,
            len(embedding),
        )
        return embedding
