"""
Embedding service for generating vector embeddings through Ollama's OpenAI-compatible API.
"""
import logging
from typing import List, Optional

from openai import AsyncOpenAI, OpenAIError

from app.core.config import settings
from app.core.exceptions import EmbeddingError

logger = logging.getLogger(__name__)


class EmbeddingService:
    """
    Service for generating text embeddings with the local embedding model.
    Handles batching and error handling for embedding operations.
    """

    MAX_BATCH_SIZE = 64

    def __init__(
        self,
        host: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize embedding service.

        Args:
            host: Ollama host (defaults to settings.OLLAMA_HOST)
            model: Embedding model name (defaults to settings.OLLAMA_EMBEDDING_MODEL)
            timeout: Per-request timeout in seconds
        """
        self.host = (host or settings.OLLAMA_HOST).rstrip("/")
        self.model = model or settings.OLLAMA_EMBEDDING_MODEL
        self.timeout = timeout or settings.OLLAMA_TIMEOUT
        self._client: Optional[AsyncOpenAI] = None

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy initialization of the client."""
        if self._client is None:
            self._client = AsyncOpenAI(
                base_url=f"{self.host}/v1",
                api_key="ollama",
                timeout=self.timeout,
                max_retries=0,
            )
            logger.info("Embedding client initialized")
        return self._client

    async def embed_documents(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for passages.

        All-or-nothing: if any batch fails, no vectors are returned.

        Args:
            texts: Passage texts to embed

        Returns:
            One embedding vector per input, in input order

        Raises:
            EmbeddingError: On backend failure or a malformed response
        """
        if not texts:
            raise EmbeddingError("Cannot embed empty passage list")

        logger.info(f"Generating embeddings for {len(texts)} passages using {self.model}")

        all_embeddings: List[List[float]] = []
        for i in range(0, len(texts), self.MAX_BATCH_SIZE):
            batch = texts[i:i + self.MAX_BATCH_SIZE]
            all_embeddings.extend(await self._embed_batch(batch))

        dimensions = {len(vector) for vector in all_embeddings}
        if len(dimensions) != 1 or 0 in dimensions:
            raise EmbeddingError(f"Inconsistent embedding dimensions: {sorted(dimensions)}")

        return all_embeddings

    async def _embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed a single batch of passages."""
        try:
            response = await self.client.embeddings.create(input=texts, model=self.model)
        except OpenAIError as e:
            logger.error(f"Embedding generation failed: {e}")
            raise EmbeddingError(f"Embedding generation failed: {e}") from e

        if len(response.data) != len(texts):
            raise EmbeddingError(
                f"Expected {len(texts)} embeddings, received {len(response.data)}"
            )

        # Extract embeddings in the correct order
        ordered = sorted(response.data, key=lambda item: item.index)
        embeddings = [[float(val) for val in item.embedding] for item in ordered]

        logger.debug(f"Generated {len(embeddings)} embeddings")
        return embeddings

    async def embed_query(self, query: str) -> List[float]:
        """
        Generate embedding for a single query.

        Args:
            query: Query text to embed

        Returns:
            Embedding vector as list of floats
        """
        if not query.strip():
            raise EmbeddingError("Cannot embed empty query")

        logger.debug("Generating query embedding")
        embeddings = await self._embed_batch([query.strip()])
        return embeddings[0]
