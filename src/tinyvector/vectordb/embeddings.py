"""Embedding generation for the VectorDB module."""

from __future__ import annotations

import logging
import threading
import time

from tinyvector.vectordb.exceptions import EmbeddingError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "all-MiniLM-L12-v2"


class EmbeddingGenerator:
    """Generate embeddings for text content using sentence-transformers.

    The model is loaded on first use.  Its default output has 384
    dimensions, matching the default collection configuration.  Calls
    into the model are serialized, so one generator can be shared between
    request threads.
    """

    def __init__(self, model_name: str = DEFAULT_MODEL) -> None:
        """Initialize the embedding generator.

        Args:
            model_name: Name of the sentence-transformer model to use.
        """
        self._model_name = model_name
        self._model = None
        self._lock = threading.Lock()

    def _load_model(self) -> None:
        """Lazily load the sentence-transformer model."""
        if self._model is None:
            started = time.monotonic()
            logger.info("Loading embedding model '%s'", self._model_name)
            try:
                from sentence_transformers import SentenceTransformer

                self._model = SentenceTransformer(self._model_name)
            except ImportError as exc:
                raise EmbeddingError(
                    "sentence-transformers is required for embedding generation. "
                    "Install with: pip install 'tinyvector[embeddings]'"
                ) from exc
            except Exception as exc:
                raise EmbeddingError(
                    f"Failed to load model '{self._model_name}': {exc}"
                ) from exc
            logger.info(
                "Loaded embedding model '%s' in %.2fs",
                self._model_name,
                time.monotonic() - started,
            )

    @property
    def model_name(self) -> str:
        """Return the name of the embedding model."""
        return self._model_name

    def embed(self, text: str) -> list[float]:
        """Generate an embedding vector for the given text.

        Args:
            text: The text to embed. Must not be empty.

        Returns:
            A list of floats representing the embedding vector.

        Raises:
            ValueError: If text is empty or whitespace-only.
            EmbeddingError: If embedding generation fails.
        """
        if not text or not text.strip():
            raise ValueError("Cannot embed empty or whitespace-only text")

        with self._lock:
            self._load_model()
            try:
                embedding = self._model.encode(text, convert_to_numpy=True)
            except Exception as exc:
                raise EmbeddingError(
                    f"Failed to generate embedding: {exc}"
                ) from exc
        return embedding.tolist()

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Args:
            texts: List of texts to embed. Empty list returns empty list.
                Each text must not be empty.

        Returns:
            A list of embedding vectors in the same order as input texts.

        Raises:
            ValueError: If any text is empty or whitespace-only.
            EmbeddingError: If embedding generation fails.
        """
        if not texts:
            return []

        for i, text in enumerate(texts):
            if not text or not text.strip():
                raise ValueError(
                    f"Cannot embed empty or whitespace-only text at index {i}"
                )

        with self._lock:
            self._load_model()
            try:
                embeddings = self._model.encode(texts, convert_to_numpy=True)
            except Exception as exc:
                raise EmbeddingError(
                    f"Failed to generate batch embeddings: {exc}"
                ) from exc
        return [emb.tolist() for emb in embeddings]
