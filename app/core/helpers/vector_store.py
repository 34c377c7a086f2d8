"""
In-memory vector indexes: one global index for single-document chat and
one per user for retrieval across that user's completed documents.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set

import numpy as np
from langchain_core.documents import Document

from app.core.exceptions import EmbeddingError, IndexNotInitializedError

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    score: float = 0.0


class InMemoryVectorIndex:
    """
    Cosine-similarity index over passage embeddings.

    Passages and vectors are kept in insertion order, which is also the
    tie-break order for equal scores.
    """

    def __init__(self, embedder):
        self.embedder = embedder
        self._documents: List[Document] = []
        self._vectors: Optional[np.ndarray] = None

    def __len__(self) -> int:
        return len(self._documents)

    @classmethod
    async def create_from_documents(cls, docs: Sequence[Document], embedder) -> "InMemoryVectorIndex":
        """Build a fresh index from passages (full rebuild)."""
        index = cls(embedder)
        await index.add_documents(docs)
        return index

    async def embed(self, docs: Sequence[Document]) -> np.ndarray:
        """Embed passages without touching the index."""
        vectors = await self.embedder.embed_documents([doc.page_content for doc in docs])
        if len(vectors) != len(docs):
            raise EmbeddingError(f"Expected {len(docs)} embeddings, received {len(vectors)}")
        return np.asarray(vectors, dtype=np.float32)

    async def add_documents(self, docs: Sequence[Document]) -> "InMemoryVectorIndex":
        """Embed and append passages."""
        if not docs:
            return self
        self.add_embedded(docs, await self.embed(docs))
        return self

    def add_embedded(self, docs: Sequence[Document], vectors: np.ndarray) -> None:
        """Append passages whose vectors were computed already."""
        if not docs:
            return
        if len(docs) != vectors.shape[0]:
            raise EmbeddingError(f"Got {vectors.shape[0]} vectors for {len(docs)} passages")

        normalized = _normalize(vectors)
        if self._vectors is None:
            self._vectors = normalized
        else:
            if self._vectors.shape[1] != normalized.shape[1]:
                raise EmbeddingError(
                    f"Embedding dimension {normalized.shape[1]} does not match "
                    f"index dimension {self._vectors.shape[1]}"
                )
            self._vectors = np.vstack([self._vectors, normalized])
        self._documents.extend(docs)

    def remove_document(self, document_id: Any) -> int:
        """Drop every passage of a document. Returns how many were removed."""
        keep = [
            i for i, doc in enumerate(self._documents)
            if doc.metadata.get("document_id") != document_id
        ]
        removed = len(self._documents) - len(keep)
        if removed:
            self._documents = [self._documents[i] for i in keep]
            self._vectors = self._vectors[keep] if keep else None
        return removed

    async def similarity_search(self, query: str, k: int = 3) -> List[SearchResult]:
        """
        Return the k passages most similar to ``query``, best first.

        Raises:
            IndexNotInitializedError: If the index holds no passages.
        """
        if not self._documents:
            raise IndexNotInitializedError("Vector index is empty")
        vector = await self.embedder.embed_query(query)
        return self.similarity_search_by_vector(vector, k)

    def similarity_search_by_vector(self, vector: Sequence[float], k: int = 3) -> List[SearchResult]:
        if not self._documents:
            raise IndexNotInitializedError("Vector index is empty")

        query = _normalize(np.asarray([vector], dtype=np.float32))[0]
        if query.shape[0] != self._vectors.shape[1]:
            raise EmbeddingError(
                f"Query dimension {query.shape[0]} does not match index dimension {self._vectors.shape[1]}"
            )

        scores = self._vectors @ query
        k = max(0, min(k, len(self._documents)))
        order = np.argsort(-scores, kind="stable")[:k]
        return [
            SearchResult(
                content=self._documents[i].page_content,
                metadata=dict(self._documents[i].metadata),
                score=float(scores[i]),
            )
            for i in order
        ]


def _normalize(vectors: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return vectors / norms


class VectorIndexRegistry:
    """
    Owns the global index and the per-user indexes.

    Per-user indexes are looked up strictly by user id. Mutations of one
    user's index are serialized by that user's lock; embedding runs before
    the lock is taken.
    """

    def __init__(self, embedder):
        self.embedder = embedder
        self._global: Optional[InMemoryVectorIndex] = None
        self._global_lock = asyncio.Lock()
        self._user_indexes: Dict[int, InMemoryVectorIndex] = {}
        self._user_locks: Dict[int, asyncio.Lock] = {}
        self._loaded_users: Set[int] = set()

    def _lock_for(self, user_id: int) -> asyncio.Lock:
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = self._user_locks[user_id] = asyncio.Lock()
        return lock

    @property
    def global_index(self) -> Optional[InMemoryVectorIndex]:
        return self._global

    async def rebuild_global(self, docs: Sequence[Document]) -> InMemoryVectorIndex:
        """
        Replace the global index with one built from ``docs``.

        Callers should search the returned index; another request may
        replace the global one right after.
        """
        async with self._global_lock:
            index = await InMemoryVectorIndex.create_from_documents(docs, self.embedder)
            self._global = index
        logger.info(f"Global vector index rebuilt with {len(index)} passages")
        return index

    async def add_user_documents(self, user_id: int, document_id: Any, docs: Sequence[Document]) -> int:
        """
        Insert a document's passages into the user's index, replacing any
        passages the document had before. Returns the user's index size.
        """
        staging = InMemoryVectorIndex(self.embedder)
        vectors = await staging.embed(docs) if docs else None

        async with self._lock_for(user_id):
            index = self._user_indexes.get(user_id)
            if index is None:
                index = self._user_indexes[user_id] = InMemoryVectorIndex(self.embedder)
                logger.info(f"[User: {user_id}] Created user vector index")
            replaced = index.remove_document(document_id)
            if vectors is not None:
                index.add_embedded(docs, vectors)
            size = len(index)

        logger.info(
            f"[User: {user_id}] Indexed {len(docs)} passages for document {document_id}"
            f"{f' (replaced {replaced})' if replaced else ''}, index size {size}"
        )
        return size

    def get_user_index(self, user_id: int) -> Optional[InMemoryVectorIndex]:
        return self._user_indexes.get(user_id)

    def has_user_index(self, user_id: int) -> bool:
        return user_id in self._user_indexes

    async def remove_user_document(self, user_id: int, document_id: Any) -> int:
        async with self._lock_for(user_id):
            index = self._user_indexes.get(user_id)
            if index is None:
                return 0
            removed = index.remove_document(document_id)
        if removed:
            logger.info(f"[User: {user_id}] Removed {removed} passages of document {document_id}")
        return removed

    def is_corpus_loaded(self, user_id: int) -> bool:
        return user_id in self._loaded_users

    async def load_user_corpus(
        self,
        user_id: int,
        docs: Sequence[Document],
        current_ids: Optional[Callable[[], Iterable[Any]]] = None,
    ) -> Optional[InMemoryVectorIndex]:
        """
        Merge a user's stored passages into their index, e.g. after a restart.

        Documents already indexed by a processing job are replaced, not
        duplicated. ``current_ids`` is called once the user's lock is held;
        passages of documents it no longer returns are dropped, so a delete
        that lands while the corpus is embedding stays deleted.
        """
        vectors = None
        if docs:
            staging = InMemoryVectorIndex(self.embedder)
            vectors = await staging.embed(docs)
        async with self._lock_for(user_id):
            self._loaded_users.add(user_id)
            if docs and current_ids is not None:
                live = set(current_ids())
                kept = [i for i, doc in enumerate(docs) if doc.metadata.get("document_id") in live]
                if len(kept) < len(docs):
                    logger.info(
                        f"[User: {user_id}] Skipped {len(docs) - len(kept)} passages of documents "
                        f"removed during corpus load"
                    )
                docs = [docs[i] for i in kept]
                vectors = vectors[kept]
            if not docs:
                return self._user_indexes.get(user_id)
            index = self._user_indexes.get(user_id)
            if index is None:
                index = self._user_indexes[user_id] = InMemoryVectorIndex(self.embedder)
            for document_id in {doc.metadata.get("document_id") for doc in docs}:
                index.remove_document(document_id)
            index.add_embedded(docs, vectors)
            size = len(index)
        logger.info(f"[User: {user_id}] Loaded user vector index with {size} passages")
        return index

    async def cleanup_user(self, user_id: int) -> bool:
        """Discard a user's index. Returns whether one existed."""
        async with self._lock_for(user_id):
            existed = self._user_indexes.pop(user_id, None) is not None
            self._loaded_users.discard(user_id)
        if existed:
            logger.info(f"[User: {user_id}] Cleaned up user vector index")
        return existed

    def stats(self) -> Dict[str, Any]:
        return {
            "global_index_size": len(self._global) if self._global is not None else 0,
            "user_index_count": len(self._user_indexes),
            "user_index_sizes": {uid: len(idx) for uid, idx in self._user_indexes.items()},
        }
