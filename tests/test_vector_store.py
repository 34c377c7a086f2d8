"""
Unit Tests for the In-Memory Vector Indexes
Tests ranking, user isolation and corpus reloads
"""

import pytest
from langchain_core.documents import Document

from app.core.exceptions import EmbeddingError, IndexNotInitializedError
from app.core.helpers.vector_store import InMemoryVectorIndex, VectorIndexRegistry


def passage(text: str, document_id: int, user_id: int = 1, **extra) -> Document:
    return Document(
        page_content=text,
        metadata={"document_id": document_id, "user_id": user_id, "title": f"Doc {document_id}", **extra},
    )


@pytest.mark.unit
class TestInMemoryVectorIndex:
    """Test cosine search"""

    @pytest.mark.asyncio
    async def test_empty_index_raises(self, embedder):
        """Test searching an empty index is an error, not an empty result"""
        index = InMemoryVectorIndex(embedder)

        with pytest.raises(IndexNotInitializedError):
            await index.similarity_search("rent")

    @pytest.mark.asyncio
    async def test_best_match_first(self, embedder):
        """Test results are ordered by similarity"""
        index = await InMemoryVectorIndex.create_from_documents(
            [
                passage("monthly rent is two thousand dollars", 1),
                passage("employee salary is paid biweekly", 2),
                passage("confidential information must not be disclosed", 3),
            ],
            embedder,
        )

        results = await index.similarity_search("what is the monthly rent", k=3)

        assert results[0].metadata["document_id"] == 1
        assert [r.score for r in results] == sorted((r.score for r in results), reverse=True)

    @pytest.mark.asyncio
    async def test_k_capped_at_index_size(self, embedder):
        """Test asking for more results than passages returns them all"""
        index = await InMemoryVectorIndex.create_from_documents(
            [passage("rent", 1), passage("salary", 2)], embedder
        )

        assert len(await index.similarity_search("rent", k=10)) == 2

    @pytest.mark.asyncio
    async def test_ties_keep_insertion_order(self, embedder):
        """Test equal scores come back in insertion order"""
        index = await InMemoryVectorIndex.create_from_documents(
            [passage("deposit clause", 1, chunk_index=0), passage("deposit clause", 1, chunk_index=1)],
            embedder,
        )

        results = await index.similarity_search("deposit", k=2)

        assert [r.metadata["chunk_index"] for r in results] == [0, 1]

    @pytest.mark.asyncio
    async def test_remove_document(self, embedder):
        """Test removing a document drops all of its passages"""
        index = await InMemoryVectorIndex.create_from_documents(
            [passage("rent one", 1), passage("rent two", 1), passage("salary", 2)], embedder
        )

        assert index.remove_document(1) == 2
        assert len(index) == 1
        results = await index.similarity_search("rent", k=3)
        assert {r.metadata["document_id"] for r in results} == {2}

    @pytest.mark.asyncio
    async def test_remove_last_document_empties_index(self, embedder):
        """Test an index emptied by removal behaves like a new one"""
        index = await InMemoryVectorIndex.create_from_documents([passage("rent", 1)], embedder)
        index.remove_document(1)

        with pytest.raises(IndexNotInitializedError):
            await index.similarity_search("rent")

    @pytest.mark.asyncio
    async def test_embedding_count_mismatch(self, embedder):
        """Test a short embedding response is rejected"""

        async def short(texts):
            return [[1.0, 0.0]]

        embedder.embed_documents = short
        index = InMemoryVectorIndex(embedder)

        with pytest.raises(EmbeddingError):
            await index.add_documents([passage("a", 1), passage("b", 1)])
        assert len(index) == 0


@pytest.mark.unit
class TestVectorIndexRegistry:
    """Test global and per-user indexes"""

    @pytest.mark.asyncio
    async def test_user_indexes_isolated(self, registry):
        """Test one user's passages never appear in another user's results"""
        await registry.add_user_documents(1, 10, [passage("alice rent clause", 10, user_id=1)])
        await registry.add_user_documents(2, 20, [passage("bob rent clause", 20, user_id=2)])

        results = await registry.get_user_index(1).similarity_search("rent clause", k=5)

        assert {r.metadata["user_id"] for r in results} == {1}

    @pytest.mark.asyncio
    async def test_lookup_is_strict(self, registry):
        """Test a missing user index is None, never another user's index"""
        await registry.add_user_documents(1, 10, [passage("rent", 10)])

        assert registry.get_user_index(2) is None
        assert not registry.has_user_index(2)

    @pytest.mark.asyncio
    async def test_readding_document_replaces_passages(self, registry):
        """Test reprocessing a document does not duplicate its passages"""
        await registry.add_user_documents(1, 10, [passage("rent a", 10), passage("rent b", 10)])
        size = await registry.add_user_documents(1, 10, [passage("rent c", 10)])

        assert size == 1

    @pytest.mark.asyncio
    async def test_embedding_failure_leaves_index_untouched(self, registry, embedder):
        """Test a failed embedding does not remove the previous passages"""
        await registry.add_user_documents(1, 10, [passage("rent a", 10)])
        embedder.error = EmbeddingError("model missing")

        with pytest.raises(EmbeddingError):
            await registry.add_user_documents(1, 10, [passage("rent b", 10)])
        assert len(registry.get_user_index(1)) == 1

    @pytest.mark.asyncio
    async def test_load_corpus_merges(self, registry):
        """Test a corpus reload keeps documents indexed since startup without duplicating them"""
        await registry.add_user_documents(1, 10, [passage("fresh upload", 10)])

        index = await registry.load_user_corpus(
            1, [passage("fresh upload", 10), passage("older contract", 11)]
        )

        assert registry.is_corpus_loaded(1)
        assert len(index) == 2

    @pytest.mark.asyncio
    async def test_load_empty_corpus(self, registry):
        """Test a user without documents is marked loaded with no index"""
        assert await registry.load_user_corpus(3, []) is None
        assert registry.is_corpus_loaded(3)

    @pytest.mark.asyncio
    async def test_cleanup_user(self, registry):
        """Test cleanup drops the index and the loaded flag"""
        await registry.load_user_corpus(1, [passage("rent", 10)])

        assert await registry.cleanup_user(1) is True
        assert registry.get_user_index(1) is None
        assert not registry.is_corpus_loaded(1)
        assert await registry.cleanup_user(1) is False

    @pytest.mark.asyncio
    async def test_remove_user_document_without_index(self, registry):
        """Test removal for an unknown user is a no-op"""
        assert await registry.remove_user_document(99, 1) == 0

    @pytest.mark.asyncio
    async def test_rebuild_global_replaces(self, registry):
        """Test each rebuild replaces the global index"""
        first = await registry.rebuild_global([passage("rent", 1), passage("deposit", 1)])
        second = await registry.rebuild_global([passage("salary", 2)])

        assert len(first) == 2
        assert registry.global_index is second
        assert registry.stats()["global_index_size"] == 1
