"""
Pytest Configuration and Fixtures.
Shared test fixtures for all test modules.
"""
import asyncio
import os
import re
from typing import Any, Dict, List, Optional

# Point the app at an in-memory database before anything imports settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REQUIRE_BACKEND_HEALTHY"] = "false"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.agents.chat.qa_chat import AnswerComposer
from app.core.document_processor import ProcessingCoordinator
from app.core.helpers.admission import AdmissionController
from app.core.helpers.analyzer import DocumentAnalyzer
from app.core.helpers.chunker import TextChunker
from app.core.helpers.extracter import DocumentExtractor
from app.core.helpers.ocr import OCREnhancer
from app.core.helpers.vector_store import VectorIndexRegistry
from app.models import Base, User
from app.services.chat_service import ChatService
from app.services.document_store import DocumentStore

ANALYSIS_JSON = (
    '{"contractType": "Lease Agreement", "keyTerms": ["rent", "term", "deposit"], '
    '"riskLevel": "low", "mainConcerns": ["late fees", "renewal"], '
    '"summary": "A residential lease. Rent is paid monthly."}'
)


class FakeBackend:
    """Generation backend that records prompts and replays canned responses."""

    def __init__(self, default_response: str = ANALYSIS_JSON):
        self.default_response = default_response
        self.responses: List[str] = []
        self.calls: List[Dict[str, Any]] = []
        self.error: Optional[Exception] = None
        self.available = True
        self.warmups = 0
        self.delay = 0.0

    async def generate(self, prompt: str, **kwargs) -> str:
        self.calls.append({"prompt": prompt, **kwargs})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.responses:
            return self.responses.pop(0)
        return self.default_response

    async def warmup(self) -> bool:
        self.warmups += 1
        return True

    async def is_available(self) -> bool:
        return self.available

    async def check_health(self) -> Dict[str, Any]:
        return {"status": "healthy" if self.available else "unhealthy", "ollama_running": self.available}


class FakeEmbedder:
    """
    Deterministic bag-of-words embedder.

    Each new token gets the next free dimension, so distinct words never
    collide and shared words drive cosine similarity.
    """

    DIMENSIONS = 512

    def __init__(self):
        self.vocabulary: Dict[str, int] = {}
        self.document_calls = 0
        self.query_calls = 0
        self.error: Optional[Exception] = None
        self.delay = 0.0

    def _vector(self, text: str) -> List[float]:
        vector = [0.0] * self.DIMENSIONS
        for token in re.findall(r"[a-z0-9]+", text.lower()):
            if token not in self.vocabulary:
                self.vocabulary[token] = len(self.vocabulary) % self.DIMENSIONS
            vector[self.vocabulary[token]] += 1.0
        return vector

    async def embed_documents(self, texts: List[str]) -> List[List[float]]:
        self.document_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return [self._vector(text) for text in texts]

    async def embed_query(self, text: str) -> List[float]:
        self.query_calls += 1
        if self.error is not None:
            raise self.error
        return self._vector(text)


class RecordingNotifier:
    def __init__(self):
        self.notifications: List[Dict[str, Any]] = []

    def notify(self, user_id, title, message, type="info", document_id=None) -> bool:
        self.notifications.append(
            {"user_id": user_id, "title": title, "message": message, "type": type, "document_id": document_id}
        )
        return True

    def titles(self) -> List[str]:
        return [n["title"] for n in self.notifications]


def make_pdf(page_texts: List[str]) -> bytes:
    """Build a minimal PDF with one line of Helvetica text per page."""
    objects: Dict[int, bytes] = {}
    page_ids = []
    next_id = 4
    for text in page_texts:
        page_id, content_id = next_id, next_id + 1
        next_id += 2
        stream = f"BT /F1 10 Tf 36 720 Td ({text}) Tj ET".encode("latin-1")
        objects[content_id] = b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream"
        objects[page_id] = (
            "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 3 0 R >> >> /Contents {content_id} 0 R >>"
        ).encode()
        page_ids.append(page_id)

    kids = " ".join(f"{page_id} 0 R" for page_id in page_ids)
    objects[1] = b"<< /Type /Catalog /Pages 2 0 R >>"
    objects[2] = f"<< /Type /Pages /Kids [{kids}] /Count {len(page_ids)} >>".encode()
    objects[3] = b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>"

    out = bytearray(b"%PDF-1.4\n")
    offsets = {}
    for object_id in sorted(objects):
        offsets[object_id] = len(out)
        out += f"{object_id} 0 obj\n".encode() + objects[object_id] + b"\nendobj\n"

    xref_offset = len(out)
    size = max(objects) + 1
    out += f"xref\n0 {size}\n".encode()
    out += b"0000000000 65535 f \n"
    for object_id in range(1, size):
        out += f"{offsets[object_id]:010d} 00000 n \n".encode()
    out += f"trailer\n<< /Size {size} /Root 1 0 R >>\nstartxref\n{xref_offset}\n%%EOF\n".encode()
    return bytes(out)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def pdf_factory():
    return make_pdf


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return DocumentStore(session_factory)


@pytest.fixture
def make_user(session_factory):
    def _make_user(email: str) -> User:
        with session_factory() as db:
            user = User(email=email, full_name=email.split("@")[0], is_active=True)
            db.add(user)
            db.commit()
            db.refresh(user)
            return user

    return _make_user


@pytest.fixture
def user(make_user):
    return make_user("alice@example.com")


@pytest.fixture
def other_user(make_user):
    return make_user("bob@example.com")


@pytest.fixture
def registry(embedder):
    return VectorIndexRegistry(embedder)


@pytest.fixture
def chunker():
    return TextChunker()


@pytest.fixture
def admission():
    return AdmissionController(max_per_user=3, max_global=10, user_retry_delay=0.01, global_retry_delay=0.01)


@pytest.fixture
def coordinator(store, notifier, backend, registry, chunker, admission):
    return ProcessingCoordinator(
        store=store,
        notifier=notifier,
        backend=backend,
        extractor=DocumentExtractor(OCREnhancer(backend)),
        analyzer=DocumentAnalyzer(backend),
        chunker=chunker,
        registry=registry,
        admission=admission,
        require_backend_healthy=True,
    )


@pytest.fixture
def composer(backend):
    return AnswerComposer(backend)


@pytest.fixture
def chat_service(store, registry, composer, chunker):
    return ChatService(store=store, registry=registry, composer=composer, chunker=chunker)


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: isolated component tests")
    config.addinivalue_line("markers", "integration: tests spanning several components")
    config.addinivalue_line("markers", "api: HTTP endpoint tests")


