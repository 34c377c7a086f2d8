"""
Static knowledge about the platform itself, used to answer questions that
no uploaded document can answer.
"""
import json
import re
from typing import Any, Dict, List, Literal

from app.core.config import settings

QueryIntent = Literal["platform", "document", "general"]

APPLICATION_KNOWLEDGE: Dict[str, Any] = {
    "app_info": {
        "name": settings.PROJECT_NAME,
        "description": "An AI-powered contract intelligence platform for document analysis and interaction",
        "version": "1.0.0",
        "architecture": "FastAPI backend + local Ollama AI",
        "purpose": "Upload legal documents and interact with them through an intelligent chatbot using RAG",
    },
    "features": {
        "core": [
            "Document Upload & Processing (PDF, Word, Images, Text)",
            "AI-Powered Contract Analysis using local Ollama models",
            "OCR with Tesseract + AI cleanup",
            "Interactive RAG Chat for document queries",
            "Processing status notifications",
            "Local AI Processing (no external API costs)",
        ],
        "ai_capabilities": [
            "Contract risk assessment and analysis",
            "Key terms extraction and identification",
            "Context-aware question answering",
            "Semantic document search using vector embeddings",
            "OCR enhancement for scanned documents",
            "Multi-document RAG across all of your documents",
        ],
        "supported_formats": [
            "PDF documents",
            "Microsoft Word files (.doc, .docx)",
            "Images (JPG, PNG, TIFF, BMP, WEBP) with OCR",
            "Plain text files",
        ],
    },
    "policies": {
        "privacy": {
            "data_processing": "All AI processing happens locally using Ollama - no data sent to external APIs",
            "data_storage": "Documents are stored in the application database",
            "user_data": "Passwords are hashed and never stored in plain text",
        },
        "usage_limits": {
            "file_size": "Maximum file size: 10MB per upload",
            "batch_upload": "Up to 10 files per batch upload",
            "file_types": "Supported: PDF, DOC, DOCX, JPG, PNG, TIFF, BMP, WEBP, TXT",
            "processing": "Up to 3 documents processed at once per user",
        },
        "terms_of_service": {
            "purpose": "Platform designed for legal document analysis and contract intelligence",
            "responsibility": "Users are responsible for having the rights to upload their documents",
            "accuracy": "AI analysis is advisory only - not legal advice",
            "data_retention": "Documents are stored until the user deletes them",
        },
        "security": {
            "authentication": "JWT-based authentication with hashed passwords",
            "access_control": "Users can only access their own documents",
            "local_processing": "Sensitive document content never leaves your environment",
        },
    },
    "technical_specs": {
        "ai_models": {
            "text_generation": settings.OLLAMA_MODEL,
            "embeddings": f"{settings.OLLAMA_EMBEDDING_MODEL} for vector search and RAG",
            "ocr": "Tesseract for image text extraction",
            "context_size": f"{settings.OLLAMA_CONTEXT_SIZE} tokens",
        },
        "performance": {
            "typical_response": "2-5 seconds for document queries",
            "processing_time": "Varies by document size and complexity",
        },
        "system_requirements": {
            "minimum": "8GB RAM, 4GB VRAM, 10GB storage",
            "recommended": "16GB+ RAM, 6GB+ VRAM, SSD storage",
            "os_support": "Windows, macOS, Linux (via Ollama)",
        },
    },
    "user_guide": {
        "getting_started": [
            "Create an account and log in",
            "Upload documents",
            "Wait for AI processing to complete",
            "Start chatting with your documents using natural language",
        ],
        "best_practices": [
            "Upload clear, high-quality scans for better OCR results",
            "Ask specific questions for more accurate answers",
            "Break complex queries into smaller, focused questions",
            "Treat AI analysis as advisory information, not legal advice",
        ],
        "troubleshooting": [
            "If processing is slow, ensure Ollama is running locally",
            "For OCR issues, try higher resolution scans",
            "Check the /health endpoint for system status",
            "Ensure the required Ollama models are installed",
        ],
    },
    "api_endpoints": {
        "document_management": [
            "POST /api/v1/documents/upload - Upload and process a document",
            "POST /api/v1/documents/upload-batch - Upload up to 10 documents",
            "GET /api/v1/documents - List your documents",
            "GET /api/v1/documents/{id} - Get a document",
            "GET /api/v1/documents/{id}/analysis - Get the AI analysis",
            "POST /api/v1/documents/{id}/reprocess - Reprocess a document",
            "DELETE /api/v1/documents/{id} - Delete a document",
        ],
        "chat_and_rag": [
            "POST /api/v1/chat/query - Ask a question, with or without a document",
            "GET /api/v1/chat/sessions/{document_id} - Chat history for a document",
            "DELETE /api/v1/chat/sessions/{session_id} - Clear a chat session",
        ],
        "system": [
            "GET /health - Service health",
            "GET /health/ollama - Model backend health",
            "GET /health/processing - Processing statistics",
        ],
    },
    "faq": {
        "general": [
            {
                "question": f"What is {settings.PROJECT_NAME}?",
                "answer": "An AI-powered platform that lets you upload legal documents and chat with them. "
                "It provides contract analysis, risk assessment and natural language interaction with your documents.",
            },
            {
                "question": "How does the AI work?",
                "answer": "Local Ollama models generate text and embeddings. Everything runs locally for complete privacy.",
            },
            {
                "question": "Is my data private?",
                "answer": "Yes. All AI processing happens locally using Ollama, so your documents never leave your environment for analysis.",
            },
            {
                "question": "What file types are supported?",
                "answer": "PDF, Word documents, images (with OCR) and text files. Maximum file size is 10MB.",
            },
        ],
        "technical": [
            {
                "question": "What hardware do I need?",
                "answer": "Minimum: 8GB RAM, 4GB VRAM. Recommended: 16GB+ RAM, 6GB+ VRAM.",
            },
            {
                "question": "Can I use this offline?",
                "answer": "AI processing works offline once the Ollama models are installed.",
            },
        ],
        "usage": [
            {
                "question": "Is the AI analysis legally binding?",
                "answer": "No. The analysis is advisory only and is not legal advice.",
            },
            {
                "question": "Can I analyze multiple documents together?",
                "answer": "Yes. Questions asked without a document search across all of your processed documents.",
            },
        ],
    },
}

# Kept narrow: questions about a document's content ("what is the rent")
# must not be routed here.
_PLATFORM_PATTERNS = [
    re.compile(r"smart\s*contract(\.ai| ai)", re.IGNORECASE),
    re.compile(r"\b(this|the|your) (app|application|platform|system|tool|service)\b", re.IGNORECASE),
    re.compile(r"\b(privacy|private|security|secure|policy|policies)\b", re.IGNORECASE),
    re.compile(r"\b(pricing|price|cost|free tier)\b", re.IGNORECASE),
    re.compile(r"\b(file types?|formats?|supported)\b", re.IGNORECASE),
    re.compile(r"\b(setup|set up|tutorial|getting started|user guide|troubleshoot\w*)\b", re.IGNORECASE),
    re.compile(r"\b(ollama|ai models?|local processing|hardware|system requirements)\b", re.IGNORECASE),
    re.compile(r"\b(register|registration|log ?in|sign ?up|my account)\b", re.IGNORECASE),
    re.compile(r"\b(features|capabilities)\b", re.IGNORECASE),
    re.compile(r"\bhow (do|can) i (upload|delete|reprocess|chat)\b", re.IGNORECASE),
    re.compile(r"\b(api|endpoints?)\b", re.IGNORECASE),
]


def is_platform_query(question: str) -> bool:
    return any(pattern.search(question) for pattern in _PLATFORM_PATTERNS)


def classify_query_intent(question: str, has_documents: bool = False) -> QueryIntent:
    """
    Decide which knowledge source a question should be answered from.

    Args:
        question: The user's question
        has_documents: Whether document context or an index is available

    Returns:
        "platform", "document" or "general"
    """
    if is_platform_query(question):
        return "platform"
    return "document" if has_documents else "general"


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def get_relevant_app_knowledge(question: str) -> str:
    """Assemble the knowledge-base sections that mention the question's topics."""
    lower = question.lower()
    policies = APPLICATION_KNOWLEDGE["policies"]
    features = APPLICATION_KNOWLEDGE["features"]
    guide = APPLICATION_KNOWLEDGE["user_guide"]

    relevant: List[str] = [f"App Information: {_dump(APPLICATION_KNOWLEDGE['app_info'])}"]

    if any(word in lower for word in ("privacy", "private", "data", "security", "secure")):
        relevant.append(f"Privacy & Security: {_dump(policies['privacy'])}")
        relevant.append(f"Security Details: {_dump(policies['security'])}")

    if any(word in lower for word in ("feature", "what can", "capabilit")):
        relevant.append(f"Core Features: {', '.join(features['core'])}")
        relevant.append(f"AI Capabilities: {', '.join(features['ai_capabilities'])}")

    if any(word in lower for word in ("file", "format", "upload", "supported")):
        relevant.append(f"Supported Formats: {', '.join(features['supported_formats'])}")
        relevant.append(f"Usage Limits: {_dump(policies['usage_limits'])}")

    if any(word in lower for word in ("technical", "requirement", "performance", "hardware", "ollama", "model")):
        relevant.append(f"Technical Specs: {_dump(APPLICATION_KNOWLEDGE['technical_specs'])}")

    if any(word in lower for word in ("how to", "how do", "guide", "setup", "set up", "start", "tutorial")):
        relevant.append(f"Getting Started: {', '.join(guide['getting_started'])}")
        relevant.append(f"Best Practices: {', '.join(guide['best_practices'])}")

    if "troubleshoot" in lower or "not working" in lower:
        relevant.append(f"Troubleshooting: {', '.join(guide['troubleshooting'])}")

    if any(word in lower for word in ("terms", "legal advice", "binding", "retention")):
        relevant.append(f"Terms of Service: {_dump(policies['terms_of_service'])}")

    if "api" in lower or "endpoint" in lower:
        relevant.append(f"API Endpoints: {_dump(APPLICATION_KNOWLEDGE['api_endpoints'])}")

    words = {w for w in re.findall(r"[a-z]{4,}", lower)}
    faq = [
        item for item in get_faq()
        if words & set(re.findall(r"[a-z]{4,}", item["question"].lower()))
    ]
    if faq:
        relevant.append(f"Relevant FAQ: {_dump(faq)}")

    return "\n\n".join(relevant)


def get_faq() -> List[Dict[str, str]]:
    faq = APPLICATION_KNOWLEDGE["faq"]
    return [*faq["general"], *faq["technical"], *faq["usage"]]


def get_platform_info() -> Dict[str, Any]:
    """Public subset of the knowledge base for the platform-info endpoint."""
    return {
        "app_info": APPLICATION_KNOWLEDGE["app_info"],
        "features": APPLICATION_KNOWLEDGE["features"],
        "usage_limits": APPLICATION_KNOWLEDGE["policies"]["usage_limits"],
        "faq": get_faq(),
    }
