"""
Configuration management using Pydantic settings.
"""
from typing import List, Union
import os
from pydantic import AnyHttpUrl, validator
from pydantic_settings import BaseSettings
from dotenv import load_dotenv
load_dotenv()



class Settings(BaseSettings):
    """Application settings."""

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "SmartContract.ai"
    DEBUG: bool = True
    ENV: str = os.getenv("ENV", "development")

    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./smartcontract.db")

    # JWT Configuration (tokens are issued by the auth service)
    SECRET_KEY: str = os.getenv("SECRET_KEY", "change-me")
    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Ollama Configuration
    OLLAMA_HOST: str = os.getenv("OLLAMA_HOST", "http://localhost:11434")
    OLLAMA_MODEL: str = os.getenv("OLLAMA_MODEL", "llama3.2:3b")
    OLLAMA_EMBEDDING_MODEL: str = os.getenv("OLLAMA_EMBEDDING_MODEL", "nomic-embed-text")
    OLLAMA_CONTEXT_SIZE: int = int(os.getenv("OLLAMA_CONTEXT_SIZE", 8192))
    OLLAMA_GPU_LAYERS: int = int(os.getenv("OLLAMA_GPU_LAYERS", -1))
    OLLAMA_TIMEOUT: float = float(os.getenv("OLLAMA_TIMEOUT", 120))
    OLLAMA_HEALTH_TIMEOUT: float = float(os.getenv("OLLAMA_HEALTH_TIMEOUT", 5))

    # LangSmith Tracing Configuration
    LANGSMITH_TRACING: bool = os.getenv("LANGSMITH_TRACING", "false").lower() == "true"
    LANGSMITH_ENDPOINT: str = os.getenv("LANGSMITH_ENDPOINT", "")
    LANGSMITH_API_KEY: str = os.getenv("LANGSMITH_API_KEY", "")
    LANGSMITH_PROJECT: str = os.getenv("LANGSMITH_PROJECT", "")

    # Document Pipeline Configuration
    CHUNK_SIZE: int = int(os.getenv("CHUNK_SIZE", 1000))
    CHUNK_OVERLAP: int = int(os.getenv("CHUNK_OVERLAP", 200))
    MIN_CONTENT_LENGTH: int = 50
    OCR_MIN_TEXT_LENGTH: int = 10
    OCR_LANGUAGE: str = os.getenv("OCR_LANGUAGE", "eng")
    OCR_TIMEOUT: int = int(os.getenv("OCR_TIMEOUT", 60))
    ANALYSIS_MAX_INPUT_CHARS: int = 4000
    RETRIEVAL_TOP_K: int = 3
    INLINE_CONTEXT_MAX_CHARS: int = int(os.getenv("INLINE_CONTEXT_MAX_CHARS", 12000))

    # Admission Control
    MAX_CONCURRENT_PER_USER: int = int(os.getenv("MAX_CONCURRENT_PER_USER", 3))
    MAX_GLOBAL_CONCURRENT: int = int(os.getenv("MAX_GLOBAL_CONCURRENT", 10))
    USER_RETRY_DELAY: float = 2.0
    GLOBAL_RETRY_DELAY: float = 3.0
    REQUIRE_BACKEND_HEALTHY: bool = os.getenv("REQUIRE_BACKEND_HEALTHY", "true").lower() == "true"

    # File Upload Configuration
    MAX_UPLOAD_SIZE: int = int(os.getenv("MAX_UPLOAD_SIZE", 10485760))  # 10MB
    MAX_BATCH_FILES: int = 10
    ALLOWED_MIME_TYPES: List[str] = [
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
        "image/jpeg",
        "image/png",
        "image/tiff",
        "image/bmp",
        "image/webp",
    ]

    # CORS Configuration
    BACKEND_CORS_ORIGINS: Union[List[AnyHttpUrl], str] = "*"

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v):
        if v == "*" or v == ["*"]:
            return "*"
        if isinstance(v, str):
            return [i.strip() for i in v.split(",")]
        return v

    class Config:
        """Pydantic config."""

        env_file = ".env"
        case_sensitive = True


settings = Settings()
