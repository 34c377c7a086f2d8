import asyncio
import logging
import os
from typing import Any, Dict, Optional

import httpx
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import SecretStr

from app.core.config import settings
from app.core.exceptions import GenerationError

logger = logging.getLogger(__name__)


class LLMFactory:
    """Factory for creating configured LLM instances with tracing."""

    @staticmethod
    def create_llm(
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.7,
        top_p: float = 0.9,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        extra_options: Optional[Dict[str, Any]] = None,
        tracing_project: Optional[str] = None,
    ) -> ChatOpenAI:
        """
        Create a ChatOpenAI instance bound to Ollama's OpenAI-compatible API.

        Args:
            model: The model name to use (defaults to OLLAMA_MODEL).
            base_url: Ollama host (defaults to OLLAMA_HOST).
            temperature: The temperature for generation.
            top_p: Nucleus sampling cutoff.
            max_tokens: Upper bound on generated tokens.
            timeout: Per-request timeout in seconds.
            extra_options: Ollama runtime options merged into the request body.
            tracing_project: The LangSmith project name for tracing.
        """
        # Set env vars for tracing if provided
        if settings.LANGSMITH_TRACING:
            os.environ["LANGCHAIN_TRACING_V2"] = "true"
            os.environ["LANGCHAIN_ENDPOINT"] = settings.LANGSMITH_ENDPOINT
            os.environ["LANGCHAIN_API_KEY"] = settings.LANGSMITH_API_KEY
            os.environ["LANGCHAIN_PROJECT"] = tracing_project or settings.LANGSMITH_PROJECT

        options: Dict[str, Any] = {
            "num_ctx": settings.OLLAMA_CONTEXT_SIZE,
            "num_gpu": settings.OLLAMA_GPU_LAYERS,
        }
        if extra_options:
            options.update(extra_options)

        host = (base_url or settings.OLLAMA_HOST).rstrip("/")
        return ChatOpenAI(
            model=model or settings.OLLAMA_MODEL,
            base_url=f"{host}/v1",
            # Ollama ignores the key but the client requires one
            api_key=SecretStr("ollama"),
            temperature=temperature,
            top_p=top_p,
            max_tokens=max_tokens,
            timeout=timeout or settings.OLLAMA_TIMEOUT,
            max_retries=0,
            extra_body={"options": options},
        )


class OllamaBackend:
    """
    Generation side of the local inference backend.

    Wraps prompt completion, model warmup and the availability check
    the coordinator polls before admitting work.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        model: Optional[str] = None,
        embedding_model: Optional[str] = None,
        timeout: Optional[float] = None,
        health_timeout: Optional[float] = None,
    ):
        self.host = (host or settings.OLLAMA_HOST).rstrip("/")
        self.model = model or settings.OLLAMA_MODEL
        self.embedding_model = embedding_model or settings.OLLAMA_EMBEDDING_MODEL
        self.timeout = timeout or settings.OLLAMA_TIMEOUT
        self.health_timeout = health_timeout or settings.OLLAMA_HEALTH_TIMEOUT
        self.models_warmed_up = False

    async def generate(
        self,
        prompt: str,
        *,
        temperature: float = 0.7,
        top_p: float = 0.9,
        max_tokens: int = 1200,
        extra_options: Optional[Dict[str, Any]] = None,
        system: Optional[str] = None,
    ) -> str:
        """
        Run a single-prompt completion and return the generated text.

        Raises:
            GenerationError: On any backend failure or when the caller-side
                timeout expires.
        """
        llm = LLMFactory.create_llm(
            model=self.model,
            base_url=self.host,
            temperature=temperature,
            top_p=top_p,
            max_tokens=max_tokens,
            timeout=self.timeout,
            extra_options=extra_options,
        )
        messages = [SystemMessage(content=system)] if system else []
        messages.append(HumanMessage(content=prompt))
        try:
            response = await asyncio.wait_for(
                llm.ainvoke(messages),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Generation timed out after {self.timeout}s")
            raise GenerationError(f"Generation timed out after {self.timeout}s") from e
        except Exception as e:
            logger.error(f"Generation failed: {e}")
            raise GenerationError(f"Generation failed: {e}") from e

        return str(response.content)

    async def warmup(self) -> bool:
        """Load the generation model into memory with a one-token prompt."""
        if self.models_warmed_up:
            return True

        try:
            logger.info("Warming up AI models...")
            await self.generate("Hello", temperature=0.1, max_tokens=1)
            self.models_warmed_up = True
            logger.info("Models warmed up successfully")
            return True
        except GenerationError as e:
            logger.warning(f"Model warmup failed: {e}")
            return False

    async def check_health(self) -> Dict[str, Any]:
        """Check if Ollama is running and the configured models are installed."""
        try:
            async with httpx.AsyncClient(timeout=self.health_timeout) as client:
                response = await client.get(f"{self.host}/api/tags")
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            return {
                "status": "unhealthy",
                "ollama_running": False,
                "error": str(e),
                "suggestion": "Please ensure Ollama is running and models are installed",
            }

        names = [m.get("name", "") for m in data.get("models", [])]
        has_main = any(self.model in name for name in names)
        has_embedding = any(self.embedding_model in name for name in names)
        return {
            "status": "healthy",
            "ollama_running": True,
            "main_model": self.model if has_main else "not found",
            "embedding_model": self.embedding_model if has_embedding else "not found",
            "available_models": names,
        }

    async def is_available(self) -> bool:
        health = await self.check_health()
        return bool(health.get("ollama_running"))

    async def ensure_models(self) -> bool:
        """Pull the generation and embedding models if they are missing."""
        health = await self.check_health()
        if not health["ollama_running"]:
            logger.error("Ollama is not running. Please start Ollama first.")
            return False

        missing = []
        if health["main_model"] == "not found":
            missing.append(self.model)
        if health["embedding_model"] == "not found":
            missing.append(self.embedding_model)

        try:
            # pulls can take minutes, so they get no timeout
            async with httpx.AsyncClient(timeout=None) as client:
                for name in missing:
                    logger.info(f"Pulling model: {name}...")
                    response = await client.post(
                        f"{self.host}/api/pull", json={"model": name, "stream": False}
                    )
                    response.raise_for_status()
                    logger.info(f"Model {name} pulled successfully")
        except httpx.HTTPError as e:
            logger.error(f"Error ensuring models: {e}")
            return False

        return True
