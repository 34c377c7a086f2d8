"""
Contract Q&A agent routing between greetings, platform questions,
document-grounded answers and open-domain answers.
"""
import logging
import random
import re
from typing import Any, Callable, Dict, List, Literal, Optional, TypedDict

from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph
from pydantic import BaseModel, Field

from app.core.agents.chat.prompt import (
    DOCUMENT_SYSTEM_PROMPT,
    DOCUMENT_USER_PROMPT_TEMPLATE,
    GENERAL_SYSTEM_PROMPT,
    GENERAL_USER_PROMPT_TEMPLATE,
    GREETING_RESPONSES,
    PLATFORM_SYSTEM_PROMPT,
    PLATFORM_USER_PROMPT_TEMPLATE,
)
from app.core.config import settings
from app.core.platform_knowledge import classify_query_intent, get_relevant_app_knowledge

logger = logging.getLogger(__name__)

GREETING_PATTERN = re.compile(
    r"^(hi|hello|hey|greetings|good morning|good afternoon|good evening|how are you|what's up|yo)[\s!?.,]*$",
    re.IGNORECASE,
)

QueryType = Literal["platform", "document", "general"]


class ChatAnswer(BaseModel):
    """Answer plus how it was produced."""

    answer: str
    has_context: bool
    query_type: QueryType
    context_source: str
    sources: List[Dict[str, Any]] = Field(default_factory=list)


class AnswerState(TypedDict):
    """State for the Q&A graph."""
    question: str
    provided_context: Optional[str]
    index: Optional[Any]

    is_greeting: bool
    query_type: Optional[str]
    context: str
    context_source: str
    sources: List[Dict[str, Any]]

    answer: Optional[str]
    status: str


def is_greeting(question: str) -> bool:
    return bool(GREETING_PATTERN.match(question.strip()))


class AnswerComposer:
    """
    Compose an answer for a question, optionally grounded in explicit
    context or a vector index.

    Generation errors propagate to the caller; no canned answer replaces them.
    """

    def __init__(
        self,
        backend,
        top_k: Optional[int] = None,
        classifier: Callable[..., str] = classify_query_intent,
    ):
        self.backend = backend
        self.top_k = top_k or settings.RETRIEVAL_TOP_K
        self.classifier = classifier
        self.graph = self._build_graph()

    def _build_graph(self) -> CompiledStateGraph:
        """Build the LangGraph workflow."""
        workflow = StateGraph(AnswerState)

        workflow.add_node("detect_greeting", self._detect_greeting)
        workflow.add_node("assemble_context", self._assemble_context)
        workflow.add_node("generate_answer", self._generate_answer)

        workflow.set_entry_point("detect_greeting")
        workflow.add_conditional_edges(
            "detect_greeting",
            self._route_greeting,
            {
                "greeting": END,
                "question": "assemble_context",
            },
        )
        workflow.add_edge("assemble_context", "generate_answer")
        workflow.add_edge("generate_answer", END)

        return workflow.compile()

    async def _detect_greeting(self, state: AnswerState) -> AnswerState:
        if not is_greeting(state["question"]):
            return {**state, "is_greeting": False, "status": "question"}

        logger.info("Greeting detected, answering without the model")
        return {
            **state,
            "is_greeting": True,
            "query_type": "general",
            "answer": random.choice(GREETING_RESPONSES),
            "context_source": "greeting",
            "status": "completed",
        }

    def _route_greeting(self, state: AnswerState) -> str:
        return "greeting" if state.get("is_greeting") else "question"

    async def _assemble_context(self, state: AnswerState) -> AnswerState:
        """Pick a context source: explicit context, platform knowledge, the index, or none."""
        question = state["question"]
        provided = (state.get("provided_context") or "").strip()

        if provided:
            return {
                **state,
                "query_type": "document",
                "context": provided,
                "context_source": "provided",
                "status": "context_assembled",
            }

        index = state.get("index")
        has_index = index is not None and len(index) > 0
        intent = self.classifier(question, has_documents=has_index)

        if intent == "platform":
            return {
                **state,
                "query_type": "platform",
                "context": get_relevant_app_knowledge(question),
                "context_source": "platform_knowledge",
                "status": "context_assembled",
            }

        if intent == "document" and has_index:
            results = await index.similarity_search(question, k=self.top_k)
            context = "\n\n".join(r.content for r in results if r.content.strip())
            sources = [
                {
                    "document_id": r.metadata.get("document_id"),
                    "title": r.metadata.get("title"),
                    "score": round(r.score, 4),
                }
                for r in results
            ]
            logger.info(f"Retrieved {len(results)} passages for question")
            if context:
                return {
                    **state,
                    "query_type": "document",
                    "context": context,
                    "context_source": "vector_index",
                    "sources": sources,
                    "status": "context_assembled",
                }

        return {
            **state,
            "query_type": "general",
            "context": "",
            "context_source": "none",
            "status": "context_assembled",
        }

    async def _generate_answer(self, state: AnswerState) -> AnswerState:
        question = state["question"]
        context = state.get("context", "")
        query_type = state.get("query_type")

        if query_type == "platform":
            system = PLATFORM_SYSTEM_PROMPT
            prompt = PLATFORM_USER_PROMPT_TEMPLATE.format(context=context, question=question)
        elif query_type == "document":
            system = DOCUMENT_SYSTEM_PROMPT
            prompt = DOCUMENT_USER_PROMPT_TEMPLATE.format(context=context, question=question)
        else:
            system = GENERAL_SYSTEM_PROMPT
            prompt = GENERAL_USER_PROMPT_TEMPLATE.format(question=question)

        answer = await self.backend.generate(
            prompt,
            system=system,
            temperature=0.7,
            top_p=0.9,
            max_tokens=1200,
            extra_options={"top_k": 40, "repeat_penalty": 1.1},
        )
        return {**state, "answer": answer, "status": "completed"}

    async def answer(
        self,
        question: str,
        context: Optional[str] = None,
        index: Optional[Any] = None,
    ) -> ChatAnswer:
        """
        Answer a question.

        Args:
            question: User's question
            context: Explicit context, e.g. one document's full text
            index: Vector index to retrieve from when no context is given

        Returns:
            ChatAnswer

        Raises:
            GenerationError: If the generation model fails
        """
        initial_state: AnswerState = {
            "question": question,
            "provided_context": context,
            "index": index,
            "is_greeting": False,
            "query_type": None,
            "context": "",
            "context_source": "none",
            "sources": [],
            "answer": None,
            "status": "initialized",
        }

        final_state = await self.graph.ainvoke(initial_state)

        return ChatAnswer(
            answer=final_state["answer"] or "",
            has_context=bool(final_state.get("context")),
            query_type=final_state["query_type"],
            context_source=final_state.get("context_source", "none"),
            sources=final_state.get("sources") or [],
        )
