"""RAG tutor engine for guideline-grounded medical education.

This module provides the core tutoring operations:
1. Ingests uploaded PDFs into a user's knowledge entry
2. Retrieves relevant chunks for a learner's message
3. Assembles Socratic prompts grounded in that context
4. Generates free-text and adaptive multi-step patient cases
5. Evaluates learner decisions on case steps
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError

from medtutor.chunking.window import WindowChunker, ChunkerConfig
from medtutor.config import Settings
from medtutor.errors import ConfigurationError, NoKnowledgeError, UpstreamError, ValidationError
from medtutor.ingest.pdf_processor import combine_documents, extract_pdf_text
from medtutor.llm.client import LLMClient
from medtutor.llm.embeddings import EmbeddingClient
from medtutor.models.content import KnowledgeEntry, RankedChunk
from medtutor.models.tutor import (
    AdaptiveCase,
    ConversationMessage,
    PerformanceRecord,
    StepEvaluation,
)
from medtutor.prompts.system import (
    CHAT_MODES,
    build_adaptive_case_prompt,
    build_case_prompt,
    build_chat_messages,
    get_case_system_prompt,
)
from medtutor.retrieval.rankers import retrieve, select_ranker
from medtutor.storage.knowledge_store import InMemoryKnowledgeStore, KnowledgeStore
from medtutor.tutor.adaptive import next_difficulty, steps_for_level
from medtutor.tutor.evaluator import DecisionEvaluator

logger = logging.getLogger(__name__)

DEFAULT_DIFFICULTY = 1


@dataclass
class IngestResult:
    """Outcome of an upload."""

    message: str
    chunk_count: int
    vector_count: int = 0
    sources: Tuple[str, ...] = ()


class TutorEngine:
    """RAG-based Socratic tutor over per-user uploaded guidelines.

    Example:
        >>> engine = TutorEngine.from_settings(load_settings())
        >>> engine.ingest("user-1", [("ada.pdf", pdf_bytes)])
        >>> message = ConversationMessage(role="user", content="I would start metformin")
        >>> reply = engine.chat("user-1", [message])
        >>> print(reply.content)
    """

    def __init__(
        self,
        settings: Settings,
        store: Optional[KnowledgeStore] = None,
        llm: Optional[LLMClient] = None,
        embedder: Optional[EmbeddingClient] = None,
    ):
        """Initialize the tutor engine.

        Args:
            settings: Runtime settings.
            store: Knowledge store. Defaults to a fresh in-memory store.
            llm: Chat-completion client. Built from settings if not given.
            embedder: Embedding client. Built from settings if not given.
        """
        self.settings = settings
        self.store = store if store is not None else InMemoryKnowledgeStore()
        self.llm = llm or LLMClient(
            api_key=settings.openai_api_key,
            model=settings.chat_model,
            base_url=settings.openai_base_url,
            temperature=settings.chat_temperature,
            timeout=settings.request_timeout,
        )
        self.embedder = embedder or EmbeddingClient(
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
            base_url=settings.openai_base_url,
            timeout=settings.request_timeout,
        )
        self.chunker = WindowChunker(ChunkerConfig(size=settings.chunk_size, overlap=settings.chunk_overlap))
        self.evaluator = DecisionEvaluator(self.llm, temperature=settings.chat_temperature)

    @classmethod
    def from_settings(cls, settings: Settings, store: Optional[KnowledgeStore] = None) -> "TutorEngine":
        return cls(settings, store=store)

    @property
    def llm_configured(self) -> bool:
        return self.llm.is_configured

    # Guards

    def _require_user(self, user_id: Optional[str]) -> str:
        if not user_id:
            raise ValidationError("Missing x-user-id header")
        return user_id

    def _require_llm(self, feature: str = "AI", purpose: str = "it") -> None:
        if not self.llm.is_configured:
            raise ConfigurationError(f"{feature} is not configured. Set OPENAI_API_KEY on the server to enable {purpose}.")

    def _require_knowledge(self, user_id: str) -> KnowledgeEntry:
        entry = self.store.get(user_id)
        if entry is None or entry.is_empty:
            raise NoKnowledgeError()
        return entry

    # Ingestion

    def ingest(self, user_id: Optional[str], files: Sequence[Tuple[str, bytes]]) -> IngestResult:
        """Extract, chunk and embed uploaded PDFs, replacing the user's knowledge.

        Embedding is best-effort: if it fails the chunks are stored without
        vectors and retrieval falls back to keyword scoring.

        Args:
            user_id: Caller identity.
            files: ``(filename, data)`` pairs.

        Returns:
            IngestResult with the chunk count and a user-facing message.
        """
        user_id = self._require_user(user_id)
        if not files:
            raise ValidationError("No files uploaded")

        documents = [extract_pdf_text(data, filename=name) for name, data in files]
        combined = combine_documents(documents)
        chunks = self.chunker.chunk(combined) if combined else []

        vectors: List[List[float]] = []
        if chunks and self.embedder.is_configured:
            try:
                vectors = self.embedder.embed(chunks)
            except UpstreamError as e:
                logger.warning("Failed to create embeddings for user %s; using keyword search: %s", user_id, e.__cause__ or e)

        entry = KnowledgeEntry(
            chunks=tuple(chunks),
            vectors=tuple(tuple(v) for v in vectors),
            sources=tuple(d.filename for d in documents),
        )
        self.store.put(user_id, entry)

        logger.info(
            "Indexed %d file(s) for user %s: %d chunks, %d vectors",
            len(documents),
            user_id,
            len(chunks),
            len(vectors),
        )

        if vectors:
            message = "PDFs uploaded and indexed successfully for AI chat."
        else:
            message = (
                "PDFs uploaded successfully. Text stored (embeddings not created - "
                "OpenAI may not be configured)."
            )

        return IngestResult(
            message=message,
            chunk_count=len(chunks),
            vector_count=len(vectors),
            sources=entry.sources,
        )

    # Retrieval

    def retrieve(self, user_id: str, query: str, top_k: int) -> List[RankedChunk]:
        """Rank the user's chunks against a query."""
        entry = self._require_knowledge(user_id)
        ranker = select_ranker(entry, self.embedder)
        return retrieve(query, entry, ranker, top_k=top_k, fallback_count=self.settings.fallback_chunks)

    # Socratic chat

    def chat(
        self,
        user_id: Optional[str],
        messages: Sequence[ConversationMessage],
        mode: str = "questions",
    ) -> ConversationMessage:
        """Produce the tutor's next message.

        Args:
            user_id: Caller identity.
            messages: Conversation so far, oldest first.
            mode: ``questions`` (Socratic prompts only) or ``feedback``.

        Returns:
            The assistant's reply.
        """
        self._require_llm("AI chat", "the Socratic tutor")
        user_id = self._require_user(user_id)
        if not messages:
            raise ValidationError("Missing messages")
        if mode not in CHAT_MODES:
            raise ValidationError(f"Unknown mode '{mode}'. Use one of: {', '.join(CHAT_MODES)}")

        self._require_knowledge(user_id)

        latest = next((m for m in reversed(messages) if m.role == "user"), None)
        if latest is None:
            raise ValidationError("No user message found")

        context = self.retrieve(user_id, latest.content, top_k=self.settings.chat_top_k)
        chat_messages = build_chat_messages(
            [c.text for c in context],
            messages,
            mode=mode,
            topic=self.settings.topic,
        )

        reply = self.llm.chat(chat_messages, temperature=self.settings.chat_temperature)
        return ConversationMessage(role="assistant", content=reply["content"])

    # Cases

    def _sample_chunks(self, entry: KnowledgeEntry, limit: int) -> List[str]:
        return list(entry.chunks[: min(limit, len(entry.chunks))])

    def generate_case(self, user_id: Optional[str]) -> str:
        """Generate a single free-text patient vignette from the user's PDFs."""
        user_id = self._require_user(user_id)
        self._require_llm()
        entry = self._require_knowledge(user_id)

        sample = self._sample_chunks(entry, self.settings.case_sample_chunks)
        return self.llm.generate(
            build_case_prompt(sample, topic=self.settings.topic),
            system_prompt=get_case_system_prompt(self.settings.topic),
            temperature=self.settings.case_temperature,
        )

    def resolve_difficulty(
        self,
        difficulty_level: Optional[int],
        history: Sequence[PerformanceRecord],
    ) -> int:
        """Next difficulty from the stated level (or the latest record's) and history."""
        if difficulty_level is not None:
            current = difficulty_level
        elif history:
            current = history[-1].difficulty
        else:
            current = DEFAULT_DIFFICULTY
        return next_difficulty(current, history)

    def generate_adaptive_case(
        self,
        user_id: Optional[str],
        difficulty_level: Optional[int] = None,
        history: Sequence[PerformanceRecord] = (),
    ) -> AdaptiveCase:
        """Generate a structured multi-step case at an adaptive difficulty."""
        user_id = self._require_user(user_id)
        self._require_llm()
        entry = self._require_knowledge(user_id)

        level = self.resolve_difficulty(difficulty_level, history)
        step_count = steps_for_level(level)
        sample = self._sample_chunks(entry, self.settings.adaptive_case_sample_chunks)

        data = self.llm.generate_json(
            build_adaptive_case_prompt(sample, level, step_count, topic=self.settings.topic),
            system_prompt=get_case_system_prompt(self.settings.topic),
            temperature=self.settings.case_temperature,
        )
        case = self._parse_case(data, level, step_count)
        logger.info("Generated level %d case with %d steps for user %s", level, len(case.steps), user_id)
        return case

    def _parse_case(self, data: Dict[str, Any], level: int, step_count: int) -> AdaptiveCase:
        steps = data.get("steps")
        if not isinstance(steps, list) or len(steps) < step_count:
            found = len(steps) if isinstance(steps, list) else 0
            logger.error("Generated case has %d steps, expected %d", found, step_count)
            raise UpstreamError("Failed to generate adaptive case")

        steps = [dict(s, stepNumber=i) if isinstance(s, dict) else s for i, s in enumerate(steps[:step_count], 1)]
        payload = dict(data, steps=steps, difficultyLevel=level)
        payload.pop("difficulty_level", None)

        try:
            return AdaptiveCase.model_validate(payload)
        except PydanticValidationError as e:
            logger.error("Generated case did not match schema: %s", e)
            raise UpstreamError("Failed to generate adaptive case") from e

    # Decisions

    def evaluate_decision(
        self,
        user_id: Optional[str],
        case: AdaptiveCase,
        step_number: int,
        decision: str,
        reasoning: str = "",
    ) -> StepEvaluation:
        """Grade a learner's decision for one step of a case."""
        user_id = self._require_user(user_id)
        self._require_llm()
        self._require_knowledge(user_id)

        step = next((s for s in case.steps if s.step_number == step_number), None)
        if step is None:
            raise ValidationError(f"Step {step_number} not found in case")
        if not decision.strip():
            raise ValidationError("Missing decision")

        query = " ".join(part for part in (decision, reasoning, step.content) if part)
        context = self.retrieve(user_id, query, top_k=self.settings.evaluation_top_k)
        return self.evaluator.evaluate(step, decision, reasoning, [c.text for c in context])

    def test_connection(self) -> dict:
        """Test LLM connection.

        Returns:
            Connection status dictionary.
        """
        return self.llm.test_connection()
