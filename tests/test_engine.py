"""
Tests for the tutor engine
"""
import pytest

from medtutor.errors import ConfigurationError, NoKnowledgeError, UpstreamError, ValidationError
from medtutor.models.content import KnowledgeEntry
from medtutor.models.tutor import ConversationMessage, PerformanceRecord

from conftest import make_case_dict, make_pdf


def user_message(text):
    return ConversationMessage(role="user", content=text)


class TestIngest:
    """Test upload handling"""

    def test_ingest_without_embeddings(self, engine, store, metformin_pdf):
        result = engine.ingest("user-1", [("ada.pdf", metformin_pdf)])

        entry = store.get("user-1")
        assert result.chunk_count == 1
        assert result.vector_count == 0
        assert "embeddings not created" in result.message
        assert entry.chunks[0].startswith("\n\n[FILE: ada.pdf]\n")
        assert "Metformin is first-line therapy" in entry.chunks[0]
        assert entry.sources == ("ada.pdf",)

    def test_ingest_with_embeddings(self, engine, store, mock_embedder, metformin_pdf):
        mock_embedder.is_configured = True
        mock_embedder.embed.return_value = [[0.1, 0.2, 0.3]]

        result = engine.ingest("user-1", [("ada.pdf", metformin_pdf)])

        assert result.vector_count == 1
        assert result.message == "PDFs uploaded and indexed successfully for AI chat."
        assert store.get("user-1").vectors == ((0.1, 0.2, 0.3),)

    def test_embedding_failure_degrades_to_keyword(self, engine, store, mock_embedder, metformin_pdf):
        mock_embedder.is_configured = True
        mock_embedder.embed.side_effect = UpstreamError("Failed to create embeddings")

        result = engine.ingest("user-1", [("ada.pdf", metformin_pdf)])

        assert result.chunk_count == 1
        assert store.get("user-1").chunks
        assert not store.get("user-1").has_vectors

    def test_upload_replaces_prior_knowledge(self, engine, store):
        engine.ingest("user-1", [("old.pdf", make_pdf("Sulfonylureas"))])
        engine.ingest("user-1", [("new.pdf", make_pdf("Insulin glargine"))])

        entry = store.get("user-1")
        assert entry.sources == ("new.pdf",)
        assert not any("Sulfonylureas" in c for c in entry.chunks)

    def test_multiple_files_are_concatenated(self, engine, store):
        engine.ingest("user-1", [("a.pdf", make_pdf("Alpha text")), ("b.pdf", make_pdf("Beta text"))])
        text = "".join(store.get("user-1").chunks)
        assert text.index("[FILE: a.pdf]") < text.index("[FILE: b.pdf]")

    def test_missing_user(self, engine, metformin_pdf):
        with pytest.raises(ValidationError):
            engine.ingest(None, [("ada.pdf", metformin_pdf)])

    def test_no_files(self, engine):
        with pytest.raises(ValidationError) as exc_info:
            engine.ingest("user-1", [])
        assert exc_info.value.message == "No files uploaded"


class TestChat:
    """Test Socratic chat turns"""

    def test_questions_mode_grounded_in_upload(self, engine, mock_llm, metformin_pdf):
        engine.ingest("user-1", [("ada.pdf", metformin_pdf)])

        reply = engine.chat("user-1", [user_message("I would start metformin")], mode="questions")

        assert reply.role == "assistant"
        assert reply.content.endswith("?")
        messages = mock_llm.chat.call_args[0][0]
        assert "Metformin is first-line therapy" in messages[1]["content"]
        assert "QUESTIONS MODE" in messages[2]["content"]
        assert messages[-1] == {"role": "user", "content": "I would start metformin"}
        assert mock_llm.chat.call_args[1]["temperature"] == 0.3

    def test_no_upload(self, engine):
        with pytest.raises(NoKnowledgeError) as exc_info:
            engine.chat("user-1", [user_message("hi")])
        assert "upload PDFs first" in exc_info.value.message

    def test_unconfigured_llm(self, engine, mock_llm):
        mock_llm.is_configured = False
        with pytest.raises(ConfigurationError):
            engine.chat("user-1", [user_message("hi")])

    def test_missing_messages(self, engine, store):
        store.put("user-1", KnowledgeEntry(chunks=("ctx",)))
        with pytest.raises(ValidationError):
            engine.chat("user-1", [])

    def test_no_user_message(self, engine, store):
        store.put("user-1", KnowledgeEntry(chunks=("ctx",)))
        with pytest.raises(ValidationError):
            engine.chat("user-1", [ConversationMessage(role="assistant", content="Hello")])

    def test_unknown_mode(self, engine, store):
        store.put("user-1", KnowledgeEntry(chunks=("ctx",)))
        with pytest.raises(ValidationError):
            engine.chat("user-1", [user_message("hi")], mode="lecture")

    def test_uses_latest_user_message_for_retrieval(self, engine, store, mock_llm):
        store.put("user-1", KnowledgeEntry(chunks=("about insulin", "about metformin", "about statins")))

        engine.chat(
            "user-1",
            [user_message("insulin"), ConversationMessage(role="assistant", content="Why?"), user_message("metformin")],
        )

        context = mock_llm.chat.call_args[0][0][1]["content"]
        assert "about metformin" in context
        assert "about insulin" not in context

    def test_vector_retrieval(self, engine, store, mock_embedder, mock_llm):
        mock_embedder.is_configured = True
        mock_embedder.embed_query.return_value = [0.0, 1.0]
        store.put("user-1", KnowledgeEntry(chunks=("north", "east"), vectors=((1.0, 0.0), (0.0, 1.0))))

        engine.chat("user-1", [user_message("which way?")])

        context = mock_llm.chat.call_args[0][0][1]["content"]
        assert "east" in context
        assert "north" not in context

    def test_query_embedding_failure_propagates(self, engine, store, mock_embedder):
        mock_embedder.is_configured = True
        mock_embedder.embed_query.side_effect = UpstreamError()
        store.put("user-1", KnowledgeEntry(chunks=("a",), vectors=((1.0,),)))

        with pytest.raises(UpstreamError):
            engine.chat("user-1", [user_message("hi")])


class TestCases:
    """Test case generation and evaluation"""

    def setup_chunks(self, store, count=20):
        store.put("user-1", KnowledgeEntry(chunks=tuple(f"chunk {i}" for i in range(count))))

    def test_generate_case_samples_ten_chunks(self, engine, store, mock_llm):
        self.setup_chunks(store)

        assert engine.generate_case("user-1") == "Patient: 62-year-old woman with T2DM."

        prompt = mock_llm.generate.call_args[0][0]
        assert "chunk 9" in prompt
        assert "chunk 10" not in prompt
        assert mock_llm.generate.call_args[1]["temperature"] == 0.7

    def test_generate_case_requires_user(self, engine):
        with pytest.raises(ValidationError):
            engine.generate_case(None)

    def test_adaptive_case_raises_level(self, engine, store, mock_llm):
        self.setup_chunks(store)
        mock_llm.generate_json.return_value = make_case_dict(step_count=5)
        history = [PerformanceRecord(score=0.9, difficulty=3) for _ in range(5)]

        case = engine.generate_adaptive_case("user-1", difficulty_level=3, history=history)

        assert case.difficulty_level == 4
        assert len(case.steps) == 5
        prompt = mock_llm.generate_json.call_args[0][0]
        assert "DIFFICULTY LEVEL 4 of 5" in prompt
        assert "chunk 14" in prompt
        assert "chunk 15" not in prompt

    def test_adaptive_case_defaults_to_latest_record_level(self, engine, store, mock_llm):
        self.setup_chunks(store)
        mock_llm.generate_json.return_value = make_case_dict(step_count=5)

        case = engine.generate_adaptive_case("user-1", history=[PerformanceRecord(score=0.6, difficulty=4)])

        assert case.difficulty_level == 4

    def test_adaptive_case_extra_steps_truncated(self, engine, store, mock_llm):
        self.setup_chunks(store)
        mock_llm.generate_json.return_value = make_case_dict(step_count=6)

        case = engine.generate_adaptive_case("user-1", difficulty_level=1)

        assert [s.step_number for s in case.steps] == [1, 2, 3]

    def test_adaptive_case_too_few_steps(self, engine, store, mock_llm):
        self.setup_chunks(store)
        mock_llm.generate_json.return_value = make_case_dict(step_count=2)

        with pytest.raises(UpstreamError):
            engine.generate_adaptive_case("user-1", difficulty_level=1)

    def test_adaptive_case_renumbers_steps(self, engine, store, mock_llm):
        self.setup_chunks(store)
        data = make_case_dict(step_count=3)
        for step in data["steps"]:
            step["stepNumber"] = 0
        mock_llm.generate_json.return_value = data

        case = engine.generate_adaptive_case("user-1", difficulty_level=1)

        assert [s.step_number for s in case.steps] == [1, 2, 3]

    def test_evaluate_decision_retrieves_top_five(self, engine, store, mock_llm, sample_case):
        store.put("user-1", KnowledgeEntry(chunks=tuple(f"metformin note {i}" for i in range(8))))
        mock_llm.generate_json.return_value = {"score": 0.8, "canProceed": True}

        evaluation = engine.evaluate_decision("user-1", sample_case, 1, "Start metformin", "first-line")

        assert evaluation.can_proceed is True
        prompt = mock_llm.generate_json.call_args[0][0]
        assert prompt.count("metformin note") == 5

    def test_evaluate_unknown_step(self, engine, store, sample_case):
        self.setup_chunks(store)
        with pytest.raises(ValidationError):
            engine.evaluate_decision("user-1", sample_case, 9, "Start metformin")

    def test_evaluate_without_upload(self, engine, sample_case):
        with pytest.raises(NoKnowledgeError):
            engine.evaluate_decision("user-1", sample_case, 1, "Start metformin")
