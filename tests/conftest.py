"""Shared fixtures for MedTutor tests."""

import json
from unittest.mock import Mock

import fitz
import pytest

from medtutor.chat.engine import TutorEngine
from medtutor.config import Settings
from medtutor.llm.client import LLMClient
from medtutor.llm.embeddings import EmbeddingClient
from medtutor.models.tutor import AdaptiveCase
from medtutor.storage.knowledge_store import InMemoryKnowledgeStore


def make_pdf(*pages: str) -> bytes:
    """Build an in-memory PDF with one page per text argument."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def make_encrypted_pdf(text: str, password: str = "secret") -> bytes:
    """Build a password-protected PDF that cannot be opened without the password."""
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), text)
    data = doc.tobytes(encryption=fitz.PDF_ENCRYPT_AES_256, user_pw=password, owner_pw=password)
    doc.close()
    return data


def make_case_dict(step_count: int = 3, difficulty: int = 1) -> dict:
    return {
        "difficultyLevel": difficulty,
        "title": "New diagnosis",
        "patientPresentation": "A 58-year-old with newly diagnosed type 2 diabetes.",
        "steps": [
            {
                "stepNumber": i,
                "title": f"Step {i}",
                "content": f"Findings for step {i}: HbA1c 8.{i}%",
                "decisionPrompt": "What would you do next?",
                "expectedConsiderations": ["renal function", "cardiovascular risk"],
            }
            for i in range(1, step_count + 1)
        ],
        "correctApproach": "Start metformin and reassess in three months.",
        "keyLearningPoints": ["Metformin is first-line therapy"],
    }


@pytest.fixture
def settings():
    return Settings(openai_api_key="test-key")


@pytest.fixture
def mock_llm():
    llm = Mock(spec=LLMClient)
    llm.is_configured = True
    llm.chat.return_value = {"role": "assistant", "content": "What is the patient's eGFR?"}
    llm.generate.return_value = "Patient: 62-year-old woman with T2DM."
    llm.generate_json.return_value = {}
    return llm


@pytest.fixture
def mock_embedder():
    embedder = Mock(spec=EmbeddingClient)
    embedder.is_configured = False
    return embedder


@pytest.fixture
def store():
    return InMemoryKnowledgeStore()


@pytest.fixture
def engine(settings, store, mock_llm, mock_embedder):
    return TutorEngine(settings, store=store, llm=mock_llm, embedder=mock_embedder)


@pytest.fixture
def metformin_pdf():
    return make_pdf("Metformin is first-line therapy")


@pytest.fixture
def sample_case():
    return AdaptiveCase.model_validate(make_case_dict())


def evaluation_json(score: float, can_proceed: bool = True) -> str:
    return json.dumps(
        {
            "score": score,
            "isAppropriate": can_proceed,
            "feedback": "Reasonable choice.",
            "strengths": ["Considered renal function"],
            "gaps": [],
            "canProceed": can_proceed,
        }
    )
