"""HTTP API for MedTutor.

JSON endpoints consumed by the browser client. Handlers are plain ``def``
functions, so FastAPI runs each one in its threadpool and a slow model call
only holds up its own request.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, Header, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from medtutor import __version__
from medtutor.chat.engine import TutorEngine
from medtutor.config import Settings, load_settings
from medtutor.errors import TutorError
from medtutor.models.tutor import (
    AdaptiveCaseRequest,
    AdaptiveCaseResponse,
    CaseResponse,
    ChatReply,
    ChatRequest,
    EvaluateDecisionRequest,
    StepEvaluation,
    UploadResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_engine(request: Request) -> TutorEngine:
    return request.app.state.engine


@router.get("/health")
def health(engine: TutorEngine = Depends(get_engine)):
    """Liveness probe."""
    return {"status": "ok", "llmConfigured": engine.llm_configured}


@router.post("/upload", response_model=UploadResponse)
def upload(
    files: Optional[List[UploadFile]] = File(default=None),
    user_id: Optional[str] = Form(default=None, alias="userId"),
    x_user_id: Optional[str] = Header(default=None),
    engine: TutorEngine = Depends(get_engine),
):
    """Upload PDFs, extract text, embed chunks and store them for the caller."""
    payload = [(f.filename or "document.pdf", f.file.read()) for f in files or []]
    result = engine.ingest(x_user_id or user_id, payload)
    return UploadResponse(message=result.message, chunk_count=result.chunk_count)


@router.post("/chat", response_model=ChatReply)
def chat(
    body: ChatRequest,
    x_user_id: Optional[str] = Header(default=None),
    engine: TutorEngine = Depends(get_engine),
):
    """Socratic tutor turn using only PDF-derived context."""
    reply = engine.chat(body.user_id or x_user_id, body.messages, mode=body.mode)
    return ChatReply(reply=reply)


@router.post("/generate-case", response_model=CaseResponse)
def generate_case(
    x_user_id: Optional[str] = Header(default=None),
    engine: TutorEngine = Depends(get_engine),
):
    """Generate a free-text patient case from the caller's PDFs."""
    return CaseResponse(case=engine.generate_case(x_user_id))


@router.post("/generate-adaptive-case", response_model=AdaptiveCaseResponse)
def generate_adaptive_case(
    body: Optional[AdaptiveCaseRequest] = None,
    x_user_id: Optional[str] = Header(default=None),
    engine: TutorEngine = Depends(get_engine),
):
    """Generate a multi-step case at a difficulty adapted to past performance."""
    body = body or AdaptiveCaseRequest()
    case = engine.generate_adaptive_case(
        x_user_id or body.user_id,
        difficulty_level=body.difficulty_level,
        history=body.performance_history,
    )
    return AdaptiveCaseResponse(case=case, difficulty_level=case.difficulty_level)


@router.post("/evaluate-decision", response_model=StepEvaluation)
def evaluate_decision(
    body: EvaluateDecisionRequest,
    x_user_id: Optional[str] = Header(default=None),
    engine: TutorEngine = Depends(get_engine),
):
    """Grade a learner's decision for one case step."""
    return engine.evaluate_decision(
        x_user_id or body.user_id,
        case=body.case_data,
        step_number=body.step_number,
        decision=body.decision,
        reasoning=body.reasoning,
    )


async def handle_tutor_error(request: Request, exc: TutorError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    else:
        logger.warning("%s %s rejected (%d): %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid request: {location} {first.get('msg', '')}".strip()
    logger.warning("%s %s rejected (400): %s", request.method, request.url.path, errors)
    return JSONResponse(status_code=400, content={"error": message})


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error in %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(settings: Optional[Settings] = None, engine: Optional[TutorEngine] = None) -> FastAPI:
    """Create the FastAPI app.

    Args:
        settings: Runtime settings. Loaded from config/env if not given.
        engine: Tutor engine. Built from settings if not given.

    Returns:
        FastAPI application.
    """
    settings = settings or (engine.settings if engine else load_settings())
    engine = engine or TutorEngine.from_settings(settings)

    app = FastAPI(title="MedTutor API", version=__version__)
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.client_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(TutorError, handle_tutor_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(router, prefix=settings.api_prefix)

    if not engine.llm_configured:
        logger.warning("OPENAI_API_KEY not set; AI endpoints will return 503")

    return app


def launch(
    host: Optional[str] = None,
    port: Optional[int] = None,
    settings: Optional[Settings] = None,
    **kwargs,
):
    """Launch the API server.

    Args:
        host: Host to bind to. Defaults to settings.host.
        port: Port to listen on. Defaults to settings.port.
        settings: Runtime settings.
        **kwargs: Additional arguments for uvicorn.run()
    """
    import uvicorn

    settings = settings or load_settings()
    app = create_app(settings)
    uvicorn.run(
        app,
        host=host or settings.host,
        port=port or settings.port,
        **kwargs,
    )


if __name__ == "__main__":
    launch()
