"""
StudyShift — Study Material Transformer
========================================
FastAPI entry point.
  • POST /api/transform — study text → flashcards | summary | mind map | questions | quiz
  • Transformation history kept in process memory
  • Validation errors → 400, unknown ids → 404, anything unexpected → 500
  • AI failures never surface as errors: content degrades to fallbacks instead
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from studyshift.core.config import settings
from studyshift.schemas.transformation import ErrorResponse
from studyshift.api.endpoints.transformations import router as transformations_router

# ── Logging ──────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
)
for noisy in ("httpx", "httpcore", "groq"):
    logging.getLogger(noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

# ── App ──────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="StudyShift — Study Material Transformer",
    description=(
        "Paste study text, pick a transformation type,\n"
        "receive AI-generated flashcards, summaries, mind maps, questions or quizzes."
    ),
    version=VERSION,
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


# ── Exception Handlers ───────────────────────────────────────────────────────
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are a 400 with a readable message."""
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "Invalid value").removeprefix("Value error, ")
        messages.append(f"{field}: {message}" if field else message)

    logger.info(f"[VALIDATION] {request.url.path}: {'; '.join(messages)}")
    body = ErrorResponse(error="; ".join(messages) or "Invalid request")
    return JSONResponse(status_code=400, content=body.model_dump(by_alias=True))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all: every unhandled exception returns a clean JSON envelope."""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    body = ErrorResponse(
        error="An internal server error occurred.",
        detail=str(exc),
    )
    return JSONResponse(status_code=500, content=body.model_dump(by_alias=True))


# ── CORS ─────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Health Check ─────────────────────────────────────────────────────────────
@app.get("/", tags=["System"])
async def health_check():
    return {
        "status": "operational",
        "service": "StudyShift Study Material Transformer",
        "version": VERSION,
        "provider": settings.AI_PROVIDER,
    }


app.include_router(transformations_router, prefix="/api", tags=["Transformations"])
