from __future__ import annotations

import logging
import threading
import uuid
from pathlib import Path
from typing import Optional, Protocol

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import Settings, load_settings
from .context_assembler import ContextAssembler, IncomingMessage
from .gemini_client import GeminiClient, GenerationError
from .models import ChatRequest, ChatResponse, ErrorResponse

BASE_DIR = Path(__file__).resolve().parent

logger = logging.getLogger("chichat.app")

MISSING_MESSAGE_ERROR = "Missing 'message' in request body."
MISSING_KEY_ERROR = "GEMINI_API_KEY is not set on the server."
GENERATION_ERROR = "Generation service error"
SERVER_ERROR = "Server error processing request."


class ReplyGenerator(Protocol):
    def generate_reply(self, system_instruction: str, user_message: str) -> str:
        ...


def configure_logging(level_name: str) -> None:
    log_level = getattr(logging, level_name.upper(), logging.INFO)
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
    logging.getLogger("chichat").setLevel(log_level)


def error_response(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def create_app(
    settings: Optional[Settings] = None,
    assembler: Optional[ContextAssembler] = None,
    generator: Optional[ReplyGenerator] = None,
) -> FastAPI:
    """Purpose: Build the FastAPI app with its assembler and generation client.
    Inputs/Outputs: Optional settings, assembler and generator overrides; returns FastAPI.
    Side Effects / State: Configures logging; the Gemini client is created on first use.
    Dependencies: load_settings, ContextAssembler.from_settings, GeminiClient.
    Failure Modes: Invalid numeric settings raise ValueError at startup.
    If Removed: There is no HTTP surface for the chat widget.
    Testing Notes: Pass fakes for assembler/generator and drive it with TestClient.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Chi-Chat Assistant")
    app.state.settings = settings
    app.state.assembler = assembler or ContextAssembler.from_settings(settings)
    app.state.generator = generator
    generator_lock = threading.Lock()

    def get_generator() -> ReplyGenerator:
        # Created lazily so a missing key is reported per request, not at startup.
        with generator_lock:
            if app.state.generator is None:
                app.state.generator = GeminiClient(settings)
            return app.state.generator

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("path=%s rejected malformed body errors=%s", request.url.path, len(exc.errors()))
        return error_response(400, MISSING_MESSAGE_ERROR)

    @app.post(
        "/api/chat",
        response_model=ChatResponse,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    )
    def chat(request: ChatRequest):
        """Purpose: Handle one chat message end to end.
        Inputs/Outputs: Input is ChatRequest; output is ChatResponse or an ErrorResponse body.
        Side Effects / State: Routing, store and generation calls; no persistence.
        Dependencies: ContextAssembler.assemble and the reply generator.
        Failure Modes: 400 empty message, 500 missing key, 502 generation failure,
            500 for anything unexpected (no payload content is leaked).
        If Removed: The chat widget has no backend.
        Testing Notes: Cover each status with fake assembler/generator.
        """
        request_id = uuid.uuid4().hex
        message = request.message
        if not message or not message.strip():
            return error_response(400, MISSING_MESSAGE_ERROR)
        if not settings.gemini_api_key:
            logger.error("request=%s GEMINI_API_KEY is not set", request_id)
            return error_response(500, MISSING_KEY_ERROR)

        logger.info("request=%s question=%s", request_id, message)
        try:
            payload = app.state.assembler.assemble(
                IncomingMessage(text=message, known_customer_name=request.customer_name),
                request_id=request_id,
            )
            reply = get_generator().generate_reply(payload.system_prompt, message)
        except GenerationError as exc:
            logger.error("request=%s generation failed status=%s", request_id, exc.status_code)
            return error_response(502, GENERATION_ERROR, details=exc.detail)
        except Exception:
            logger.exception("request=%s Chat API error", request_id)
            return error_response(500, SERVER_ERROR)

        logger.info("request=%s answer_chars=%s", request_id, len(reply))
        return ChatResponse(reply=reply, customer_name=payload.customer_name)

    return app


ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH, override=True)
else:
    load_dotenv()

app = create_app()
