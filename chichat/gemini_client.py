from __future__ import annotations

import logging
from typing import Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from .config import Settings

logger = logging.getLogger("chichat.generation")

FALLBACK_REPLY = "Sorry, I had trouble generating a reply."


class GenerationError(Exception):
    """Raised when the hosted model call fails; carries upstream status and detail."""

    def __init__(self, detail: str, status_code: Optional[int] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class GeminiClient:
    """Thin wrapper around the Gemini SDK for single-turn replies."""

    def __init__(self, settings: Settings) -> None:
        """Purpose: Configure the Gemini SDK from injected settings.
        Inputs/Outputs: Input is Settings; no return value.
        Side Effects / State: Configures the SDK API key.
        Dependencies: google.generativeai and Settings from config.
        Failure Modes: Raises ValueError if the API key or model name is missing.
        If Removed: The chat endpoint cannot produce replies.
        Testing Notes: Validate missing key raises ValueError.
        """
        if not settings.gemini_api_key:
            raise ValueError("GEMINI_API_KEY is required")
        self._model_name = _normalize_model_name(settings.gemini_model)
        if not self._model_name:
            raise ValueError("Gemini model name is required")
        self._max_output_tokens = settings.gemini_max_output_tokens
        self._temperature = settings.gemini_temperature
        self._timeout = settings.gemini_timeout_seconds
        genai.configure(api_key=settings.gemini_api_key)

    def generate_reply(self, system_instruction: str, user_message: str) -> str:
        """Purpose: Generate one reply for a directive payload and a user message.
        Inputs/Outputs: Inputs are the system instruction and raw user text; returns text.
        Side Effects / State: One outbound call to the Gemini API.
        Dependencies: genai.GenerativeModel.generate_content.
        Failure Modes: SDK/API errors raise GenerationError with status and detail;
            empty or blocked output returns FALLBACK_REPLY.
        If Removed: The assembled payload is never turned into an answer.
        Testing Notes: Replace the client with a fake in endpoint tests.
        """
        model = genai.GenerativeModel(self._model_name, system_instruction=system_instruction)
        try:
            response = model.generate_content(
                user_message,
                generation_config={
                    "temperature": self._temperature,
                    "max_output_tokens": self._max_output_tokens,
                },
                request_options={"timeout": self._timeout},
            )
        except google_exceptions.GoogleAPICallError as exc:
            logger.error("Gemini API error status=%s detail=%s", exc.code, exc.message)
            raise GenerationError(str(exc.message or exc), status_code=_status_code(exc)) from exc
        except google_exceptions.GoogleAPIError as exc:
            logger.error("Gemini API error detail=%s", exc)
            raise GenerationError(str(exc)) from exc

        return _extract_text(response)


def _extract_text(response: object) -> str:
    # response.text raises ValueError when the candidate was blocked or empty.
    try:
        text: Optional[str] = getattr(response, "text", None)
    except ValueError:
        logger.warning("Gemini response carried no text part")
        text = None
    text = (text or "").strip()
    return text or FALLBACK_REPLY


def _status_code(exc: google_exceptions.GoogleAPICallError) -> Optional[int]:
    code = exc.code
    if isinstance(code, int):
        return code
    return None


def _normalize_model_name(name: Optional[str]) -> str:
    # Strip the "models/" prefix the SDK sometimes reports.
    if not name:
        return ""
    cleaned = name.strip()
    if cleaned.startswith("models/"):
        return cleaned.split("/", 1)[1]
    return cleaned
