#!/usr/bin/env python3
"""
Gemini text generation for the coach and the athlete.

Two calls, both plain request/response:
- draft_description: writes the main block of a running workout from its title
- structure_for_watch: rewrites a workout as step-by-step watch instructions

Neither call retries and neither raises. Any failure (no API key, network,
quota, malformed response) is logged and turned into a fixed Portuguese
message that the form shows in place of the text.
"""

import json
import threading
from typing import Any, Optional

from google import genai

from . import logger
from .config_loader import get_config
from .constants import (
    API_ERROR_FALLBACK,
    DRAFT_EMPTY_FALLBACK,
    STRUCTURE_EMPTY_FALLBACK,
)
from .models import SpeedZones

DEFAULT_MODEL = "gemini-3-flash-preview"


def build_draft_prompt(title_prompt: str, athlete_level: str) -> str:
    return (
        f"Gere um treino de corrida nível {athlete_level}. "
        f"Contexto: {title_prompt}. Markdown em PT-BR."
    )


def build_watch_prompt(main_text: str, warmup_text: str, cooldown_text: str,
                       speed_zones: Any = None) -> str:
    if isinstance(speed_zones, SpeedZones):
        speed_zones = speed_zones.to_dict()
    zones_json = json.dumps(speed_zones, ensure_ascii=False)
    return (
        "Transforme o seguinte treino em um formato estruturado (passo a passo) "
        "ideal para relógios de corrida.\n"
        f"Aquecimento: {warmup_text}\n"
        f"Principal: {main_text}\n"
        f"Desaquecimento: {cooldown_text}\n"
        f"Zonas de Pace: {zones_json}\n"
        "Retorne instruções claras de ritmo e duração."
    )


class GeminiService:
    """Thin wrapper around the google-genai client."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 client: Any = None):
        config = get_config()
        self.api_key = api_key if api_key is not None else config.get('gemini.api_key', '')
        self.model = model or config.get('gemini.model') or DEFAULT_MODEL
        self._client = client
        self._lock = threading.Lock()
        self._warned_unconfigured = False

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self):
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = genai.Client(api_key=self.api_key)
        return self._client

    def _generate(self, prompt: str, empty_fallback: str, operation: str) -> str:
        if not self.configured:
            if not self._warned_unconfigured:
                logger.warning("Gemini API key not set; assistant is disabled")
                self._warned_unconfigured = True
            return API_ERROR_FALLBACK

        try:
            response = self._get_client().models.generate_content(
                model=self.model,
                contents=prompt,
            )
            return response.text or empty_fallback
        except Exception as e:
            logger.exception("Gemini API error", operation=operation, error=type(e).__name__)
            return API_ERROR_FALLBACK

    def draft_description(self, title_prompt: str, athlete_level: str) -> str:
        """Draft the main block of a running workout for the given level."""
        return self._generate(
            build_draft_prompt(title_prompt, athlete_level),
            DRAFT_EMPTY_FALLBACK,
            'draft_description',
        )

    def structure_for_watch(self, main_text: str, warmup_text: str = '',
                            cooldown_text: str = '', speed_zones: Any = None) -> str:
        """Rewrite a workout as pace/duration steps for a running watch."""
        return self._generate(
            build_watch_prompt(main_text, warmup_text, cooldown_text, speed_zones),
            STRUCTURE_EMPTY_FALLBACK,
            'structure_for_watch',
        )


_service = None
_service_lock = threading.Lock()


def get_gemini_service() -> GeminiService:
    """Get the shared service instance."""
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                _service = GeminiService()
    return _service


def draft_description(title_prompt: str, athlete_level: str) -> str:
    return get_gemini_service().draft_description(title_prompt, athlete_level)


def structure_for_watch(main_text: str, warmup_text: str = '', cooldown_text: str = '',
                        speed_zones: Any = None) -> str:
    return get_gemini_service().structure_for_watch(main_text, warmup_text, cooldown_text,
                                                    speed_zones)
