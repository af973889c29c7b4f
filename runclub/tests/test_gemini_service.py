#!/usr/bin/env python3
"""
Tests for the Gemini wrapper.

The google-genai client is replaced with a mock; no network calls are made.

Run with: pytest runclub/tests/test_gemini_service.py -v
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

# Add repository root for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from runclub.config_loader import get_config
from runclub.gemini_service import (
    DEFAULT_MODEL,
    GeminiService,
    build_draft_prompt,
    build_watch_prompt,
)
from runclub.models import SpeedZones


def client_returning(text):
    client = MagicMock()
    client.models.generate_content.return_value = MagicMock(text=text)
    return client


class TestPrompts:

    def test_draft_prompt(self):
        assert build_draft_prompt('Fartlek 40min', 'Beginner') == (
            'Gere um treino de corrida nível Beginner. '
            'Contexto: Fartlek 40min. Markdown em PT-BR.'
        )

    def test_watch_prompt_includes_everything(self):
        prompt = build_watch_prompt('5x1km', 'trote 10min', 'solto 5min',
                                    SpeedZones(z4='4:30/km'))
        assert 'Principal: 5x1km' in prompt
        assert 'Aquecimento: trote 10min' in prompt
        assert 'Desaquecimento: solto 5min' in prompt
        assert '"z4": "4:30/km"' in prompt

    def test_watch_prompt_without_zones(self):
        assert 'Zonas de Pace: null' in build_watch_prompt('x', '', '', None)


class TestDraftDescription:

    def test_returns_model_text(self):
        client = client_returning('## Treino')
        service = GeminiService(api_key='key', model='test-model', client=client)
        assert service.draft_description('Fartlek', 'Advanced') == '## Treino'
        client.models.generate_content.assert_called_once_with(
            model='test-model',
            contents=build_draft_prompt('Fartlek', 'Advanced'),
        )

    def test_empty_response(self):
        service = GeminiService(api_key='key', client=client_returning(''))
        assert service.draft_description('Fartlek', 'Advanced') == 'Erro ao gerar.'

    def test_none_response(self):
        service = GeminiService(api_key='key', client=client_returning(None))
        assert service.draft_description('Fartlek', 'Advanced') == 'Erro ao gerar.'

    def test_exception_becomes_fallback(self):
        client = MagicMock()
        client.models.generate_content.side_effect = RuntimeError('quota')
        service = GeminiService(api_key='key', client=client)
        assert service.draft_description('Fartlek', 'Advanced') == 'Erro na API.'


class TestStructureForWatch:

    def test_returns_model_text(self):
        service = GeminiService(api_key='key', client=client_returning('1. Aquecer'))
        assert service.structure_for_watch('5x1km') == '1. Aquecer'

    def test_empty_response(self):
        service = GeminiService(api_key='key', client=client_returning(''))
        assert service.structure_for_watch('5x1km') == 'Erro ao estruturar.'

    def test_exception_becomes_fallback(self):
        client = MagicMock()
        client.models.generate_content.side_effect = ConnectionError('offline')
        service = GeminiService(api_key='key', client=client)
        assert service.structure_for_watch('5x1km') == 'Erro na API.'


class TestConfiguration:

    def test_missing_key_fails_closed(self):
        service = GeminiService(api_key='')
        assert service.configured is False
        assert service.draft_description('Fartlek', 'Beginner') == 'Erro na API.'
        assert service.structure_for_watch('5x1km') == 'Erro na API.'

    def test_default_model(self):
        service = GeminiService(api_key='key', model='')
        assert service.model == (get_config().get('gemini.model') or DEFAULT_MODEL)

    def test_client_built_lazily(self):
        with patch('runclub.gemini_service.genai.Client') as client_cls:
            client_cls.return_value = client_returning('ok')
            service = GeminiService(api_key='secret')
            client_cls.assert_not_called()
            assert service.draft_description('x', 'Beginner') == 'ok'
            client_cls.assert_called_once_with(api_key='secret')


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
