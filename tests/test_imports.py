"""
基本的なインポートテスト
すべての主要モジュールが正しくインポートできることを確認する
"""
import importlib

import pytest

MODULES = [
    "chinese_pronunciation.config",
    "chinese_pronunciation.errors",
    "chinese_pronunciation.models.schemas",
    "chinese_pronunciation.services.lexicon_service",
    "chinese_pronunciation.services.text_segmenter",
    "chinese_pronunciation.services.audio_validator",
    "chinese_pronunciation.services.hallucination_detector",
    "chinese_pronunciation.services.recommendation_service",
    "chinese_pronunciation.services.scoring_engine",
    "chinese_pronunciation.services.speech_providers.base",
    "chinese_pronunciation.services.speech_providers.openai_whisper_provider",
    "chinese_pronunciation.services.speech_providers.google_provider",
    "chinese_pronunciation.services.speech_providers.azure_provider",
    "chinese_pronunciation.services.speech_providers.assemblyai_provider",
    "chinese_pronunciation.services.speech_providers.registry",
    "chinese_pronunciation.services.provider_orchestrator",
    "chinese_pronunciation.services.mock_recognizer",
    "chinese_pronunciation.services.debug_audio_store",
    "chinese_pronunciation.services.api_check_service",
    "chinese_pronunciation.services.pronunciation_service",
    "main",
]


@pytest.mark.parametrize("module", MODULES)
def test_imports(module):
    """すべての主要モジュールのインポートをテスト"""
    assert importlib.import_module(module) is not None
