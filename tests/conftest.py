"""
テスト共通のフィクスチャ
"""
import io
import random
import wave

import numpy as np
import pytest

from chinese_pronunciation.config import ProviderSettings, SpeechServicesSettings
from chinese_pronunciation.models.schemas import AudioQualityAssessment, TranscriptionResult, TranscriptionWord
from chinese_pronunciation.services.hallucination_detector import HallucinationDetector
from chinese_pronunciation.services.lexicon_service import LexiconService
from chinese_pronunciation.services.recommendation_service import RecommendationService
from chinese_pronunciation.services.scoring_engine import ScoringEngine
from chinese_pronunciation.services.text_segmenter import TextSegmenter

WAV_HEADER_SIZE = 44
SAMPLE_RATE = 16000


def build_wav(total_size: int, amplitude: int = 8000, frequency: float = 440.0) -> bytes:
    """
    指定サイズのWAVデータ（16kHz/16bit/モノラル）を作成

    Args:
        total_size: ヘッダーを含む全体のバイト数
        amplitude: 正弦波の振幅（0で無音）
        frequency: 正弦波の周波数

    Returns:
        WAVデータ
    """
    sample_count = max(0, (total_size - WAV_HEADER_SIZE) // 2)
    t = np.arange(sample_count) / SAMPLE_RATE
    samples = (amplitude * np.sin(2 * np.pi * frequency * t)).astype("<i2")

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(SAMPLE_RATE)
        wav.writeframes(samples.tobytes())
    return buffer.getvalue()


@pytest.fixture(scope="session")
def lexicon():
    """同梱の語彙データ"""
    return LexiconService.load()


@pytest.fixture
def segmenter(lexicon):
    return TextSegmenter(lexicon)


@pytest.fixture
def scoring_engine(lexicon, segmenter):
    """既定の設定の採点エンジン"""
    return ScoringEngine(
        lexicon,
        segmenter,
        HallucinationDetector(lexicon),
        RecommendationService(lexicon),
    )


@pytest.fixture
def rng():
    """シード固定の乱数生成器"""
    return random.Random(42)


@pytest.fixture
def good_audio():
    """品質goodの音声評価"""
    return AudioQualityAssessment(
        rating="good",
        confidence=0.8,
        estimated_duration_sec=1.875,
        has_content=True,
        is_valid_format=True,
        byte_length=60000,
    )


@pytest.fixture
def speech_settings():
    """全サービスを有効にしたテスト用設定（再試行の待機なし）"""
    return SpeechServicesSettings(
        primary_service="openai_whisper",
        fallback_services=["google", "azure", "assemblyai"],
        services={
            "openai_whisper": ProviderSettings(enabled=True, api_key="test_key", model="whisper-1"),
            "google": ProviderSettings(enabled=True, project_id="test-project", language="zh-CN"),
            "azure": ProviderSettings(enabled=True, api_key="test_key", region="eastus", language="zh-CN"),
            "assemblyai": ProviderSettings(enabled=True, api_key="test_key", poll_interval=0),
        },
        max_retries=3,
        retry_delay=0,
        timeout=5,
        save_debug_audio=False,
    )


def make_transcription(text: str, durations: float = 0.5, confidence: float = 0.9) -> TranscriptionResult:
    """1文字ずつタイミング情報を持つ書き起こし結果を作成"""
    words = [
        TranscriptionWord(
            text=char,
            start_time=i * durations,
            end_time=(i + 1) * durations,
            confidence=confidence,
        )
        for i, char in enumerate(text)
    ]
    return TranscriptionResult(transcript=text, confidence=confidence, words=words, duration=len(text) * durations)
