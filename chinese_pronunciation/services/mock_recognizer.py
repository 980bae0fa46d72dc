"""
模擬音声認識
全ての音声認識サービスが失敗した場合に、音声品質から書き起こし結果を推定する
"""
import logging
import random
from typing import Any, Dict, List

from chinese_pronunciation.models.schemas import (
    AudioQualityAssessment,
    TranscriptionResult,
    TranscriptionWord,
)
from chinese_pronunciation.services.text_segmenter import TextSegmenter

logger = logging.getLogger(__name__)

MOCK_PROVIDER_NAME = "mock_fallback"
# 1単語あたりの模擬的な発話時間（秒）
WORD_SPACING = 0.5
TRUNCATE_PROBABILITY = 0.4
TRUNCATE_RATIO = 0.7
MIN_CONFIDENCE = 0.1


class MockRecognizer:
    """乱数生成器を受け取り、同じシードなら同じ結果を返す模擬認識クラス"""

    def __init__(self, segmenter: TextSegmenter) -> None:
        self.segmenter = segmenter

    def recognize(
        self,
        target_text: str,
        audio_quality: AudioQualityAssessment,
        rng: random.Random,
        analysis_id: str = "-",
    ) -> TranscriptionResult:
        """
        模擬的な書き起こし結果を作成

        Args:
            target_text: 目標テキスト
            audio_quality: 音声品質
            rng: 乱数生成器
            analysis_id: ログ用の解析ID

        Returns:
            書き起こし結果（音声に内容がない場合は空の書き起こし）
        """
        if not audio_quality.has_content:
            logger.warning("[%s] 音声に内容がないため、認識失敗として扱います", analysis_id)
            return TranscriptionResult(transcript="", confidence=MIN_CONFIDENCE)

        variations: List[Dict[str, Any]] = self.segmenter.generate_pronunciation_variations(target_text, rng)
        selected: Dict[str, Any] = rng.choice(variations)

        quality_factor: float = audio_quality.confidence or 0.3
        confidence: float = max(MIN_CONFIDENCE, selected["confidence"] * quality_factor)

        transcript: str = selected["text"]
        if audio_quality.rating == "poor" and rng.random() < TRUNCATE_PROBABILITY:
            transcript = transcript[: int(len(transcript) * TRUNCATE_RATIO)]

        words: List[TranscriptionWord] = [
            TranscriptionWord(
                text=segment,
                start_time=index * WORD_SPACING,
                end_time=(index + 1) * WORD_SPACING,
                confidence=max(MIN_CONFIDENCE, (0.7 + rng.random() * 0.3) * quality_factor),
            )
            for index, segment in enumerate(self.segmenter.segment(target_text))
        ]

        logger.info(
            "[%s] 模擬認識: variation=%s transcript=%r confidence=%.2f",
            analysis_id, selected["type"], transcript, confidence,
        )
        return TranscriptionResult(
            transcript=transcript,
            confidence=confidence,
            words=words,
            duration=len(words) * WORD_SPACING,
            language="zh",
        )
