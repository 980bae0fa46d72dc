"""
HallucinationDetectorのテスト
"""
import pytest

from chinese_pronunciation.models.schemas import HallucinationVerdict
from chinese_pronunciation.services.hallucination_detector import HallucinationDetector


class TestHallucinationDetector:
    """HallucinationDetectorのテストクラス"""

    @pytest.fixture
    def detector(self, lexicon):
        return HallucinationDetector(lexicon)

    def test_matching_transcript(self, detector):
        """目標テキストと一致する場合は検出しない"""
        verdict = detector.detect("你好", "你好")

        assert verdict.detected is False
        assert verdict.severity == "none"
        assert verdict.overlap_ratio == 1.0
        assert verdict.length_ratio == 1.0
        assert detector.penalty_for(verdict).multiplier == 1.0

    def test_common_phrase_is_high(self, detector):
        """動画の締めの定型句は重度"""
        verdict = detector.detect("Thank you for watching", "你好")

        assert verdict.detected is True
        assert verdict.severity == "high"
        assert verdict.has_common_phrases is True

        penalty = detector.penalty_for(verdict)
        assert penalty.should_zero_out is True
        assert penalty.multiplier == 0.0

    def test_chinese_common_phrase(self, detector):
        verdict = detector.detect("今天视频就拍到这里啦", "今天天气很好")

        assert verdict.severity == "high"

    def test_empty_transcript(self, detector):
        """空の書き起こしは短すぎる判定、一致率0のため全スコア0"""
        verdict = detector.detect("", "你好世界")

        assert verdict.detected is True
        assert verdict.severity == "medium"
        assert verdict.too_short is True
        assert verdict.overlap_ratio == 0.0
        assert detector.penalty_for(verdict).should_zero_out is True

    def test_too_short_transcript(self, detector):
        verdict = detector.detect("你好", "你好世界我是学生")

        assert verdict.severity == "medium"
        assert verdict.too_short is True
        assert verdict.overlap_ratio == pytest.approx(0.25)

        penalty = detector.penalty_for(verdict)
        assert penalty.should_zero_out is False
        assert penalty.multiplier == 0.1

    def test_suspiciously_long_transcript(self, detector):
        verdict = detector.detect("我是学生" * 6, "你好")

        assert verdict.severity == "medium"
        assert verdict.suspicious_length is True
        assert verdict.length_ratio == pytest.approx(12.0)
        assert detector.penalty_for(verdict).should_zero_out is True

    def test_low_overlap_is_high(self, detector):
        verdict = detector.detect("明天下雨了他说来这里", "今天天气很好我们去公园")

        assert verdict.severity == "high"
        assert verdict.overlap_ratio == pytest.approx(0.1)
        assert "doesn't match" in verdict.message

    def test_low_severity_penalty(self, detector):
        verdict = HallucinationVerdict(detected=True, severity="low", overlap_ratio=0.6, length_ratio=1.0)

        penalty = detector.penalty_for(verdict)

        assert penalty.multiplier == 0.5
        assert penalty.should_zero_out is False
        assert "Low hallucination" in penalty.reason

    def test_none_inputs(self, detector):
        """Noneでもエラーにならない"""
        verdict = detector.detect(None, None)

        assert verdict.overlap_ratio == 0.0
        assert verdict.length_ratio == 0.0
