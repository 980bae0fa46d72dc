"""
ScoringEngineのテスト
"""
import random

import pytest

from chinese_pronunciation.models.schemas import (
    AudioQualityAssessment,
    HallucinationPenalty,
    TranscriptionResult,
    TranscriptionWord,
    WordAssessment,
    WordDetails,
)
from conftest import make_transcription


def word(duration: float | None) -> TranscriptionWord | None:
    if duration is None:
        return None
    return TranscriptionWord(text="你", start_time=0.0, end_time=duration, confidence=1.0)


class TestScoreComponents:
    """個別スコアの計算のテストクラス"""

    def test_tone_score_correct_is_clamped(self, scoring_engine):
        # 90 - 0.2*20 + 20 = 106 -> 100
        assert scoring_engine.tone_score("你", 0.9, True) == 100

    def test_tone_score_incorrect(self, scoring_engine):
        # 90 - 4 - 30
        assert scoring_engine.tone_score("你", 0.9, False) == pytest.approx(56)

    def test_tone_score_unknown_character_has_no_penalty(self, scoring_engine):
        assert scoring_engine.tone_score("龘", 0.5, True) == pytest.approx(70)

    def test_tone_score_lower_bound(self, scoring_engine):
        assert scoring_engine.tone_score("影", 0.1, False) == 20

    def test_pronunciation_score_ranges(self, scoring_engine):
        rng = random.Random(0)
        for _ in range(50):
            assert 75 <= scoring_engine.pronunciation_score(True, rng) <= 100
            assert 30 <= scoring_engine.pronunciation_score(False, rng) <= 70

    @pytest.mark.parametrize(
        "duration,expected",
        [
            (0.5, 100),  # 最適な長さ
            (0.1, 70),  # 速すぎる
            (0.25, 100),
            (0.9, 100),
            (1.0, 100),
            (1.5, 80),  # 遅すぎる
        ],
    )
    def test_fluency_by_duration(self, scoring_engine, duration, expected):
        assert scoring_engine.fluency_score(word(duration), 1.0, "good") == pytest.approx(expected)

    def test_fluency_applies_confidence_and_quality(self, scoring_engine):
        # 100 * 0.9 * 0.7
        assert scoring_engine.fluency_score(word(0.5), 0.9, "fair") == pytest.approx(63)

    def test_fluency_without_timing(self, scoring_engine):
        """タイミング情報がなくても信頼度と音声品質を反映"""
        assert scoring_engine.fluency_score(None, 1.0, "good") == pytest.approx(70)
        assert scoring_engine.fluency_score(None, 0.9, "good") == pytest.approx(63)
        assert scoring_engine.fluency_score(None, 0.9, "poor") == pytest.approx(31.5)
        assert scoring_engine.fluency_score(None, 0.2, "good") == 20

    def test_fluency_lower_bound(self, scoring_engine):
        assert scoring_engine.fluency_score(word(0.1), 0.1, "poor") == 20

    def test_combine_word_score(self, scoring_engine):
        assert scoring_engine.combine_word_score(50, 50, 50) == pytest.approx(50)
        # 文脈ボーナスは10点まで
        assert scoring_engine.combine_word_score(50, 50, 50, 20) == pytest.approx(60)
        assert scoring_engine.combine_word_score(100, 100, 100, 5) == 100

    def test_identify_issues_order(self, scoring_engine):
        assert scoring_engine.identify_issues(50, 50, 50) == ["tone", "pronunciation", "fluency"]
        assert scoring_engine.identify_issues(80, 50, 80) == ["pronunciation"]

    def test_word_feedback_bands(self, scoring_engine):
        assert "优秀" in scoring_engine.word_feedback(90, 90, 90, 90)
        assert "很好" in scoring_engine.word_feedback(75, 75, 75, 75)
        assert "tone" in scoring_engine.word_feedback(55, 40, 80, 80)
        assert "再试一次" in scoring_engine.word_feedback(30, 30, 30, 30)


class TestHallucinationPenalty:
    """ハルシネーション係数の適用のテストクラス"""

    @pytest.fixture
    def assessment(self):
        return WordAssessment(
            word="你好",
            score=80,
            details=WordDetails(tone=90, pronunciation=80, fluency=60, confidence=90),
            feedback="Good job! 很好！",
            issues=[],
        )

    def test_no_penalty_keeps_assessment(self, scoring_engine, assessment):
        result = scoring_engine.apply_hallucination_penalty(assessment, HallucinationPenalty())

        assert result is assessment

    def test_zero_out(self, scoring_engine, assessment):
        penalty = HallucinationPenalty(multiplier=0.0, should_zero_out=True, reason="Severe")

        result = scoring_engine.apply_hallucination_penalty(assessment, penalty)

        assert result.score == 0
        assert result.details.tone == 0
        assert result.details.pronunciation == 0
        assert result.details.fluency == 0
        assert result.details.confidence == 9
        assert result.issues == ["hallucination"]
        assert "Audio analysis failed" in result.feedback

    def test_multiplier(self, scoring_engine, assessment):
        penalty = HallucinationPenalty(multiplier=0.5, reason="Low")

        result = scoring_engine.apply_hallucination_penalty(assessment, penalty)

        assert result.score == 40
        assert result.details.tone == 45
        assert result.details.fluency == 30
        assert "hallucination" in result.issues


class TestAccuracy:
    """全体の正確性のテストクラス"""

    def test_character_accuracy(self, scoring_engine):
        assert scoring_engine.character_accuracy("你好世界", "你好世界") == 100
        assert scoring_engine.character_accuracy("你好", "我好") == pytest.approx(50)
        # 2/4一致 - 長さの差0.5 * 50
        assert scoring_engine.character_accuracy("你好世界", "你好") == pytest.approx(25)
        assert scoring_engine.character_accuracy("你好", "") == 0
        assert scoring_engine.character_accuracy("", "你好") == 0

    def test_segment_accuracy(self, scoring_engine):
        assert scoring_engine.segment_accuracy("你好世界", "你好世界") == 100
        assert scoring_engine.segment_accuracy("你好世界", "你好") == pytest.approx(50)
        assert scoring_engine.segment_accuracy("你好", "") == 0

    def test_overall_accuracy_quality_factor(self, scoring_engine):
        fair = AudioQualityAssessment(rating="fair", confidence=0.6)

        assert scoring_engine.overall_accuracy("你好", "你好", fair) == 70
        assert scoring_engine.overall_accuracy("你好世界", "你好", fair, mode="segment") == 35


class TestBuildReport:
    """評価レポート作成のテストクラス"""

    def test_matching_transcription(self, scoring_engine, good_audio, rng):
        """書き起こしが一致する場合は高得点"""
        report = scoring_engine.build_report(
            make_transcription("你好"), "你好", good_audio, "openai_whisper", rng=rng
        )

        assert report.provider == "openai_whisper"
        assert report.overall_accuracy == 100
        assert len(report.words) == 1
        assert report.words[0].word == "你好"
        assert report.words[0].is_correct is True
        assert report.words[0].score >= 85
        assert report.words[0].context_bonus == 5
        assert report.hallucination_check.detected is False
        assert [r.type for r in report.recommendations] == ["audio"]
        assert report.text_analysis.level == "HSK1"

    def test_chinese_specific_analysis(self, scoring_engine, good_audio, rng):
        report = scoring_engine.build_report(make_transcription("是"), "是", good_audio, "google", rng=rng)

        analysis = report.words[0].chinese_specific
        assert analysis.hsk_level == 1
        assert analysis.stroke_complexity.level == "low"
        assert [e.pinyin for e in analysis.tone_info] == ["shì"]

    def test_hallucination_zeroes_scores(self, scoring_engine, good_audio, rng):
        transcription = TranscriptionResult(transcript="Thank you for watching", confidence=0.9)

        report = scoring_engine.build_report(transcription, "你好", good_audio, "openai_whisper", rng=rng)

        assert report.hallucination_check.severity == "high"
        assert report.overall_accuracy == 0
        for assessment in report.words:
            assert assessment.score == 0
            assert assessment.details.tone == 0
            assert assessment.details.pronunciation == 0
            assert assessment.details.fluency == 0
            assert "hallucination" in assessment.issues
        assert report.recommendations[0].type == "transcription_warning"
        assert report.recommendations[-1].type == "audio"

    def test_scores_within_bounds(self, scoring_engine, good_audio):
        """どの入力でもスコアは0-100"""
        cases = [
            ("你好世界", "你好世界"),
            ("现代社会", "现在社会"),
            ("今天天气很好", "今天"),
            ("学习中文", "学习中文学习中文"),
        ]
        for target, transcript in cases:
            report = scoring_engine.build_report(
                make_transcription(transcript), target, good_audio, "azure", rng=random.Random(7)
            )
            assert 0 <= report.overall_accuracy <= 100
            for assessment in report.words:
                assert 0 <= assessment.score <= 100
                assert 0 <= assessment.details.tone <= 100
                assert 0 <= assessment.details.pronunciation <= 100
                assert 0 <= assessment.details.fluency <= 100

    def test_same_seed_same_report(self, scoring_engine, good_audio):
        """同じシードなら時刻以外は同じレポート"""
        transcription = make_transcription("你好世界")

        first = scoring_engine.build_report(transcription, "你好世界", good_audio, "google", rng=random.Random(3))
        second = scoring_engine.build_report(transcription, "你好世界", good_audio, "google", rng=random.Random(3))

        assert first.model_dump(exclude={"timestamp"}) == second.model_dump(exclude={"timestamp"})

    def test_wire_format_uses_camel_case(self, scoring_engine, good_audio, rng):
        report = scoring_engine.build_report(make_transcription("你好"), "你好", good_audio, "google", rng=rng)

        wire = report.to_wire()

        assert "overallAccuracy" in wire
        assert "audioQuality" in wire
        assert "wordIndex" in wire["words"][0]
        assert "estimatedDurationSec" in wire["audioQuality"]

    def test_zero_confidence_is_kept(self, scoring_engine, good_audio, rng):
        """サービスが返した信頼度0は既定値で置き換えない"""
        report = scoring_engine.build_report(
            make_transcription("是", confidence=0.0), "是", good_audio, "google", rng=rng
        )

        assert report.words[0].details.confidence == 0
        assert report.words[0].details.fluency == 20

    def test_missing_confidence_uses_default(self, scoring_engine, good_audio, rng):
        report = scoring_engine.build_report(
            TranscriptionResult(transcript="是"), "是", good_audio, "google", rng=rng
        )

        assert report.words[0].details.confidence == 80
        # 70 * 0.8
        assert report.words[0].details.fluency == 56
