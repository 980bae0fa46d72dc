"""
採点エンジン
書き起こし結果・分割結果・声調データ・文脈ボーナス・ハルシネーション係数を組み合わせて
単語ごとのスコアと全体の正確性を計算する
"""
import logging
import random
from datetime import datetime
from typing import List, Literal

from chinese_pronunciation.config import ScoringSettings
from chinese_pronunciation.models.schemas import (
    AudioQualityAssessment,
    ChineseSpecificAnalysis,
    HallucinationPenalty,
    HallucinationVerdict,
    LexicalEntry,
    PronunciationReport,
    StrokeComplexity,
    TranscriptionResult,
    TranscriptionWord,
    WordAssessment,
    WordDetails,
)
from chinese_pronunciation.services.hallucination_detector import HallucinationDetector
from chinese_pronunciation.services.lexicon_service import LexiconService
from chinese_pronunciation.services.recommendation_service import RecommendationService
from chinese_pronunciation.services.text_segmenter import TextSegmenter, clean_chinese_text

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.8
# タイミング情報がない場合の流暢さの基準値
UNTIMED_FLUENCY = 70.0

AccuracyMode = Literal["character", "segment"]


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class ScoringEngine:
    """単語スコアと評価レポートを組み立てるサービスクラス"""

    def __init__(
        self,
        lexicon: LexiconService,
        segmenter: TextSegmenter,
        detector: HallucinationDetector,
        recommender: RecommendationService,
        settings: ScoringSettings | None = None,
    ) -> None:
        self.lexicon = lexicon
        self.segmenter = segmenter
        self.detector = detector
        self.recommender = recommender
        self.settings: ScoringSettings = settings or ScoringSettings()

    # ------------------------------------------------------------------
    # 個別スコア
    # ------------------------------------------------------------------

    def tone_difficulty(self, segment: str) -> float | None:
        """声調データがある文字の平均難易度（データがない場合はNone）"""
        entries: List[LexicalEntry] = [
            entry for entry in (self.lexicon.get_tone_info(char) for char in segment) if entry
        ]
        if not entries:
            return None
        return sum(entry.difficulty for entry in entries) / len(entries)

    def tone_score(self, segment: str, confidence: float, is_correct: bool) -> float:
        """
        声調スコアを計算

        Args:
            segment: 単語・文字
            confidence: 認識の信頼度（0-1）
            is_correct: 書き起こしと位置が一致したかどうか

        Returns:
            声調スコア（20-100）
        """
        difficulty: float | None = self.tone_difficulty(segment)
        penalty: float = (difficulty or 0.0) * self.settings.tone_difficulty_penalty
        correctness: float = 20 if is_correct else -30
        return clamp(confidence * 100 - penalty + correctness, 20, 100)

    def pronunciation_score(self, is_correct: bool, rng: random.Random) -> float:
        """
        発音スコアを計算（認識のばらつきを乱数で表現）

        Returns:
            正解時は75-100、不正解時は30-70
        """
        if is_correct:
            return 75 + rng.random() * 25
        return 30 + rng.random() * 40

    def fluency_score(self, word: TranscriptionWord | None, confidence: float, quality_rating: str) -> float:
        """
        流暢さスコアを計算

        Args:
            word: 対応する単語のタイミング情報（ない場合はNone）
            confidence: 認識の信頼度（0-1）
            quality_rating: 音声品質の評価

        Returns:
            流暢さスコア（20-100）
        """
        s = self.settings
        quality_penalty: float = s.quality_penalty(quality_rating)
        duration: float | None = word.duration if word else None

        if duration is None:
            return clamp(UNTIMED_FLUENCY * confidence * quality_penalty, 20, 100)

        score: float = 100
        if duration < s.too_fast_duration:
            score -= 30
        elif duration > s.too_slow_duration:
            score -= 20

        score *= confidence
        score *= quality_penalty
        return clamp(score, 20, 100)

    def combine_word_score(self, tone: float, pronunciation: float, fluency: float, context_bonus: float = 0) -> float:
        """
        重み付きで単語スコアを合成

        Returns:
            文脈ボーナスを加えた単語スコア（0-100）
        """
        s = self.settings
        weighted: float = (
            tone * s.tone_weight
            + pronunciation * s.pronunciation_weight
            + fluency * s.fluency_weight
        )
        return clamp(weighted + min(context_bonus, s.context_bonus_cap), 0, 100)

    def word_feedback(self, score: float, tone: float, pronunciation: float, fluency: float) -> str:
        """単語ごとのフィードバック文言を作成"""
        s = self.settings
        if score >= s.excellent_threshold:
            return "Excellent pronunciation! 优秀！"
        if score >= s.good_threshold:
            return "Good job! 很好！"
        if score >= s.fair_threshold:
            weak: List[str] = []
            if tone < s.issue_threshold:
                weak.append("tone (声调)")
            if pronunciation < s.issue_threshold:
                weak.append("pronunciation (发音)")
            if fluency < s.issue_threshold:
                weak.append("fluency (流利度)")
            if weak:
                return f"Need improvement in: {', '.join(weak)}. 需要改进。"
            return "Almost there. Keep practicing. 需要改进。"
        return "Try again. Focus on clarity and tone. 再试一次，注意清晰度和声调。"

    def identify_issues(self, tone: float, pronunciation: float, fluency: float) -> List[str]:
        threshold: float = self.settings.issue_threshold
        issues: List[str] = []
        if tone < threshold:
            issues.append("tone")
        if pronunciation < threshold:
            issues.append("pronunciation")
        if fluency < threshold:
            issues.append("fluency")
        return issues

    def tone_advice(self, segment: str, tone_score: float) -> str:
        """声調の練習アドバイスを作成"""
        if tone_score >= self.settings.excellent_threshold:
            return "Excellent tone control! 优秀！"
        entry: LexicalEntry | None = next(
            (e for e in (self.lexicon.get_tone_info(char) for char in segment) if e), None
        )
        tone: int = entry.tone if entry else 0
        guide = self.lexicon.get_tone_guidance(tone)
        return (f"Practice {guide.get('name', 'neutral')} tone ({tone}): "
                f"{guide.get('description', '')}. Listen to native examples.")

    def apply_hallucination_penalty(self, word: WordAssessment, penalty: HallucinationPenalty) -> WordAssessment:
        """
        ハルシネーション係数を単語評価全体に適用（最後に行う）

        Args:
            word: 単語評価
            penalty: 係数

        Returns:
            係数を適用した新しい単語評価
        """
        if penalty.multiplier >= 1.0 and not penalty.should_zero_out:
            return word

        issues: List[str] = [*word.issues, "hallucination"] if "hallucination" not in word.issues else list(word.issues)

        if penalty.should_zero_out:
            return word.model_copy(update={
                "score": 0,
                "details": WordDetails(
                    tone=0,
                    pronunciation=0,
                    fluency=0,
                    confidence=round(word.details.confidence * 0.1),
                ),
                "feedback": (f"Audio analysis failed: {penalty.reason}. "
                             "Please try recording again with clearer speech."),
                "issues": issues,
            })

        m: float = penalty.multiplier
        return word.model_copy(update={
            "score": max(0, round(word.score * m)),
            "details": WordDetails(
                tone=max(0, round(word.details.tone * m)),
                pronunciation=max(0, round(word.details.pronunciation * m)),
                fluency=max(0, round(word.details.fluency * m)),
                confidence=round(word.details.confidence * m),
            ),
            "feedback": f"{penalty.reason}. Scores reduced. Try speaking more clearly.",
            "issues": issues,
        })

    # ------------------------------------------------------------------
    # 単語単位の評価
    # ------------------------------------------------------------------

    @staticmethod
    def find_word_info(segment: str, index: int, words: List[TranscriptionWord]) -> TranscriptionWord | None:
        """
        単語・文字に対応するタイミング情報を探す

        同じ位置の単語が対象を含めばそれを、なければ対象を含む最初の単語を、
        それもなければ同じ位置の単語を返す
        """
        if not words:
            return None
        if index < len(words) and segment in words[index].text:
            return words[index]
        for word in words:
            if word.text and segment in word.text:
                return word
        return words[index] if index < len(words) else None

    def score_words(
        self,
        target_text: str,
        transcription: TranscriptionResult,
        audio_quality: AudioQualityAssessment,
        penalty: HallucinationPenalty,
        rng: random.Random,
    ) -> List[WordAssessment]:
        """
        目標テキストの単語・文字ごとにスコアを計算

        Args:
            target_text: 目標テキスト
            transcription: 書き起こし結果
            audio_quality: 音声品質
            penalty: ハルシネーション係数
            rng: 発音スコアのばらつき用の乱数生成器

        Returns:
            単語評価のリスト
        """
        target_segments: List[str] = self.segmenter.segment(target_text)
        actual_segments: List[str] = self.segmenter.segment(transcription.transcript)
        assessments: List[WordAssessment] = []
        offset = 0

        for index, segment in enumerate(target_segments):
            actual: str | None = actual_segments[index] if index < len(actual_segments) else None
            is_correct: bool = actual == segment
            word_info = self.find_word_info(segment, index, transcription.words)
            confidence: float = DEFAULT_CONFIDENCE
            if word_info is not None and word_info.confidence is not None:
                confidence = word_info.confidence
            elif transcription.confidence is not None:
                confidence = transcription.confidence

            tone = self.tone_score(segment, confidence, is_correct)
            pronunciation = self.pronunciation_score(is_correct, rng)
            fluency = self.fluency_score(word_info, confidence, audio_quality.rating)
            context_bonus = self.segmenter.get_contextual_bonus(
                target_text, segment, offset, cap=self.settings.context_bonus_cap
            )
            score = self.combine_word_score(tone, pronunciation, fluency, context_bonus)

            strokes: List[StrokeComplexity] = [self.lexicon.get_stroke_complexity(char) for char in segment]
            assessment = WordAssessment(
                word=segment,
                word_index=index,
                score=round(score),
                details=WordDetails(
                    tone=round(tone),
                    pronunciation=round(pronunciation),
                    fluency=round(fluency),
                    confidence=round(confidence * 100),
                ),
                feedback=self.word_feedback(score, tone, pronunciation, fluency),
                issues=self.identify_issues(tone, pronunciation, fluency),
                is_correct=is_correct,
                actual_pronounced=actual,
                context_bonus=context_bonus,
                chinese_specific=ChineseSpecificAnalysis(
                    hsk_level=self.segmenter.get_hsk_level(segment),
                    difficulty=self.segmenter.get_difficulty(segment),
                    stroke_complexity=max(strokes, key=lambda s: s.difficulty),
                    tone_info=[e for e in (self.lexicon.get_tone_info(c) for c in segment) if e],
                    common_mistakes=self.segmenter.identify_pronunciation_mistakes(segment, actual),
                    tone_advice=self.tone_advice(segment, tone),
                ),
            )
            assessments.append(self.apply_hallucination_penalty(assessment, penalty))
            offset += len(segment)

        return assessments

    # ------------------------------------------------------------------
    # 全体の正確性
    # ------------------------------------------------------------------

    @staticmethod
    def character_accuracy(target_text: str, transcript: str) -> float:
        """
        文字の位置一致率から正確性を計算（長さの差で減点）

        Returns:
            正確性（0-100）
        """
        expected: str = clean_chinese_text(target_text)
        actual: str = clean_chinese_text(transcript)
        if not expected or not actual:
            return 0.0

        matches: int = sum(1 for e, a in zip(expected, actual) if e == a)
        length_penalty: float = abs(len(expected) - len(actual)) / len(expected)
        accuracy: float = matches / len(expected) * 100
        return max(0.0, accuracy - length_penalty * 50)

    def segment_accuracy(self, target_text: str, transcript: str) -> float:
        """
        分割した単語の位置一致率から正確性を計算

        Returns:
            正確性（0-100）
        """
        if not transcript:
            return 0.0
        expected: List[str] = self.segmenter.segment(target_text)
        actual: List[str] = self.segmenter.segment(transcript)
        if not expected:
            return 0.0
        matches: int = sum(1 for e, a in zip(expected, actual) if e == a)
        return matches / len(expected) * 100

    def overall_accuracy(
        self,
        target_text: str,
        transcript: str,
        audio_quality: AudioQualityAssessment,
        mode: AccuracyMode = "character",
    ) -> int:
        """
        音声品質の係数を掛けた全体の正確性

        Args:
            mode: characterは文字単位（音声認識サービス）、segmentは単語単位（模擬認識）

        Returns:
            正確性（0-100の整数）
        """
        if mode == "segment":
            accuracy = self.segment_accuracy(target_text, transcript)
        else:
            accuracy = self.character_accuracy(target_text, transcript)
        return round(accuracy * self.settings.quality_penalty(audio_quality.rating))

    # ------------------------------------------------------------------
    # レポート
    # ------------------------------------------------------------------

    def build_report(
        self,
        transcription: TranscriptionResult,
        target_text: str,
        audio_quality: AudioQualityAssessment,
        provider: str,
        rng: random.Random | None = None,
        analysis_id: str = "-",
        accuracy_mode: AccuracyMode = "character",
        fallback_reason: str | None = None,
    ) -> PronunciationReport:
        """
        書き起こし結果から評価レポートを作成

        Args:
            transcription: 書き起こし結果
            target_text: 目標テキスト
            audio_quality: 音声品質
            provider: 書き起こしを行ったサービス名
            rng: 乱数生成器（省略時は新規作成）
            analysis_id: ログ用の解析ID
            accuracy_mode: 全体の正確性の計算方法
            fallback_reason: 模擬認識に切り替えた理由

        Returns:
            評価レポート
        """
        rng = rng or random.Random()
        verdict: HallucinationVerdict = self.detector.detect(transcription.transcript, target_text, analysis_id)
        penalty: HallucinationPenalty = self.detector.penalty_for(verdict)

        words: List[WordAssessment] = self.score_words(target_text, transcription, audio_quality, penalty, rng)
        accuracy: int = self.overall_accuracy(
            target_text, transcription.transcript, audio_quality, mode=accuracy_mode
        )

        report = PronunciationReport(
            overall_accuracy=accuracy,
            transcription=transcription,
            words=words,
            audio_quality=audio_quality,
            provider=provider,
            timestamp=datetime.now(),
            hallucination_check=verdict,
            text_analysis=self.segmenter.analyze_text_difficulty(target_text),
            fallback_reason=fallback_reason,
        )
        report = report.model_copy(update={"recommendations": self.recommender.generate(report)})

        logger.info(
            "[%s] 採点完了: provider=%s accuracy=%d words=%d hallucination=%s",
            analysis_id, provider, accuracy, len(words), verdict.severity,
        )
        return report
