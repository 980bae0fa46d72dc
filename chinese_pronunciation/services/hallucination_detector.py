"""
ハルシネーション検出サービス
音声認識の結果が目標テキストと無関係な内容（動画の締めの定型句など）になっていないかを判定する
"""
import logging

from chinese_pronunciation.config import HallucinationThresholds
from chinese_pronunciation.models.schemas import HallucinationPenalty, HallucinationVerdict
from chinese_pronunciation.services.lexicon_service import LexiconService
from chinese_pronunciation.services.text_segmenter import clean_chinese_text

logger = logging.getLogger(__name__)


class HallucinationDetector:
    """書き起こしと目標テキストを比較して誤認識を検出するサービスクラス"""

    def __init__(self, lexicon: LexiconService, thresholds: HallucinationThresholds | None = None) -> None:
        self.lexicon = lexicon
        self.thresholds: HallucinationThresholds = thresholds or HallucinationThresholds()

    def detect(self, transcript: str | None, target_text: str | None, analysis_id: str = "-") -> HallucinationVerdict:
        """
        ハルシネーションを判定（最初に該当したルールを採用）

        Args:
            transcript: 音声認識の書き起こし
            target_text: 目標テキスト
            analysis_id: ログ用の解析ID

        Returns:
            判定結果（エラーにはせず、常に判定結果を返す）
        """
        transcript = transcript or ""
        t = self.thresholds
        clean_target: str = clean_chinese_text(target_text)
        clean_transcript: str = clean_chinese_text(transcript)

        target_chars = set(clean_target)
        transcript_chars = set(clean_transcript)
        overlap_ratio: float = (
            len(target_chars & transcript_chars) / len(target_chars) if target_chars else 0.0
        )
        length_ratio: float = len(clean_transcript) / len(clean_target) if clean_target else 0.0

        has_common_phrases: bool = self.lexicon.matches_hallucination_phrase(transcript)
        suspicious_length: bool = length_ratio > t.high_severity_length_ratio
        too_short: bool = len(clean_transcript) < len(clean_target) * t.short_text_ratio

        detected = True
        if has_common_phrases:
            severity = "high"
            message = ("Detected common phrases that may be hallucinations (like video endings). "
                       "Please try recording again.")
        elif suspicious_length and overlap_ratio < t.medium_severity_overlap:
            severity = "medium"
            message = ("Transcription much longer than expected with low character overlap. "
                       "May contain hallucinations.")
        elif too_short and overlap_ratio < t.short_text_overlap:
            severity = "medium"
            message = "Transcription too short and doesn't match expected content. Please speak more clearly."
        elif overlap_ratio < t.high_severity_overlap:
            severity = "high"
            message = "Transcription doesn't match expected Chinese characters. Please try again."
        else:
            detected = False
            severity = "none"
            message = ""

        if detected:
            logger.warning(
                "[%s] ハルシネーションの可能性: severity=%s overlap=%.2f length_ratio=%.2f",
                analysis_id, severity, overlap_ratio, length_ratio,
            )

        return HallucinationVerdict(
            detected=detected,
            severity=severity,
            overlap_ratio=overlap_ratio,
            length_ratio=length_ratio,
            message=message,
            has_common_phrases=has_common_phrases,
            too_short=too_short,
            suspicious_length=suspicious_length,
        )

    def penalty_for(self, verdict: HallucinationVerdict) -> HallucinationPenalty:
        """
        判定結果からスコアの係数を求める

        Args:
            verdict: ハルシネーション判定結果

        Returns:
            係数（1.0: 減点なし、0.0: 全スコアを0にする）
        """
        if not verdict.detected:
            return HallucinationPenalty(multiplier=1.0, should_zero_out=False)

        t = self.thresholds
        stats = f"overlap: {verdict.overlap_ratio * 100:.1f}%, length ratio: {verdict.length_ratio:.1f}x"

        if (verdict.severity == "high"
                or verdict.overlap_ratio == 0
                or verdict.length_ratio > t.high_severity_length_ratio):
            return HallucinationPenalty(
                multiplier=0.0,
                should_zero_out=True,
                reason=f"Severe hallucination detected ({stats})",
            )

        if (verdict.severity == "medium"
                or verdict.overlap_ratio < t.high_severity_overlap
                or verdict.length_ratio > t.medium_severity_length_ratio):
            return HallucinationPenalty(
                multiplier=0.1,
                should_zero_out=False,
                reason=f"Medium hallucination detected ({stats})",
            )

        return HallucinationPenalty(
            multiplier=0.5,
            should_zero_out=False,
            reason=f"Low hallucination detected ({stats})",
        )
