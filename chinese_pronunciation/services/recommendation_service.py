"""
アドバイス生成サービス
評価レポートのスコアと音声品質から学習者向けのアドバイスを作成する
"""
from typing import List

from chinese_pronunciation.config import ScoringSettings
from chinese_pronunciation.models.schemas import PronunciationReport, Recommendation, TextDifficulty
from chinese_pronunciation.services.lexicon_service import LexiconService


class RecommendationService:
    """評価結果をアドバイスのリストに変換するサービスクラス（状態を持たない）"""

    def __init__(self, lexicon: LexiconService, scoring: ScoringSettings | None = None) -> None:
        self.lexicon = lexicon
        self.scoring: ScoringSettings = scoring or ScoringSettings()

    def generate(self, report: PronunciationReport, text_analysis: TextDifficulty | None = None) -> List[Recommendation]:
        """
        アドバイスを優先度付きで生成

        Args:
            report: 完成した評価レポート（recommendationsは参照しない）
            text_analysis: 目標テキストの難易度（省略時はreport.text_analysisを使用）

        Returns:
            アドバイスのリスト（音声品質のアドバイスは常に最後）
        """
        recommendations: List[Recommendation] = []
        accuracy: int = report.overall_accuracy
        text_analysis = text_analysis or report.text_analysis
        threshold: float = self.scoring.issue_threshold

        hallucination = report.hallucination_check
        if hallucination and hallucination.detected:
            recommendations.append(Recommendation(
                type="transcription_warning",
                message=hallucination.message,
                priority="high",
            ))

        if accuracy < self.scoring.good_threshold:
            level = "high" if accuracy < self.scoring.fair_threshold else "medium"
            recommendations.append(Recommendation(
                type="accuracy",
                message=self.lexicon.get_message("accuracy", level),
                priority=level,
            ))

        problematic_words: List[str] = [w.word for w in report.words if w.score < threshold]
        if problematic_words:
            recommendations.append(Recommendation(
                type="words",
                message=f"Focus on these characters: {', '.join(problematic_words)}",
                priority="medium",
            ))

        if any(w.details.tone < threshold for w in report.words):
            recommendations.append(Recommendation(
                type="tone",
                message=self.lexicon.get_message("tone", "high"),
                priority="high",
            ))

        # 難しいテキストで正確性が低い場合は下のレベルを勧める
        if text_analysis and text_analysis.max_hsk > 3 and accuracy < self.scoring.good_threshold:
            key = f"hsk{max(1, text_analysis.max_hsk - 1)}"
            recommendations.append(Recommendation(
                type="difficulty",
                message=self.lexicon.get_message("difficulty", key) or self.lexicon.get_message("difficulty", "hsk3"),
                priority="medium",
            ))

        rating: str = report.audio_quality.rating
        recommendations.append(Recommendation(
            type="audio",
            message=self.lexicon.get_message("audio_quality", rating),
            priority="high" if rating == "poor" else "medium",
        ))

        return recommendations
