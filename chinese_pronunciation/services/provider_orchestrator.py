"""
音声認識サービスのフォールバック制御
設定された順序でサービスを1つずつ試し、最初に成功した評価レポートを返す
"""
import logging
from typing import Callable, List

from pydantic import BaseModel, ConfigDict, Field

from chinese_pronunciation.config import SpeechServicesSettings
from chinese_pronunciation.errors import AllProvidersFailedError
from chinese_pronunciation.models.schemas import PronunciationReport
from chinese_pronunciation.services.scoring_engine import ScoringEngine
from chinese_pronunciation.services.speech_providers.base import AnalysisOptions, SpeechProvider
from chinese_pronunciation.services.speech_providers.registry import create_provider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[str], SpeechProvider]


class ProviderAttempt(BaseModel):
    """サービス1件分の試行結果（レポートかエラーのどちらか）"""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    service: str
    report: PronunciationReport | None = None
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.report is not None


class OrchestrationResult(BaseModel):
    """フォールバック制御の結果"""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    report: PronunciationReport
    attempts: List[ProviderAttempt] = Field(default_factory=list)


class ProviderOrchestrator:
    """音声認識サービスを順番に試すサービスクラス"""

    def __init__(
        self,
        settings: SpeechServicesSettings,
        scoring: ScoringEngine,
        provider_factory: ProviderFactory | None = None,
    ) -> None:
        """
        初期化処理

        Args:
            settings: 音声認識サービス全体の設定
            scoring: 共通の採点エンジン
            provider_factory: サービス名からサービスを作成する関数（省略時はレジストリを使用）
        """
        self.settings: SpeechServicesSettings = settings
        self.scoring: ScoringEngine = scoring
        self.provider_factory: ProviderFactory = provider_factory or (
            lambda name: create_provider(name, self.settings, self.scoring)
        )

    async def run(
        self,
        audio_data: bytes,
        target_text: str,
        options: AnalysisOptions,
        preferred_service: str | None = None,
    ) -> OrchestrationResult:
        """
        サービスを順番に試して評価

        Args:
            audio_data: 音声データ（WAV）
            target_text: 目標テキスト
            options: 解析ID・音声品質・乱数生成器
            preferred_service: 指定時はそのサービスのみ試す

        Returns:
            評価レポートと試行履歴

        Raises:
            AllProvidersFailedError: 試すサービスが1つもない場合
            Exception: 全サービスが失敗した場合は最後のエラーをそのまま送出
        """
        analysis_id: str = options.analysis_id
        chain: List[str] = self.settings.service_chain(preferred_service)
        if not chain:
            raise AllProvidersFailedError("音声認識サービスが設定されていません")

        logger.info("[%s] サービスの試行順序: %s", analysis_id, " -> ".join(chain))
        attempts: List[ProviderAttempt] = []
        last_error: Exception | None = None

        # CancelledErrorはExceptionではないため、ここでは捕捉されずに中断される
        for name in chain:
            try:
                provider: SpeechProvider = self.provider_factory(name)
            except Exception as e:
                logger.warning("[%s] %s: 利用できません: %s", analysis_id, name, e)
                attempts.append(ProviderAttempt(service=name, error=e))
                last_error = e
                continue

            try:
                report: PronunciationReport = await provider.analyze_audio(audio_data, target_text, options)
            except Exception as e:
                logger.error("[%s] %s: 解析に失敗しました: %s", analysis_id, name, e)
                attempts.append(ProviderAttempt(service=name, error=e))
                last_error = e
                continue

            attempts.append(ProviderAttempt(service=name, report=report))
            logger.info("[%s] %s: 解析成功 (試行 %d 件目)", analysis_id, name, len(attempts))
            return OrchestrationResult(report=report, attempts=attempts)

        logger.error(
            "[%s] 全サービスが失敗しました: %s",
            analysis_id, ", ".join(a.service for a in attempts),
        )
        raise last_error or AllProvidersFailedError("全ての音声認識サービスが失敗しました", attempts)

    async def analyze_audio(
        self,
        audio_data: bytes,
        target_text: str,
        options: AnalysisOptions,
        preferred_service: str | None = None,
    ) -> PronunciationReport:
        """評価レポートのみを返す"""
        result: OrchestrationResult = await self.run(audio_data, target_text, options, preferred_service)
        return result.report
