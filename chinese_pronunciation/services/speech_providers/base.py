"""
音声認識サービスの共通処理
各サービスは書き起こしのみを実装し、採点は共通の採点エンジンに任せる
"""
import asyncio
import logging
import random
from typing import Awaitable, Callable, Protocol

from pydantic import BaseModel, ConfigDict, Field

from chinese_pronunciation.config import ProviderSettings
from chinese_pronunciation.errors import ProviderCallError, ProviderConfigError
from chinese_pronunciation.models.schemas import (
    AudioQualityAssessment,
    PronunciationReport,
    TranscriptionResult,
)
from chinese_pronunciation.services.scoring_engine import ScoringEngine

logger = logging.getLogger(__name__)


class AnalysisOptions(BaseModel):
    """1回の解析で共有するオプション"""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    analysis_id: str = "-"
    audio_quality: AudioQualityAssessment = Field(default_factory=AudioQualityAssessment)
    # リクエストごとの乱数生成器（テストではシード付きを渡す）
    rng: random.Random = Field(default_factory=random.Random)


class SpeechProvider(Protocol):
    """音声認識サービスのインターフェース"""

    name: str

    def validate_config(self) -> None:
        ...

    async def analyze_audio(
        self, audio_data: bytes, target_text: str, options: AnalysisOptions
    ) -> PronunciationReport:
        ...


class BaseSpeechProvider:
    """
    音声認識サービスの基底クラス

    サブクラスはnameとtranscribe()を実装する
    """

    name: str = ""

    def __init__(
        self,
        settings: ProviderSettings,
        scoring: ScoringEngine,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
    ) -> None:
        """
        初期化処理

        Args:
            settings: サービスの個別設定
            scoring: 共通の採点エンジン
            max_retries: 同じサービスでの最大試行回数
            retry_delay: 再試行までの初回待機秒数（以後倍増）
            timeout: 1回の呼び出しのタイムアウト秒数

        Raises:
            ProviderConfigError: サービスが無効、または認証情報が不足している場合
        """
        self.settings: ProviderSettings = settings
        self.scoring: ScoringEngine = scoring
        self.max_retries: int = max(1, max_retries)
        self.retry_delay: float = retry_delay
        self.timeout: float = timeout
        self.validate_config()

    def validate_config(self) -> None:
        """設定を検証（サブクラスで認証情報のチェックを追加する）"""
        if not self.settings.enabled:
            raise ProviderConfigError(self.name, "サービスが無効になっています")

    async def transcribe(self, audio_data: bytes, analysis_id: str) -> TranscriptionResult:
        """
        音声データを書き起こす

        Raises:
            ProviderCallError: サービス呼び出しに失敗した場合
        """
        raise NotImplementedError

    async def analyze_audio(
        self, audio_data: bytes, target_text: str, options: AnalysisOptions
    ) -> PronunciationReport:
        """
        音声を書き起こして評価レポートを作成

        Args:
            audio_data: 音声データ（WAV）
            target_text: 目標テキスト
            options: 解析ID・音声品質・乱数生成器

        Returns:
            評価レポート
        """
        analysis_id: str = options.analysis_id
        logger.info("[%s] %s: 解析開始 (%d bytes)", analysis_id, self.name, len(audio_data))

        transcription: TranscriptionResult = await self.call_with_retry(
            lambda: self.transcribe(audio_data, analysis_id), analysis_id
        )
        logger.info(
            "[%s] %s: 書き起こし=%r confidence=%s",
            analysis_id, self.name, transcription.transcript, transcription.confidence,
        )

        return self.scoring.build_report(
            transcription,
            target_text,
            options.audio_quality,
            self.name,
            rng=options.rng,
            analysis_id=analysis_id,
        )

    async def call_with_retry(
        self, operation: Callable[[], Awaitable[TranscriptionResult]], analysis_id: str = "-"
    ) -> TranscriptionResult:
        """
        タイムアウト付きで呼び出し、再試行可能なエラーは指数バックオフで再試行

        Args:
            operation: 呼び出すコルーチン関数
            analysis_id: ログ用の解析ID

        Returns:
            書き起こし結果

        Raises:
            ProviderCallError: 再試行できないエラー、または試行回数を超えた場合
        """
        delay: float = self.retry_delay
        for attempt in range(1, self.max_retries + 1):
            try:
                return await asyncio.wait_for(operation(), timeout=self.timeout)
            except asyncio.TimeoutError:
                error = ProviderCallError(self.name, f"タイムアウトしました ({self.timeout}秒)", retryable=True)
            except ProviderCallError as e:
                error = e

            if not error.retryable or attempt >= self.max_retries:
                raise error

            logger.warning(
                "[%s] %s: 再試行します (%d/%d): %s",
                analysis_id, self.name, attempt, self.max_retries, error,
            )
            await asyncio.sleep(delay)
            delay *= 2

        raise ProviderCallError(self.name, "試行回数を超えました")
