"""
発音評価サービス
音声品質チェック、音声認識サービスのフォールバック、採点を統合して評価レポートを作成する
"""
import asyncio
import logging
import random
import uuid
from typing import Callable, Set

from chinese_pronunciation.config import SpeechServicesSettings
from chinese_pronunciation.errors import EmptyAudioError
from chinese_pronunciation.models.schemas import (
    AudioQualityAssessment,
    PronunciationReport,
    TranscriptionResult,
)
from chinese_pronunciation.services.audio_validator import AudioValidator
from chinese_pronunciation.services.debug_audio_store import DebugAudioStore
from chinese_pronunciation.services.hallucination_detector import HallucinationDetector
from chinese_pronunciation.services.lexicon_service import LexiconService
from chinese_pronunciation.services.mock_recognizer import MOCK_PROVIDER_NAME, MockRecognizer
from chinese_pronunciation.services.provider_orchestrator import ProviderFactory, ProviderOrchestrator
from chinese_pronunciation.services.recommendation_service import RecommendationService
from chinese_pronunciation.services.scoring_engine import ScoringEngine
from chinese_pronunciation.services.speech_providers.base import AnalysisOptions
from chinese_pronunciation.services.text_segmenter import TextSegmenter

logger = logging.getLogger(__name__)


def new_analysis_id() -> str:
    """ログと保存ファイル名で使用する解析IDを生成"""
    return f"analysis_{uuid.uuid4().hex[:12]}"


class PronunciationService:
    """発音評価を統合的に実行するサービスクラス"""

    def __init__(
        self,
        settings: SpeechServicesSettings | None = None,
        lexicon: LexiconService | None = None,
        provider_factory: ProviderFactory | None = None,
        debug_store: DebugAudioStore | None = None,
        rng_factory: Callable[[], random.Random] | None = None,
    ) -> None:
        """
        初期化処理
        語彙データを読み込み、各サービスを組み立てる

        Args:
            settings: 音声認識サービスの設定（省略時は環境変数から読み込む）
            lexicon: 語彙データ（省略時は同梱のJSONから読み込む）
            provider_factory: サービス名から音声認識サービスを作成する関数
            debug_store: デバッグ音声の保存先
            rng_factory: リクエストごとの乱数生成器を作成する関数
        """
        self.settings: SpeechServicesSettings = settings or SpeechServicesSettings.from_env()
        self.lexicon: LexiconService = lexicon or LexiconService.load()
        self.segmenter = TextSegmenter(self.lexicon)
        self.validator = AudioValidator(self.settings.audio)
        self.scoring = ScoringEngine(
            self.lexicon,
            self.segmenter,
            HallucinationDetector(self.lexicon, self.settings.hallucination),
            RecommendationService(self.lexicon, self.settings.scoring),
            self.settings.scoring,
        )
        self.orchestrator = ProviderOrchestrator(self.settings, self.scoring, provider_factory)
        self.mock_recognizer = MockRecognizer(self.segmenter)
        self.debug_store: DebugAudioStore = debug_store or DebugAudioStore()
        self.rng_factory: Callable[[], random.Random] = rng_factory or random.Random
        self._pending_writes: Set[asyncio.Task] = set()

    def initialize(self) -> None:
        """デバッグ音声の保存先を準備"""
        if self.settings.save_debug_audio:
            self.debug_store.ensure_directory()
        logger.info(
            "発音評価サービスを初期化しました (primary=%s, fallback=%s)",
            self.settings.primary_service, ", ".join(self.settings.fallback_services),
        )

    async def shutdown(self) -> None:
        """保存中のデバッグ音声の書き込み完了を待つ"""
        if self._pending_writes:
            await asyncio.gather(*self._pending_writes, return_exceptions=True)
        logger.info("発音評価サービスを終了しました")

    async def analyze_audio(
        self,
        audio_data: bytes | None,
        target_text: str,
        preferred_service: str | None = None,
        analysis_id: str | None = None,
    ) -> PronunciationReport:
        """
        音声を評価してレポートを作成

        Args:
            audio_data: 音声データ（WAV、16kHz/16bit/モノラル想定）
            target_text: 目標テキスト
            preferred_service: 指定時はそのサービスのみ使用
            analysis_id: 解析ID（省略時は自動生成）

        Returns:
            評価レポート

        Raises:
            EmptyAudioError: 音声データが空の場合
        """
        analysis_id = analysis_id or new_analysis_id()
        logger.info("[%s] 発音評価開始: target=%r", analysis_id, target_text)

        if not audio_data:
            raise EmptyAudioError("音声データが空です")

        audio_quality: AudioQualityAssessment = self.validator.validate(audio_data, analysis_id)
        logger.info(
            "[%s] 音声品質: rating=%s duration=%.2fs has_content=%s",
            analysis_id, audio_quality.rating, audio_quality.estimated_duration_sec, audio_quality.has_content,
        )

        if self.settings.save_debug_audio:
            self.schedule_debug_save(audio_data, analysis_id, target_text)

        options = AnalysisOptions(analysis_id=analysis_id, audio_quality=audio_quality, rng=self.rng_factory())

        try:
            return await self.orchestrator.analyze_audio(audio_data, target_text, options, preferred_service)
        except Exception as e:
            if not self.settings.allow_mock_fallback:
                raise
            logger.warning("[%s] 音声認識サービスが失敗したため模擬認識を使用します: %s", analysis_id, e)
            return self.analyze_with_mock(target_text, options, str(e))

    def analyze_with_mock(self, target_text: str, options: AnalysisOptions, reason: str) -> PronunciationReport:
        """
        模擬認識の結果を同じ採点エンジンで評価

        Args:
            target_text: 目標テキスト
            options: 解析ID・音声品質・乱数生成器
            reason: 模擬認識に切り替えた理由

        Returns:
            providerがmock_fallbackの評価レポート
        """
        transcription: TranscriptionResult = self.mock_recognizer.recognize(
            target_text, options.audio_quality, options.rng, options.analysis_id
        )
        return self.scoring.build_report(
            transcription,
            target_text,
            options.audio_quality,
            MOCK_PROVIDER_NAME,
            rng=options.rng,
            analysis_id=options.analysis_id,
            accuracy_mode="segment",
            fallback_reason=reason,
        )

    def schedule_debug_save(self, audio_data: bytes, analysis_id: str, target_text: str) -> None:
        """デバッグ音声の保存をバックグラウンドで開始（解析は完了を待たない）"""
        task: asyncio.Task = asyncio.create_task(
            asyncio.to_thread(self.debug_store.save, audio_data, analysis_id, target_text)
        )
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)
