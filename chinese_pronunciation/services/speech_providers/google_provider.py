"""
Google Cloud Speech-to-Textによる音声認識サービス
"""
import asyncio
import logging
from typing import Any, List

from google.api_core import exceptions as google_exceptions
from google.auth.exceptions import DefaultCredentialsError
from google.cloud import speech_v1p1beta1 as speech

from chinese_pronunciation.errors import ProviderCallError, ProviderConfigError
from chinese_pronunciation.models.schemas import TranscriptionResult, TranscriptionWord
from chinese_pronunciation.services.speech_providers.base import BaseSpeechProvider

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (
    google_exceptions.ServiceUnavailable,
    google_exceptions.TooManyRequests,
    google_exceptions.DeadlineExceeded,
    google_exceptions.InternalServerError,
)


class GoogleSpeechProvider(BaseSpeechProvider):
    """Google Cloud Speech-to-Textを使用するサービスクラス"""

    name = "google"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        try:
            if self.settings.key_file:
                self.client: speech.SpeechClient = speech.SpeechClient.from_service_account_file(
                    self.settings.key_file
                )
            else:
                self.client = speech.SpeechClient()
        except (DefaultCredentialsError, OSError, ValueError) as e:
            raise ProviderConfigError(self.name, f"認証情報を読み込めません: {e}") from e

    def validate_config(self) -> None:
        super().validate_config()
        if not self.settings.key_file and not self.settings.project_id:
            raise ProviderConfigError(
                self.name,
                "GOOGLE_APPLICATION_CREDENTIALSまたはGOOGLE_CLOUD_PROJECT_ID環境変数が設定されていません",
            )

    def recognition_config(self) -> speech.RecognitionConfig:
        return speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=self.settings.sample_rate_hertz,
            language_code=self.settings.language,
            alternative_language_codes=self.settings.alternative_languages,
            enable_word_time_offsets=True,
            enable_word_confidence=True,
            enable_automatic_punctuation=False,
            model="default",
        )

    async def transcribe(self, audio_data: bytes, analysis_id: str) -> TranscriptionResult:
        """
        Google Speech-to-Textで書き起こし

        Args:
            audio_data: 音声データ（WAV、LINEAR16）
            analysis_id: ログ用の解析ID

        Returns:
            書き起こし結果（認識結果がない場合は空の書き起こし）
        """
        logger.debug("[%s] Google Speech呼び出し (language=%s)", analysis_id, self.settings.language)
        audio = speech.RecognitionAudio(content=audio_data)
        try:
            response = await asyncio.to_thread(
                self.client.recognize, config=self.recognition_config(), audio=audio
            )
        except RETRYABLE_ERRORS as e:
            raise ProviderCallError(self.name, f"一時的なAPIエラー: {e}", retryable=True) from e
        except google_exceptions.GoogleAPIError as e:
            raise ProviderCallError(self.name, f"Google Speech APIエラー: {e}") from e

        if not response.results:
            logger.warning("[%s] Google: 認識結果がありません", analysis_id)
            return TranscriptionResult(transcript="", confidence=0.0, language=self.settings.language)

        return self.to_transcription(response)

    def to_transcription(self, response: Any) -> TranscriptionResult:
        """Googleの認識結果（先頭の候補）を書き起こし結果に変換"""
        alternative = response.results[0].alternatives[0]
        words: List[TranscriptionWord] = [
            TranscriptionWord(
                text=item.word,
                start_time=item.start_time.total_seconds(),
                end_time=item.end_time.total_seconds(),
                confidence=item.confidence or None,
            )
            for item in alternative.words
        ]
        duration: float | None = words[-1].end_time if words else None

        return TranscriptionResult(
            transcript=alternative.transcript.strip(),
            confidence=alternative.confidence,
            words=words,
            duration=duration,
            language=response.results[0].language_code or self.settings.language,
        )
