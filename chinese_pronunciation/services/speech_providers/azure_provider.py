"""
Azure Speech Serviceによる音声認識サービス
"""
import asyncio
import json
import logging
from typing import Any, Dict, List

import azure.cognitiveservices.speech as speechsdk

from chinese_pronunciation.errors import ProviderCallError, ProviderConfigError
from chinese_pronunciation.models.schemas import TranscriptionResult, TranscriptionWord
from chinese_pronunciation.services.speech_providers.base import BaseSpeechProvider

logger = logging.getLogger(__name__)

# Azureの時間単位（100ナノ秒）
TICKS_PER_SECOND = 10_000_000

RETRYABLE_ERROR_CODES = {
    speechsdk.CancellationErrorCode.ConnectionFailure,
    speechsdk.CancellationErrorCode.ServiceTimeout,
    speechsdk.CancellationErrorCode.ServiceUnavailable,
    speechsdk.CancellationErrorCode.TooManyRequests,
}


def ticks_to_seconds(ticks: int | None) -> float | None:
    if ticks is None:
        return None
    return ticks / TICKS_PER_SECOND


class AzureSpeechProvider(BaseSpeechProvider):
    """Azure Speech Serviceを使用するサービスクラス"""

    name = "azure"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.speech_config: speechsdk.SpeechConfig = speechsdk.SpeechConfig(
            subscription=self.settings.api_key,
            region=self.settings.region,
        )
        self.speech_config.speech_recognition_language = self.settings.language
        self.speech_config.output_format = speechsdk.OutputFormat.Detailed
        self.speech_config.request_word_level_timestamps()

    def validate_config(self) -> None:
        super().validate_config()
        if not self.settings.api_key or not self.settings.region:
            raise ProviderConfigError(self.name, "AZURE_SPEECH_KEYとAZURE_SPEECH_REGION環境変数が設定されていません")

    async def transcribe(self, audio_data: bytes, analysis_id: str) -> TranscriptionResult:
        """
        Azure Speech SDKで書き起こし（SDKはブロッキングのため別スレッドで実行）

        Args:
            audio_data: 音声データ（WAV）
            analysis_id: ログ用の解析ID

        Returns:
            書き起こし結果（音声が認識されなかった場合は空の書き起こし）
        """
        logger.debug("[%s] Azure Speech呼び出し (region=%s)", analysis_id, self.settings.region)
        result: speechsdk.SpeechRecognitionResult = await asyncio.to_thread(self.recognize, audio_data)

        if result.reason == speechsdk.ResultReason.RecognizedSpeech:
            detail: str = result.properties.get(speechsdk.PropertyId.SpeechServiceResponse_JsonResult, "")
            return self.to_transcription(result.text, json.loads(detail) if detail else {})

        if result.reason == speechsdk.ResultReason.NoMatch:
            logger.warning("[%s] Azure: 音声が認識されませんでした", analysis_id)
            return TranscriptionResult(transcript="", confidence=0.0, language=self.settings.language)

        details = result.cancellation_details
        retryable: bool = details.error_code in RETRYABLE_ERROR_CODES
        raise ProviderCallError(
            self.name,
            f"認識がキャンセルされました ({details.reason}): {details.error_details}",
            retryable=retryable,
        )

    def recognize(self, audio_data: bytes) -> speechsdk.SpeechRecognitionResult:
        """音声データをストリームに書き込んで1回認識"""
        audio_stream: speechsdk.audio.PushAudioInputStream = speechsdk.audio.PushAudioInputStream()
        audio_stream.write(audio_data)
        audio_stream.close()

        audio_config: speechsdk.audio.AudioConfig = speechsdk.audio.AudioConfig(stream=audio_stream)
        speech_recognizer: speechsdk.SpeechRecognizer = speechsdk.SpeechRecognizer(
            speech_config=self.speech_config,
            audio_config=audio_config,
        )
        return speech_recognizer.recognize_once()

    def to_transcription(self, text: str, detail: Dict[str, Any]) -> TranscriptionResult:
        """Azureの詳細JSON（NBest）を書き起こし結果に変換"""
        best: Dict[str, Any] = (detail.get("NBest") or [{}])[0]
        words: List[TranscriptionWord] = []

        for item in best.get("Words", []):
            start: float | None = ticks_to_seconds(item.get("Offset"))
            length: float | None = ticks_to_seconds(item.get("Duration"))
            words.append(TranscriptionWord(
                text=item.get("Word", ""),
                start_time=start,
                end_time=start + length if start is not None and length is not None else None,
                confidence=item.get("Confidence"),
            ))

        return TranscriptionResult(
            transcript=(best.get("Display") or text or "").strip(),
            confidence=best.get("Confidence", 0.0),
            words=words,
            duration=ticks_to_seconds(detail.get("Duration")),
            language=self.settings.language,
        )
