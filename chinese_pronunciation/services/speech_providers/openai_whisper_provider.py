"""
OpenAI Whisperによる音声認識サービス
"""
import asyncio
import logging
from typing import Any, List

import openai
from openai import OpenAI

from chinese_pronunciation.errors import ProviderCallError, ProviderConfigError
from chinese_pronunciation.models.schemas import TranscriptionResult, TranscriptionWord
from chinese_pronunciation.services.speech_providers.base import BaseSpeechProvider
from chinese_pronunciation.services.text_segmenter import clean_chinese_text

logger = logging.getLogger(__name__)


def estimate_confidence(text: str, word_confidences: List[float]) -> float:
    """
    Whisperの結果から信頼度を推定（Whisperは信頼度を返さないことが多い）

    Args:
        text: 書き起こしテキスト
        word_confidences: 単語ごとの信頼度（取得できたもののみ）

    Returns:
        推定信頼度（0-1）
    """
    if word_confidences:
        return sum(word_confidences) / len(word_confidences)
    if not clean_chinese_text(text):
        # 中国語が含まれていない
        return 0.1
    if len(text) < 3:
        return 0.4
    return 0.8


class OpenAIWhisperProvider(BaseSpeechProvider):
    """OpenAI Whisper APIを使用するサービスクラス"""

    name = "openai_whisper"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        # 再試行は基底クラスで行う
        self.client: OpenAI = OpenAI(api_key=self.settings.api_key, max_retries=0, timeout=self.timeout)
        self.model: str = self.settings.model or "whisper-1"

    def validate_config(self) -> None:
        super().validate_config()
        if not self.settings.api_key:
            raise ProviderConfigError(self.name, "OPENAI_API_KEYまたはOPENAI_API環境変数が設定されていません")

    async def transcribe(self, audio_data: bytes, analysis_id: str) -> TranscriptionResult:
        """
        Whisper APIで書き起こし（単語単位のタイムスタンプ付き）

        Args:
            audio_data: 音声データ（WAV）
            analysis_id: ログ用の解析ID

        Returns:
            書き起こし結果
        """
        logger.debug("[%s] Whisper API呼び出し (model=%s)", analysis_id, self.model)
        try:
            response = await asyncio.to_thread(
                self.client.audio.transcriptions.create,
                model=self.model,
                file=("audio.wav", audio_data, "audio/wav"),
                language=self.settings.language,
                temperature=0,
                response_format="verbose_json",
                timestamp_granularities=["word"],
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise ProviderCallError(self.name, f"APIキーが無効です: {e}") from e
        except openai.BadRequestError as e:
            raise ProviderCallError(self.name, f"音声形式が不正、または音声が空です: {e}") from e
        except openai.RateLimitError as e:
            raise ProviderCallError(self.name, f"レート制限を超えました: {e}", retryable=True) from e
        except (openai.APIConnectionError, openai.InternalServerError) as e:
            raise ProviderCallError(self.name, f"API接続エラー: {e}", retryable=True) from e
        except openai.APIError as e:
            raise ProviderCallError(self.name, f"Whisper APIエラー: {e}") from e

        return self.to_transcription(response)

    def to_transcription(self, response: Any) -> TranscriptionResult:
        """Whisperのverbose_json応答を書き起こし結果に変換"""
        text: str = (getattr(response, "text", "") or "").strip()
        words: List[TranscriptionWord] = []
        word_confidences: List[float] = []

        for item in getattr(response, "words", None) or []:
            confidence: float | None = getattr(item, "confidence", None)
            if confidence is not None:
                word_confidences.append(confidence)
            words.append(TranscriptionWord(
                text=item.word,
                start_time=item.start,
                end_time=item.end,
                confidence=confidence,
            ))

        return TranscriptionResult(
            transcript=text,
            confidence=estimate_confidence(text, word_confidences),
            words=words,
            duration=getattr(response, "duration", None),
            language=getattr(response, "language", None) or self.settings.language,
        )
