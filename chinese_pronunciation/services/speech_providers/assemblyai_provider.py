"""
AssemblyAIによる音声認識サービス（REST API）
"""
import asyncio
import logging
from typing import Any, Dict, List

import httpx

from chinese_pronunciation.errors import ProviderCallError, ProviderConfigError
from chinese_pronunciation.models.schemas import TranscriptionResult, TranscriptionWord
from chinese_pronunciation.services.speech_providers.base import BaseSpeechProvider

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.assemblyai.com/v2"


class AssemblyAIProvider(BaseSpeechProvider):
    """AssemblyAIのアップロード・書き起こしAPIを使用するサービスクラス"""

    name = "assemblyai"

    def __init__(self, *args: Any, transport: httpx.AsyncBaseTransport | None = None, **kwargs: Any) -> None:
        """
        初期化処理

        Args:
            transport: httpxのトランスポート（テスト時に差し替える）
        """
        super().__init__(*args, **kwargs)
        self.base_url: str = (self.settings.base_url or DEFAULT_BASE_URL).rstrip("/")
        self.transport: httpx.AsyncBaseTransport | None = transport

    def validate_config(self) -> None:
        super().validate_config()
        if not self.settings.api_key:
            raise ProviderConfigError(self.name, "ASSEMBLYAI_API_KEY環境変数が設定されていません")

    async def transcribe(self, audio_data: bytes, analysis_id: str) -> TranscriptionResult:
        """
        音声をアップロードし、書き起こしが完了するまでポーリング

        Args:
            audio_data: 音声データ（WAV）
            analysis_id: ログ用の解析ID

        Returns:
            書き起こし結果
        """
        headers: Dict[str, str] = {"authorization": self.settings.api_key or ""}
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, headers=headers, timeout=self.timeout, transport=self.transport
            ) as client:
                upload = await client.post("/upload", content=audio_data)
                upload.raise_for_status()
                upload_url: str = upload.json()["upload_url"]

                created = await client.post("/transcript", json={
                    "audio_url": upload_url,
                    "language_code": self.settings.language,
                })
                created.raise_for_status()
                transcript_id: str = created.json()["id"]
                logger.debug("[%s] AssemblyAI: 書き起こしジョブ作成 id=%s", analysis_id, transcript_id)

                while True:
                    polled = await client.get(f"/transcript/{transcript_id}")
                    polled.raise_for_status()
                    body: Dict[str, Any] = polled.json()
                    status: str = body.get("status", "")
                    if status == "completed":
                        return self.to_transcription(body)
                    if status == "error":
                        raise ProviderCallError(self.name, f"書き起こしに失敗しました: {body.get('error')}")
                    await asyncio.sleep(self.settings.poll_interval)
        except httpx.HTTPStatusError as e:
            code: int = e.response.status_code
            retryable: bool = code == 429 or code >= 500
            raise ProviderCallError(self.name, f"HTTPエラー {code}: {e}", retryable=retryable) from e
        except httpx.TransportError as e:
            raise ProviderCallError(self.name, f"接続エラー: {e}", retryable=True) from e

    def to_transcription(self, body: Dict[str, Any]) -> TranscriptionResult:
        """AssemblyAIの応答（ミリ秒のタイムスタンプ）を書き起こし結果に変換"""
        words: List[TranscriptionWord] = [
            TranscriptionWord(
                text=item.get("text", ""),
                start_time=item["start"] / 1000 if item.get("start") is not None else None,
                end_time=item["end"] / 1000 if item.get("end") is not None else None,
                confidence=item.get("confidence"),
            )
            for item in body.get("words") or []
        ]
        return TranscriptionResult(
            transcript=(body.get("text") or "").strip(),
            confidence=body.get("confidence") or 0.0,
            words=words,
            duration=body.get("audio_duration"),
            language=body.get("language_code") or self.settings.language,
        )
