"""
発音評価で使用する例外クラス
"""
from typing import Any, List


class PronunciationError(Exception):
    """発音評価処理の基底例外"""


class EmptyAudioError(PronunciationError):
    """音声バッファが空、または存在しない場合の例外"""


class ProviderConfigError(PronunciationError):
    """音声認識サービスの認証情報・設定が不足している場合の例外"""

    def __init__(self, service: str, message: str) -> None:
        super().__init__(f"[{service}] {message}")
        self.service = service


class ProviderCallError(PronunciationError):
    """
    音声認識サービス呼び出し時の例外（ネットワーク、認証、クォータ）

    retryableがTrueの場合、同じサービスで再試行する
    """

    def __init__(self, service: str, message: str, retryable: bool = False) -> None:
        super().__init__(f"[{service}] {message}")
        self.service = service
        self.retryable = retryable


class AllProvidersFailedError(PronunciationError):
    """試行できる音声認識サービスが存在しない場合の例外"""

    def __init__(self, message: str, attempts: List[Any] | None = None) -> None:
        super().__init__(message)
        self.attempts: List[Any] = attempts or []
