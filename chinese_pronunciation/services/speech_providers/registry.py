"""
サービス名から音声認識サービスを作成するレジストリ
"""
from typing import Dict, Type

from chinese_pronunciation.config import SpeechServicesSettings
from chinese_pronunciation.errors import ProviderConfigError
from chinese_pronunciation.services.scoring_engine import ScoringEngine
from chinese_pronunciation.services.speech_providers.assemblyai_provider import AssemblyAIProvider
from chinese_pronunciation.services.speech_providers.azure_provider import AzureSpeechProvider
from chinese_pronunciation.services.speech_providers.base import BaseSpeechProvider
from chinese_pronunciation.services.speech_providers.google_provider import GoogleSpeechProvider
from chinese_pronunciation.services.speech_providers.openai_whisper_provider import OpenAIWhisperProvider

PROVIDERS: Dict[str, Type[BaseSpeechProvider]] = {
    OpenAIWhisperProvider.name: OpenAIWhisperProvider,
    GoogleSpeechProvider.name: GoogleSpeechProvider,
    AzureSpeechProvider.name: AzureSpeechProvider,
    AssemblyAIProvider.name: AssemblyAIProvider,
}


def create_provider(name: str, settings: SpeechServicesSettings, scoring: ScoringEngine) -> BaseSpeechProvider:
    """
    サービス名に対応する音声認識サービスを作成

    Args:
        name: サービス名
        settings: 音声認識サービス全体の設定
        scoring: 共通の採点エンジン

    Returns:
        音声認識サービスのインスタンス

    Raises:
        ProviderConfigError: 未対応のサービス名、または設定が不足している場合
    """
    provider_class = PROVIDERS.get(name)
    if provider_class is None:
        raise ProviderConfigError(name, "未対応の音声認識サービスです")
    return provider_class(
        settings.service(name),
        scoring,
        max_retries=settings.max_retries,
        retry_delay=settings.retry_delay,
        timeout=settings.timeout,
    )
