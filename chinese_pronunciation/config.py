"""
アプリケーション設定
環境変数から音声認識サービスと採点パラメータの設定を読み込む
"""
import os
import sys
from pathlib import Path
from typing import Dict, List

from pydantic import BaseModel, Field


def get_app_data_dir() -> Path:
    """
    アプリケーションのデータディレクトリを取得

    Returns:
        アプリケーションデータディレクトリのパス
    """
    if sys.platform == "win32":
        # Windowsの場合、AppData\Local\ChinesePronunciationを使用
        app_data: str | None = os.getenv("LOCALAPPDATA")
        if app_data:
            return Path(app_data) / "ChinesePronunciation"
    elif sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "ChinesePronunciation"
    # その他のOSまたはフォールバック
    return Path.home() / ".chinese_pronunciation"


def get_log_file() -> Path:
    """
    ログファイルのパスを取得

    Returns:
        ログファイルのパス
    """
    return get_app_data_dir() / "pronunciation.log"


def _env_flag(name: str, default: bool = False) -> bool:
    """環境変数を真偽値として読み込む"""
    value: str | None = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: List[str]) -> List[str]:
    """カンマ区切りの環境変数をリストとして読み込む"""
    value: str | None = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


# アプリケーションデータディレクトリ
APP_DATA_DIR = get_app_data_dir()

# ログファイル
LOG_FILE = get_log_file()

# デバッグ音声の保存先
DEBUG_AUDIO_DIR = APP_DATA_DIR / "debug_audio"

# サポートしている音声認識サービス（フォールバック順）
SUPPORTED_SERVICES: List[str] = ["openai_whisper", "google", "azure", "assemblyai"]


class AudioThresholds(BaseModel):
    """音声バッファのサイズ閾値（バイト）"""

    model_config = {"frozen": True}

    empty_audio_size: int = 1000
    short_audio_size: int = 5000
    fair_audio_size: int = 20000
    good_audio_size: int = 50000
    # 16kHz, 16bit, モノラル
    bytes_per_second: int = 32000
    wav_header_size: int = 44
    silence_ratio_limit: float = 0.8


class HallucinationThresholds(BaseModel):
    """ハルシネーション判定の閾値"""

    model_config = {"frozen": True}

    high_severity_overlap: float = 0.2
    high_severity_length_ratio: float = 10
    medium_severity_overlap: float = 0.3
    medium_severity_length_ratio: float = 3
    short_text_overlap: float = 0.5
    short_text_ratio: float = 0.3


class ScoringSettings(BaseModel):
    """採点の重みと閾値"""

    model_config = {"frozen": True}

    tone_weight: float = 0.4
    pronunciation_weight: float = 0.4
    fluency_weight: float = 0.2
    excellent_threshold: float = 85
    good_threshold: float = 70
    fair_threshold: float = 50
    issue_threshold: float = 60
    tone_difficulty_penalty: float = 20
    too_fast_duration: float = 0.2
    too_slow_duration: float = 1.0
    context_bonus_cap: float = 10
    audio_quality_penalties: Dict[str, float] = Field(
        default_factory=lambda: {"poor": 0.5, "fair": 0.7, "good": 1.0, "excellent": 1.0}
    )

    def quality_penalty(self, rating: str) -> float:
        """音声品質評価に対応するペナルティ係数を取得"""
        return self.audio_quality_penalties.get(rating, 0.5)


class ProviderSettings(BaseModel):
    """音声認識サービス1件分の設定"""

    model_config = {"frozen": True}

    enabled: bool = False
    api_key: str | None = None
    model: str | None = None
    region: str | None = None
    key_file: str | None = None
    project_id: str | None = None
    language: str = "zh"
    alternative_languages: List[str] = Field(default_factory=list)
    sample_rate_hertz: int = 16000
    base_url: str | None = None
    poll_interval: float = 1.0


class SpeechServicesSettings(BaseModel):
    """音声認識サービス全体の設定"""

    model_config = {"frozen": True}

    primary_service: str = "openai_whisper"
    fallback_services: List[str] = Field(default_factory=lambda: list(SUPPORTED_SERVICES))
    services: Dict[str, ProviderSettings] = Field(default_factory=dict)
    max_retries: int = 3
    retry_delay: float = 1.0
    timeout: float = 30.0
    allow_mock_fallback: bool = True
    save_debug_audio: bool = True
    audio: AudioThresholds = Field(default_factory=AudioThresholds)
    hallucination: HallucinationThresholds = Field(default_factory=HallucinationThresholds)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)

    def service(self, name: str) -> ProviderSettings:
        """
        サービス名から個別設定を取得

        Args:
            name: サービス名（openai_whisper, google, azure, assemblyai）

        Returns:
            サービスの設定（未定義の場合は無効な設定）
        """
        return self.services.get(name, ProviderSettings())

    def service_chain(self, preferred_service: str | None = None) -> List[str]:
        """
        試行するサービスの順序を取得

        Args:
            preferred_service: 呼び出し側が指定したサービス（指定時はそのサービスのみ）

        Returns:
            重複を除いたサービス名のリスト
        """
        if preferred_service:
            return [preferred_service]
        chain: List[str] = []
        for name in [self.primary_service, *self.fallback_services]:
            if name and name not in chain:
                chain.append(name)
        return chain

    @classmethod
    def from_env(cls) -> "SpeechServicesSettings":
        """
        環境変数から設定を作成

        Returns:
            SpeechServicesSettingsのインスタンス
        """
        # OPENAI_API_KEYまたはOPENAI_APIのどちらかをサポート
        openai_key: str | None = os.getenv("OPENAI_API_KEY") or os.getenv("OPENAI_API")
        assemblyai_key: str | None = os.getenv("ASSEMBLYAI_API_KEY")

        services: Dict[str, ProviderSettings] = {
            "openai_whisper": ProviderSettings(
                enabled=bool(openai_key),
                api_key=openai_key,
                model=os.getenv("OPENAI_WHISPER_MODEL", "whisper-1"),
                language="zh",
            ),
            "google": ProviderSettings(
                enabled=_env_flag("GOOGLE_SPEECH_ENABLED"),
                key_file=os.getenv("GOOGLE_APPLICATION_CREDENTIALS"),
                project_id=os.getenv("GOOGLE_CLOUD_PROJECT_ID"),
                language="zh-CN",
                alternative_languages=["zh-TW"],
            ),
            "azure": ProviderSettings(
                enabled=_env_flag("AZURE_SPEECH_ENABLED"),
                api_key=os.getenv("AZURE_SPEECH_KEY"),
                region=os.getenv("AZURE_SPEECH_REGION", "eastus"),
                language="zh-CN",
            ),
            "assemblyai": ProviderSettings(
                enabled=bool(assemblyai_key),
                api_key=assemblyai_key,
                language="zh",
                base_url=os.getenv("ASSEMBLYAI_BASE_URL", "https://api.assemblyai.com/v2"),
            ),
        }

        return cls(
            primary_service=os.getenv("SPEECH_PRIMARY_SERVICE", "openai_whisper"),
            fallback_services=_env_list("SPEECH_FALLBACK_SERVICES", SUPPORTED_SERVICES),
            services=services,
            max_retries=int(os.getenv("SPEECH_MAX_RETRIES", "3")),
            retry_delay=float(os.getenv("SPEECH_RETRY_DELAY", "1.0")),
            timeout=float(os.getenv("SPEECH_TIMEOUT", "30")),
            allow_mock_fallback=_env_flag("PRONUNCIATION_MOCK_FALLBACK", True),
            save_debug_audio=_env_flag("PRONUNCIATION_DEBUG_AUDIO", True),
        )
