"""
API接続チェックサービス
設定されている音声認識サービスが利用可能かをチェックする
"""
from typing import Dict, List

from chinese_pronunciation.config import SUPPORTED_SERVICES, SpeechServicesSettings
from chinese_pronunciation.errors import ProviderConfigError
from chinese_pronunciation.services.provider_orchestrator import ProviderFactory
from chinese_pronunciation.services.scoring_engine import ScoringEngine
from chinese_pronunciation.services.speech_providers.registry import create_provider

STATUS_AVAILABLE = "利用可能"
STATUS_UNCONFIGURED = "未設定"
STATUS_ERROR = "エラー"


class APICheckService:
    """音声認識サービスの利用可否をチェックするサービスクラス"""

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
            scoring: 採点エンジン（サービスの作成に必要）
            provider_factory: サービス名からサービスを作成する関数
        """
        self.settings: SpeechServicesSettings = settings
        self.provider_factory: ProviderFactory = provider_factory or (
            lambda name: create_provider(name, settings, scoring)
        )

    def check_provider(self, name: str) -> Dict[str, str]:
        """
        サービスを作成して利用可否をチェック

        Args:
            name: サービス名

        Returns:
            サービス名と状態を含む辞書
        """
        try:
            self.provider_factory(name)
            return {
                "name": name,
                "status": STATUS_AVAILABLE,
                "message": "認証情報が設定されています",
            }
        except ProviderConfigError as e:
            return {
                "name": name,
                "status": STATUS_UNCONFIGURED,
                "message": str(e),
            }
        except Exception as e:
            return {
                "name": name,
                "status": STATUS_ERROR,
                "message": f"初期化エラー: {str(e)}",
            }

    def check_all_providers(self) -> List[Dict[str, str]]:
        """
        試行順序のサービスと未使用のサービスを全てチェック

        Returns:
            サービス状態のリスト
        """
        names: List[str] = self.settings.service_chain()
        names += [name for name in SUPPORTED_SERVICES if name not in names]
        return [self.check_provider(name) for name in names]
