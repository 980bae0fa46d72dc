"""
APICheckServiceのテスト
"""
from unittest.mock import Mock, patch

import pytest

from chinese_pronunciation.config import SpeechServicesSettings
from chinese_pronunciation.errors import ProviderConfigError
from chinese_pronunciation.services.api_check_service import APICheckService


class TestAPICheckService:
    """APICheckServiceのテストクラス"""

    @pytest.fixture
    def api_check_service(self, speech_settings, scoring_engine):
        """APICheckServiceのインスタンスを作成"""
        return APICheckService(speech_settings, scoring_engine)

    def test_check_unconfigured_service(self, scoring_engine):
        """認証情報が設定されていない場合"""
        service = APICheckService(SpeechServicesSettings(), scoring_engine)

        result = service.check_provider("azure")

        assert result["name"] == "azure"
        assert result["status"] == "未設定"
        assert "無効" in result["message"]

    @patch("chinese_pronunciation.services.speech_providers.openai_whisper_provider.OpenAI")
    def test_check_openai_success(self, mock_openai, api_check_service):
        """OpenAI Whisperの作成に成功"""
        mock_openai.return_value = Mock()

        result = api_check_service.check_provider("openai_whisper")

        assert result["status"] == "利用可能"

    @patch("chinese_pronunciation.services.speech_providers.azure_provider.speechsdk.SpeechConfig")
    def test_check_azure_error(self, mock_speech_config, api_check_service):
        """Azure SDKの初期化エラー"""
        mock_speech_config.side_effect = Exception("Connection error")

        result = api_check_service.check_provider("azure")

        assert result["name"] == "azure"
        assert result["status"] == "エラー"
        assert "初期化エラー" in result["message"]

    def test_check_all_providers(self, scoring_engine):
        """試行順序のサービスの後に残りのサービスをチェック"""
        settings = SpeechServicesSettings(primary_service="azure", fallback_services=["google"])

        def factory(name):
            if name == "google":
                return Mock()
            raise ProviderConfigError(name, "未設定")

        service = APICheckService(settings, scoring_engine, provider_factory=factory)
        results = service.check_all_providers()

        assert [r["name"] for r in results] == ["azure", "google", "openai_whisper", "assemblyai"]
        assert [r["status"] for r in results] == ["未設定", "利用可能", "未設定", "未設定"]
