"""
コマンドラインのテスト
"""
import json
import os
from unittest.mock import patch

import pytest

import main
from conftest import build_wav


class TestMain:
    """mainモジュールのテストクラス"""

    def test_parse_args_requires_audio_and_text(self):
        with pytest.raises(SystemExit):
            main.parse_args([])

    def test_parse_args_check_only(self):
        args = main.parse_args(["--check"])

        assert args.check is True
        assert args.audio is None

    @pytest.mark.asyncio
    @patch.dict(os.environ, {"PRONUNCIATION_DEBUG_AUDIO": "false"}, clear=True)
    async def test_run_prints_report(self, tmp_path, capsys):
        """サービスが未設定でも模擬認識のレポートをJSONで出力する"""
        audio_path = tmp_path / "sample.wav"
        audio_path.write_bytes(build_wav(60000))

        code = await main.run(main.parse_args([str(audio_path), "你好"]))

        assert code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["provider"] == "mock_fallback"
        assert output["audioQuality"]["rating"] == "good"

    @pytest.mark.asyncio
    @patch.dict(os.environ, {"PRONUNCIATION_DEBUG_AUDIO": "false"}, clear=True)
    async def test_run_without_mock_fails(self, tmp_path):
        audio_path = tmp_path / "sample.wav"
        audio_path.write_bytes(build_wav(60000))

        code = await main.run(main.parse_args([str(audio_path), "你好", "--no-mock"]))

        assert code == 1

    @pytest.mark.asyncio
    @patch.dict(os.environ, {}, clear=True)
    async def test_check(self, capsys):
        code = await main.run(main.parse_args(["--check"]))

        assert code == 0
        output = capsys.readouterr().out
        assert "openai_whisper: 未設定" in output
