"""
中国語発音評価 - メインエントリーポイント
WAVファイルと目標テキストから発音評価レポートを出力する
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List

# 環境変数の読み込み
from dotenv import load_dotenv

from chinese_pronunciation.config import APP_DATA_DIR, LOG_FILE, SpeechServicesSettings
from chinese_pronunciation.errors import PronunciationError
from chinese_pronunciation.services.api_check_service import APICheckService
from chinese_pronunciation.services.pronunciation_service import PronunciationService

logger = logging.getLogger(__name__)

# .envファイルの読み込み（スクリプトのディレクトリまたはカレントディレクトリから）
env_path = Path(__file__).parent / ".env"
if env_path.exists():
    load_dotenv(env_path)
else:
    load_dotenv()


def setup_logging(verbose: bool = False) -> None:
    """コンソールとログファイルにログを出力する設定"""
    APP_DATA_DIR.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
            logging.FileHandler(LOG_FILE, encoding="utf-8"),
        ],
    )


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="中国語の発音を評価します")
    parser.add_argument("audio", nargs="?", type=Path, help="WAVファイル（16kHz/16bit/モノラル）")
    parser.add_argument("text", nargs="?", help="目標テキスト（中国語）")
    parser.add_argument("--service", help="使用する音声認識サービス（指定時はフォールバックしない）")
    parser.add_argument("--no-mock", action="store_true", help="全サービス失敗時に模擬認識を使用しない")
    parser.add_argument("--check", action="store_true", help="音声認識サービスの利用可否を表示して終了")
    parser.add_argument("-v", "--verbose", action="store_true", help="デバッグログを出力")
    args = parser.parse_args(argv)
    if not args.check and (args.audio is None or args.text is None):
        parser.error("audioとtextを指定してください")
    return args


async def run(args: argparse.Namespace) -> int:
    """
    発音評価を実行してJSONを標準出力に書き出す

    Returns:
        終了コード
    """
    settings = SpeechServicesSettings.from_env()
    if args.no_mock:
        settings = settings.model_copy(update={"allow_mock_fallback": False})

    service = PronunciationService(settings=settings)

    if args.check:
        checker = APICheckService(settings, service.scoring)
        for result in checker.check_all_providers():
            print(f"{result['name']}: {result['status']} - {result['message']}")
        return 0

    service.initialize()
    try:
        report = await service.analyze_audio(args.audio.read_bytes(), args.text, preferred_service=args.service)
        print(json.dumps(report.to_wire(), ensure_ascii=False, indent=2))
        return 0
    except PronunciationError as e:
        logger.error("発音評価に失敗しました: %s", e)
        return 1
    finally:
        await service.shutdown()


def main(argv: List[str] | None = None) -> int:
    """アプリケーションの起動"""
    args = parse_args(argv)
    setup_logging(args.verbose)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
