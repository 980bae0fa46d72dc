"""
デバッグ用音声の保存サービス
解析した音声をローカルファイルに保存する（失敗しても解析は継続する）
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

from chinese_pronunciation.config import DEBUG_AUDIO_DIR
from chinese_pronunciation.services.text_segmenter import clean_chinese_text

logger = logging.getLogger(__name__)

# ファイル名に含める目標テキストの最大文字数
NAME_TEXT_LENGTH = 10


class DebugAudioStore:
    """デバッグ用の音声ファイルを保存・読み込むサービスクラス"""

    def __init__(self, directory: Path | None = None) -> None:
        """
        初期化処理

        Args:
            directory: 保存先ディレクトリ（省略時はアプリケーションデータディレクトリ配下）
        """
        self.directory: Path = directory or DEBUG_AUDIO_DIR

    def ensure_directory(self) -> None:
        """保存先ディレクトリを作成"""
        self.directory.mkdir(parents=True, exist_ok=True)

    def build_filename(self, analysis_id: str, target_text: str, timestamp: datetime | None = None) -> str:
        """
        保存ファイル名を作成

        Returns:
            <タイムスタンプ>_<解析ID>_<目標テキストの先頭10文字>.wav
        """
        stamp: str = (timestamp or datetime.now()).strftime("%Y%m%d_%H%M%S")
        text: str = clean_chinese_text(target_text)[:NAME_TEXT_LENGTH]
        return f"{stamp}_{analysis_id}_{text}.wav"

    def save(self, audio_data: bytes, analysis_id: str, target_text: str) -> Path | None:
        """
        音声データを保存

        Args:
            audio_data: 音声データ
            analysis_id: 解析ID
            target_text: 目標テキスト

        Returns:
            保存したファイルのパス、失敗時はNone
        """
        try:
            self.ensure_directory()
            file_path: Path = self.directory / self.build_filename(analysis_id, target_text)
            file_path.write_bytes(audio_data)
            logger.debug("[%s] デバッグ音声を保存しました: %s", analysis_id, file_path)
            return file_path
        except OSError as e:
            logger.warning("[%s] デバッグ音声の保存に失敗しました: %s", analysis_id, e)
            return None

    def list_files(self) -> List[Dict[str, Any]]:
        """
        保存済みの音声ファイル一覧を取得

        Returns:
            ファイル名、パス、更新日時、サイズを含む辞書のリスト（新しい順）
        """
        if not self.directory.exists():
            return []

        files: List[Dict[str, Any]] = []
        for file_path in self.directory.glob("*.wav"):
            stat = file_path.stat()
            files.append({
                "filename": file_path.name,
                "path": str(file_path),
                "modified": datetime.fromtimestamp(stat.st_mtime).isoformat(),
                "size": stat.st_size,
            })

        files.sort(key=lambda x: x["modified"], reverse=True)
        return files

    def load(self, filename: str) -> bytes | None:
        """
        保存済みの音声ファイルを読み込む

        Args:
            filename: ファイル名

        Returns:
            音声データ、存在しない場合はNone
        """
        file_path: Path = self.directory / filename
        if not file_path.exists():
            return None
        return file_path.read_bytes()
