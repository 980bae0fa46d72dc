"""
語彙データテーブル
声調・HSKレベル・複合語・字形の複雑さなどの静的データを起動時に一度だけ読み込み、
参照用の関数だけを公開する
"""
import json
import logging
import re
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Tuple

from chinese_pronunciation.models.schemas import LexicalEntry, StrokeComplexity

logger = logging.getLogger(__name__)

LEXICON_FILE = Path(__file__).resolve().parent.parent / "data" / "lexicon.json"


class LexiconService:
    """読み取り専用の語彙データを提供するサービスクラス"""

    def __init__(self, data: Mapping[str, Any]) -> None:
        """
        初期化処理
        生データから検索用のテーブルを構築する（以後変更しない）

        Args:
            data: lexicon.jsonと同じ構造の辞書
        """
        self._entries: Mapping[str, LexicalEntry] = MappingProxyType({
            char: LexicalEntry(char=char, **info)
            for char, info in data.get("tones", {}).items()
        })

        hsk_by_char: Dict[str, int] = {}
        for level, chars in sorted(data.get("hsk_levels", {}).items(), key=lambda item: int(item[0])):
            for char in chars:
                # 複数レベルに登録されている文字は低い方を採用
                hsk_by_char.setdefault(char, int(level))
        self._hsk_by_char: Mapping[str, int] = MappingProxyType(hsk_by_char)

        # 最長一致のため長い順に並べる
        self._compounds: Tuple[str, ...] = tuple(
            sorted(set(data.get("compounds", [])), key=len, reverse=True)
        )
        self._common_mistakes: Mapping[str, Tuple[str, ...]] = MappingProxyType({
            char: tuple(mistakes) for char, mistakes in data.get("common_mistakes", {}).items()
        })

        stroke_table: Dict[str, StrokeComplexity] = {}
        for level, info in data.get("stroke_complexity", {}).items():
            complexity = StrokeComplexity(
                level=level, strokes=info["strokes"], difficulty=info["difficulty"]
            )
            for char in info["chars"]:
                stroke_table.setdefault(char, complexity)
        self._stroke_complexity: Mapping[str, StrokeComplexity] = MappingProxyType(stroke_table)

        bonuses = data.get("contextual_bonuses", {})
        self._tone_sandhi: Tuple[Tuple[str, float], ...] = tuple(bonuses.get("tone_sandhi", {}).items())
        self._common_phrases: Tuple[Tuple[str, float], ...] = tuple(bonuses.get("common_phrases", {}).items())

        self._hallucination_patterns: Tuple[re.Pattern[str], ...] = tuple(
            re.compile(re.escape(phrase), re.IGNORECASE)
            for phrase in data.get("hallucination_patterns", [])
        )
        self._tone_guidance: Mapping[int, Mapping[str, Any]] = MappingProxyType({
            int(tone): MappingProxyType(dict(info))
            for tone, info in data.get("tone_guidance", {}).items()
        })
        self._recommendations: Mapping[str, Mapping[str, str]] = MappingProxyType({
            group: MappingProxyType(dict(messages))
            for group, messages in data.get("recommendations", {}).items()
        })

    @classmethod
    def load(cls, path: Path = LEXICON_FILE) -> "LexiconService":
        """
        パッケージに同梱されたlexicon.jsonを読み込む

        Args:
            path: 語彙データファイルのパス

        Returns:
            LexiconServiceのインスタンス
        """
        with open(path, "r", encoding="utf-8") as f:
            service = cls(json.load(f))
        logger.info(
            "語彙データを読み込みました: 文字 %d件, 複合語 %d件",
            len(service._entries),
            len(service._compounds),
        )
        return service

    @property
    def compounds(self) -> Tuple[str, ...]:
        """長い順に並んだ複合語辞書"""
        return self._compounds

    @property
    def tone_sandhi_bonuses(self) -> Tuple[Tuple[str, float], ...]:
        return self._tone_sandhi

    @property
    def common_phrase_bonuses(self) -> Tuple[Tuple[str, float], ...]:
        return self._common_phrases

    def get_tone_info(self, char: str) -> LexicalEntry | None:
        """
        文字の声調情報を取得

        Args:
            char: 1文字の漢字

        Returns:
            声調情報、未登録の場合はNone
        """
        return self._entries.get(char)

    def get_character_hsk_level(self, char: str) -> int:
        """
        文字のHSKレベルを取得

        Args:
            char: 1文字の漢字

        Returns:
            HSKレベル（1-6）、不明な場合は0
        """
        level: int | None = self._hsk_by_char.get(char)
        if level is not None:
            return level
        entry: LexicalEntry | None = self._entries.get(char)
        return entry.hsk if entry else 0

    def get_stroke_complexity(self, char: str) -> StrokeComplexity:
        """文字の字形の複雑さを取得（未登録の場合は中程度）"""
        return self._stroke_complexity.get(char, StrokeComplexity())

    def get_common_mistakes(self, char: str) -> Tuple[str, ...]:
        """学習者がよく間違える読みを取得"""
        return self._common_mistakes.get(char, ())

    def get_tone_guidance(self, tone: int) -> Mapping[str, Any]:
        """声調ごとの練習ガイドを取得（未登録の場合は軽声）"""
        return self._tone_guidance.get(tone) or self._tone_guidance.get(0, MappingProxyType({}))

    def get_message(self, group: str, key: str) -> str:
        """
        アドバイス文言を取得

        Args:
            group: 文言のグループ（accuracy, tone, audio_quality, difficulty）
            key: グループ内のキー

        Returns:
            文言、未登録の場合は空文字
        """
        return self._recommendations.get(group, MappingProxyType({})).get(key, "")

    def matches_hallucination_phrase(self, text: str) -> bool:
        """既知のハルシネーション定型句を含むかどうか"""
        return any(pattern.search(text) for pattern in self._hallucination_patterns)
