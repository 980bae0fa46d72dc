"""
中国語テキスト分割サービス
複合語辞書による最長一致で漢字列を分割し、HSKレベルや難易度を求める
"""
import random
import re
from typing import Any, Dict, List

from chinese_pronunciation.models.schemas import TextDifficulty
from chinese_pronunciation.services.lexicon_service import LexiconService

# CJK統合漢字（U+4E00–U+9FFF）以外を除去する
NON_HAN_PATTERN = re.compile(r"[^\u4e00-\u9fff]")

UNKNOWN_CHAR_DIFFICULTY = 0.5


def clean_chinese_text(text: str | None) -> str:
    """
    漢字以外の文字（句読点、ラテン文字、空白など）を除去

    Args:
        text: 入力テキスト

    Returns:
        漢字のみのテキスト
    """
    if not text:
        return ""
    return NON_HAN_PATTERN.sub("", text)


class TextSegmenter:
    """複合語辞書を使って中国語テキストを分割するサービスクラス"""

    def __init__(self, lexicon: LexiconService) -> None:
        self.lexicon = lexicon

    def segment(self, text: str | None) -> List[str]:
        """
        テキストを単語・文字に分割（最長一致）

        Args:
            text: 中国語テキスト

        Returns:
            分割された単語・文字のリスト
        """
        clean_text: str = clean_chinese_text(text)
        segments: List[str] = []
        i = 0

        while i < len(clean_text):
            for compound in self.lexicon.compounds:
                if clean_text.startswith(compound, i):
                    segments.append(compound)
                    i += len(compound)
                    break
            else:
                segments.append(clean_text[i])
                i += 1

        return segments

    def segment_with_metadata(self, text: str | None) -> List[Dict[str, Any]]:
        """
        分割結果にHSKレベルと難易度を付加

        Returns:
            text, is_compound, hsk_level, difficulty, lengthを含む辞書のリスト
        """
        return [
            {
                "text": segment,
                "is_compound": len(segment) > 1,
                "hsk_level": self.get_hsk_level(segment),
                "difficulty": self.get_difficulty(segment),
                "length": len(segment),
            }
            for segment in self.segment(text)
        ]

    def get_hsk_level(self, segment: str) -> int:
        """
        単語・文字のHSKレベルを取得（構成文字の最大レベル）

        Returns:
            HSKレベル（1-6）、不明な場合は0
        """
        levels: List[int] = [self.lexicon.get_character_hsk_level(char) for char in segment]
        return max((level for level in levels if level > 0), default=0)

    def get_difficulty(self, segment: str) -> float:
        """
        単語・文字の難易度を計算

        Args:
            segment: 単語または文字

        Returns:
            難易度（0-1程度、長い単語ほど高くなる）
        """
        if not segment:
            return 0.0

        total: float = 0.0
        for char in segment:
            entry = self.lexicon.get_tone_info(char)
            total += entry.difficulty if entry else UNKNOWN_CHAR_DIFFICULTY

        length_multiplier: float = min(1.2, 1 + (len(segment) - 1) * 0.1)
        return (total / len(segment)) * length_multiplier

    def analyze_text_difficulty(self, text: str | None) -> TextDifficulty:
        """
        テキスト全体の難易度を推定

        Args:
            text: 中国語テキスト

        Returns:
            難易度の分析結果
        """
        segments: List[Dict[str, Any]] = self.segment_with_metadata(text)
        if not segments:
            return TextDifficulty()

        hsk_levels: List[int] = [s["hsk_level"] for s in segments if s["hsk_level"] > 0]
        avg_hsk: float = sum(hsk_levels) / len(hsk_levels) if hsk_levels else 0.0
        max_hsk: int = max(hsk_levels, default=0)
        avg_difficulty: float = sum(s["difficulty"] for s in segments) / len(segments)

        level = "HSK1"
        if max_hsk >= 5:
            level = "HSK5-6"
        elif max_hsk >= 4:
            level = "HSK4"
        elif max_hsk >= 3:
            level = "HSK3"
        elif max_hsk >= 2:
            level = "HSK2"

        return TextDifficulty(
            level=level,
            score=avg_difficulty,
            avg_hsk=round(avg_hsk, 1),
            max_hsk=max_hsk,
            details={
                "totalSegments": len(segments),
                "compounds": sum(1 for s in segments if s["is_compound"]),
                "unknownChars": sum(1 for s in segments if s["hsk_level"] == 0),
                "avgDifficulty": round(avg_difficulty, 2),
            },
        )

    def get_contextual_bonus(self, text: str | None, segment: str, offset: int, cap: float = 10) -> float:
        """
        声調変化（不・一）や定型句の文脈ボーナスを計算

        Args:
            text: 目標テキスト全体
            segment: 対象の単語・文字
            offset: 漢字のみのテキストにおける対象の開始位置
            cap: ボーナスの上限

        Returns:
            ボーナス点（0〜cap）
        """
        clean_text: str = clean_chinese_text(text)
        if not segment:
            return 0.0

        bonus: float = 0.0
        end: int = offset + len(segment)
        for pattern, points in (*self.lexicon.tone_sandhi_bonuses, *self.lexicon.common_phrase_bonuses):
            start = clean_text.find(pattern)
            while start != -1:
                # 対象の位置を含む出現だけを数える
                if start <= offset and end <= start + len(pattern):
                    bonus += points
                    break
                start = clean_text.find(pattern, start + 1)

        return min(bonus, cap)

    def identify_pronunciation_mistakes(self, expected: str, actual: str | None) -> List[str]:
        """
        よくある発音の間違いを検出

        Args:
            expected: 期待される文字
            actual: 実際の発音（拼音）

        Returns:
            検出された間違いの説明リスト
        """
        if not actual:
            return []
        if actual.lower() in self.lexicon.get_common_mistakes(expected):
            return [f"Common mistake: {expected} → {actual}. Practice distinction."]
        return []

    def generate_pronunciation_variations(self, text: str, rng: random.Random) -> List[Dict[str, Any]]:
        """
        模擬認識用の発音バリエーションを生成

        Args:
            text: 目標テキスト
            rng: 乱数生成器（テスト時はシード固定）

        Returns:
            text, confidence, typeを含む辞書のリスト（先頭は正解）
        """
        variations: List[Dict[str, Any]] = [{"text": text, "confidence": 0.9, "type": "correct"}]

        for char in text:
            for mistake in self.lexicon.get_common_mistakes(char):
                variations.append({
                    "text": text,
                    "confidence": 0.3 + rng.random() * 0.4,
                    "type": "mistake",
                    "mistake": {"char": char, "expected": char, "actual": mistake},
                })

        return variations
