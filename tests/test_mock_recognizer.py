"""
MockRecognizerのテスト
"""
import random

import pytest

from chinese_pronunciation.models.schemas import AudioQualityAssessment
from chinese_pronunciation.services.mock_recognizer import MockRecognizer


class TestMockRecognizer:
    """MockRecognizerのテストクラス"""

    @pytest.fixture
    def recognizer(self, segmenter):
        return MockRecognizer(segmenter)

    def test_no_content_returns_empty(self, recognizer):
        """内容のない音声は空の書き起こし"""
        quality = AudioQualityAssessment(rating="good", confidence=0.8, has_content=False)

        result = recognizer.recognize("你好", quality, random.Random(1))

        assert result.transcript == ""
        assert result.confidence == 0.1
        assert result.words == []

    def test_words_per_segment(self, recognizer, good_audio):
        """目標テキストの単語ごとに0.5秒間隔のタイミング"""
        result = recognizer.recognize("你好世界", good_audio, random.Random(1))

        assert [w.text for w in result.words] == ["你好", "世界"]
        assert result.words[1].start_time == 0.5
        assert result.words[1].end_time == 1.0
        assert result.duration == 1.0

    def test_confidence_scaled_by_audio(self, recognizer, good_audio):
        result = recognizer.recognize("世界", good_audio, random.Random(1))

        # 「世界」には誤りのバリエーションがないため正解(0.9)が選ばれる
        assert result.transcript == "世界"
        assert result.confidence == pytest.approx(0.9 * 0.8)

    def test_same_seed_same_result(self, recognizer, good_audio):
        first = recognizer.recognize("你是学生", good_audio, random.Random(5))
        second = recognizer.recognize("你是学生", good_audio, random.Random(5))

        assert first == second

    def test_poor_audio_may_truncate(self, recognizer):
        """poorの音声では一部のシードで書き起こしが70%に短縮される"""
        quality = AudioQualityAssessment(rating="poor", confidence=0.3, has_content=True)
        lengths = {
            len(recognizer.recognize("今天天气很好我们去公园", quality, random.Random(seed)).transcript)
            for seed in range(30)
        }

        assert lengths == {7, 11}
