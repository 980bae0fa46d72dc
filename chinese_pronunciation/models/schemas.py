"""
データモデル（スキーマ定義）
フィールド名はcamelCaseのエイリアスでシリアライズされ、そのまま外部に返される
"""

from datetime import datetime
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

QualityRating = Literal["poor", "fair", "good", "excellent"]
Severity = Literal["none", "low", "medium", "high"]
Priority = Literal["low", "medium", "high"]


class WireModel(BaseModel):
    """camelCaseでシリアライズする不変モデルの基底クラス"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_wire(self) -> Dict[str, Any]:
        """外部に返す辞書形式に変換"""
        return self.model_dump(by_alias=True, mode="json")


class AudioBuffer(WireModel):
    """リクエストごとの音声データ（永続化しない）"""

    data: bytes

    @property
    def byte_length(self) -> int:
        return len(self.data)

    @property
    def is_wav(self) -> bool:
        """RIFF/WAVEヘッダーを持つかどうか"""
        return self.data[0:4] == b"RIFF" and self.data[8:12] == b"WAVE"


class AmplitudeStats(WireModel):
    """振幅の簡易解析結果"""

    avg: float = 0.0  # 平均振幅（絶対値）
    max: int = 0  # 最大振幅
    silence_ratio: float = 1.0  # 無音サンプルの割合
    estimated_volume: float = 0.0  # 0-1に正規化した音量
    has_signal: bool = False


class AudioQualityAssessment(WireModel):
    """音声品質の評価結果"""

    rating: QualityRating = "poor"
    confidence: float = 0.0
    estimated_duration_sec: float = 0.0
    has_content: bool = False
    amplitude: AmplitudeStats | None = None
    is_valid_format: bool = False
    byte_length: int = 0


class TranscriptionWord(WireModel):
    """単語単位の認識結果"""

    text: str
    start_time: float | None = None
    end_time: float | None = None
    confidence: float | None = None

    @property
    def duration(self) -> float | None:
        if self.start_time is None or self.end_time is None:
            return None
        return self.end_time - self.start_time


class TranscriptionResult(WireModel):
    """音声認識サービス1件分の書き起こし結果"""

    transcript: str = ""
    confidence: float | None = None
    words: List[TranscriptionWord] = Field(default_factory=list)
    duration: float | None = None
    language: str | None = None


class HallucinationVerdict(WireModel):
    """ハルシネーション（誤認識）判定結果"""

    detected: bool = False
    severity: Severity = "none"
    overlap_ratio: float = 0.0
    length_ratio: float = 0.0
    message: str = ""
    has_common_phrases: bool = False
    too_short: bool = False
    suspicious_length: bool = False


class HallucinationPenalty(WireModel):
    """ハルシネーション判定から求めたスコア係数"""

    multiplier: float = 1.0
    should_zero_out: bool = False
    reason: str = ""


class WordDetails(WireModel):
    """単語スコアの内訳（0-100）"""

    tone: int = 0
    pronunciation: int = 0
    fluency: int = 0
    confidence: int = 0


class StrokeComplexity(WireModel):
    """字形の複雑さ"""

    level: str = "medium"
    strokes: str = "5-15"
    difficulty: float = 0.4


class LexicalEntry(WireModel):
    """文字ごとの声調・拼音・難易度・HSKレベル"""

    char: str
    tone: int = Field(ge=0, le=4)
    pinyin: str
    difficulty: float = Field(ge=0, le=1)
    hsk: int = Field(ge=1, le=6)


class ChineseSpecificAnalysis(WireModel):
    """中国語学習向けの補足情報"""

    hsk_level: int = 0
    difficulty: float = 0.5
    stroke_complexity: StrokeComplexity = Field(default_factory=StrokeComplexity)
    tone_info: List[LexicalEntry] = Field(default_factory=list)
    common_mistakes: List[str] = Field(default_factory=list)
    tone_advice: str = ""


class WordAssessment(WireModel):
    """文字・単語ごとの評価結果"""

    word: str
    word_index: int = 0
    score: int = 0
    details: WordDetails = Field(default_factory=WordDetails)
    feedback: str = ""
    issues: List[str] = Field(default_factory=list)  # tone, pronunciation, fluency, hallucination
    is_correct: bool = False
    actual_pronounced: str | None = None
    context_bonus: float = 0.0
    chinese_specific: ChineseSpecificAnalysis | None = None


class Recommendation(WireModel):
    """学習者向けのアドバイス"""

    type: str
    message: str
    priority: Priority = "medium"


class TextDifficulty(WireModel):
    """目標テキスト全体の難易度"""

    level: str = "unknown"
    score: float = 0.0
    avg_hsk: float = 0.0
    max_hsk: int = 0
    details: Dict[str, float] = Field(default_factory=dict)


class PronunciationReport(WireModel):
    """発音評価レポート（外部に返す唯一の成果物）"""

    overall_accuracy: int = 0
    transcription: TranscriptionResult = Field(default_factory=TranscriptionResult)
    words: List[WordAssessment] = Field(default_factory=list)
    audio_quality: AudioQualityAssessment = Field(default_factory=AudioQualityAssessment)
    recommendations: List[Recommendation] = Field(default_factory=list)
    provider: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)
    hallucination_check: HallucinationVerdict | None = None
    text_analysis: TextDifficulty | None = None
    fallback_reason: str | None = None
