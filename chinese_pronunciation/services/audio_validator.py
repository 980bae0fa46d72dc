"""
音声品質チェックサービス
録音データのヘッダー・サイズ・振幅から品質と長さを推定する
"""
import logging

import numpy as np

from chinese_pronunciation.config import AudioThresholds
from chinese_pronunciation.errors import EmptyAudioError
from chinese_pronunciation.models.schemas import (
    AmplitudeStats,
    AudioBuffer,
    AudioQualityAssessment,
)

logger = logging.getLogger(__name__)

# 16bit PCMの最大振幅の半分を基準に音量を正規化
VOLUME_REFERENCE = 16384


class AudioValidator:
    """録音データの品質を判定するサービスクラス"""

    def __init__(self, thresholds: AudioThresholds | None = None) -> None:
        """
        初期化処理

        Args:
            thresholds: サイズ閾値（省略時は既定値）
        """
        self.thresholds: AudioThresholds = thresholds or AudioThresholds()

    def validate(self, audio_data: bytes | AudioBuffer | None, analysis_id: str = "-") -> AudioQualityAssessment:
        """
        音声データの品質を評価

        Args:
            audio_data: 音声データ（WAV、16kHz/16bit/モノラル想定）
            analysis_id: ログ用の解析ID

        Returns:
            音声品質の評価結果

        Raises:
            EmptyAudioError: 音声データが存在しない場合
        """
        if isinstance(audio_data, AudioBuffer):
            buffer = audio_data
        elif audio_data:
            buffer = AudioBuffer(data=audio_data)
        else:
            raise EmptyAudioError("音声データが空です")

        if buffer.byte_length == 0:
            raise EmptyAudioError("音声データが空です")

        t = self.thresholds
        size: int = buffer.byte_length
        duration: float = size / t.bytes_per_second
        is_wav: bool = buffer.is_wav

        if not is_wav:
            logger.warning("[%s] RIFF/WAVEヘッダーがありません (%d bytes)", analysis_id, size)

        if size < t.empty_audio_size:
            logger.warning("[%s] 音声データが小さすぎます (%d bytes)", analysis_id, size)
            return AudioQualityAssessment(
                rating="poor",
                confidence=0.0,
                estimated_duration_sec=duration,
                has_content=False,
                is_valid_format=is_wav,
                byte_length=size,
            )

        amplitude: AmplitudeStats | None = None
        if size >= t.short_audio_size:
            amplitude = self.analyze_amplitude(buffer.data)
        else:
            logger.warning("[%s] 音声データが短すぎます (%d bytes)", analysis_id, size)

        if size > t.good_audio_size:
            rating, confidence = "good", 0.8
        elif size > t.fair_audio_size:
            rating, confidence = "fair", 0.6
        else:
            rating, confidence = "poor", 0.3

        return AudioQualityAssessment(
            rating=rating,
            confidence=confidence,
            estimated_duration_sec=duration,
            has_content=amplitude is not None and amplitude.has_signal,
            amplitude=amplitude,
            is_valid_format=is_wav,
            byte_length=size,
        )

    def analyze_amplitude(self, data: bytes) -> AmplitudeStats:
        """
        WAVヘッダーを除いたPCMデータの振幅を簡易解析

        Args:
            data: WAVデータ全体（先頭44バイトはヘッダーとして読み飛ばす）

        Returns:
            振幅の統計値
        """
        pcm: bytes = data[self.thresholds.wav_header_size:]
        # 16bitサンプルに揃える
        pcm = pcm[: len(pcm) - (len(pcm) % 2)]
        if not pcm:
            return AmplitudeStats()

        samples: np.ndarray = np.abs(np.frombuffer(pcm, dtype="<i2").astype(np.int32))
        total: int = int(samples.size)
        avg: float = float(samples.mean())
        silence_ratio: float = float(np.count_nonzero(samples == 0)) / total

        return AmplitudeStats(
            avg=avg,
            max=int(samples.max()),
            silence_ratio=silence_ratio,
            estimated_volume=min(1.0, avg / VOLUME_REFERENCE),
            has_signal=silence_ratio < self.thresholds.silence_ratio_limit,
        )
