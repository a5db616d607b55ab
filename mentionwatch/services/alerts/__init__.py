"""
Alerts
임계값 기반 알림 생성
"""

from mentionwatch.services.alerts.engine import (
    AlertEngine,
    sentiment_bucket,
    sentiment_distribution,
)
from mentionwatch.services.alerts.thresholds import (
    AlertThresholds,
    InfluencerThresholds,
    ReachSpikeThresholds,
    SentimentShiftThresholds,
    VolumeSpikeThresholds,
    merge_overrides,
)

__all__ = [
    "AlertEngine",
    "sentiment_bucket",
    "sentiment_distribution",
    "AlertThresholds",
    "InfluencerThresholds",
    "ReachSpikeThresholds",
    "SentimentShiftThresholds",
    "VolumeSpikeThresholds",
    "merge_overrides",
]
