"""
Alert Thresholds
검사별 임계값 설정 (호출 단위로 덮어쓰기 가능)
"""

from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class VolumeSpikeThresholds:
    """멘션량 급증"""
    window_hours: float = 1
    compare_window_hours: float = 24
    min_mentions: int = 5
    multiplier: float = 2


@dataclass(frozen=True)
class SentimentShiftThresholds:
    """감성 변화"""
    window_hours: float = 6
    min_mentions: int = 10
    negative_threshold: float = 30   # 부정 비율(%)
    shift_threshold: float = 20      # 부정 비율 증가폭(%p)


@dataclass(frozen=True)
class ReachSpikeThresholds:
    """도달 범위 급증"""
    min_reach: int = 10000
    multiplier: float = 3
    baseline_days: int = 7


@dataclass(frozen=True)
class InfluencerThresholds:
    """인플루언서 멘션"""
    min_followers: int = 50000


@dataclass(frozen=True)
class AlertThresholds:
    """전체 알림 임계값"""
    volume_spike: VolumeSpikeThresholds = field(default_factory=VolumeSpikeThresholds)
    sentiment_shift: SentimentShiftThresholds = field(default_factory=SentimentShiftThresholds)
    reach_spike: ReachSpikeThresholds = field(default_factory=ReachSpikeThresholds)
    influencer_mention: InfluencerThresholds = field(default_factory=InfluencerThresholds)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Mapping[str, Any]]]) -> "AlertThresholds":
        """{"volume_spike": {"min_mentions": 3}, ...} 형태의 덮어쓰기"""
        base = cls()
        if not data:
            return base
        return replace(
            base,
            **{
                name: merge_overrides(getattr(base, name), overrides)
                for name, overrides in data.items()
                if name in {f.name for f in fields(cls)}
            },
        )

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return asdict(self)


def merge_overrides(defaults: T, overrides: Optional[Mapping[str, Any]]) -> T:
    """알려진 필드만 덮어쓴 새 설정 반환"""
    if not overrides:
        return defaults
    known = {f.name for f in fields(defaults)}
    unknown = set(overrides) - known
    if unknown:
        raise ValueError(f"Unknown threshold field(s): {', '.join(sorted(unknown))}")
    return replace(defaults, **dict(overrides))
