"""
Reach Estimator

멘션 도달 범위 추정 (근사치 휴리스틱).

우선순위:
1. 작성자 팔로워 수 (보고된 경우)
2. 소스별 인게이지먼트 배수 (youtube: 좋아요 x10, reddit: 댓글 x5)
3. 0
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from mentionwatch.data_pipeline.domain.models import RawMention


@dataclass(frozen=True)
class ReachRule:
    """소스별 배수 규칙"""
    field: str
    multiplier: int


DEFAULT_REACH_RULES: Dict[str, ReachRule] = {
    "youtube": ReachRule(field="likes", multiplier=10),
    "reddit": ReachRule(field="comments", multiplier=5),
}


class ReachEstimator:
    """도달 범위 추정기"""

    def __init__(self, rules: Optional[Dict[str, ReachRule]] = None):
        self.rules = dict(DEFAULT_REACH_RULES if rules is None else rules)

    def estimate(self, mention: RawMention) -> int:
        if mention.follower_count and mention.follower_count > 0:
            return int(mention.follower_count)

        rule = self.rules.get(mention.source)
        if rule:
            value = getattr(mention.engagement, rule.field, 0) or 0
            return max(int(value) * rule.multiplier, 0)

        return 0

    def describe(self) -> Dict[str, Tuple[str, int]]:
        return {source: (rule.field, rule.multiplier) for source, rule in self.rules.items()}
