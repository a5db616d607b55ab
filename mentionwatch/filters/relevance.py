"""
Relevance Filter
프로젝트 키워드 / 불리언 검색식 기반 멘션 관련성 판정

판정 규칙:
- 키워드 매칭: 프로젝트 키워드 순서대로 검사하여 처음 포함된 키워드
- 불리언 매칭: sanitize된 검색식을 텍스트에 대해 평가
- 불리언이 거짓이거나, 키워드가 있는데 하나도 매칭되지 않으면 제외
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence
import logging

from mentionwatch.filters.boolean_query import BooleanQueryEvaluator, sanitize

logger = logging.getLogger(__name__)


class RelevanceDecision(str, Enum):
    """판정 결과"""
    KEEP = "keep"
    DROP_BOOLEAN = "drop_boolean"
    DROP_KEYWORD = "drop_keyword"


@dataclass
class RelevanceResult:
    """관련성 판정 결과"""
    decision: RelevanceDecision
    keyword_matched: str = ""
    boolean_match: bool = True

    @property
    def keep(self) -> bool:
        return self.decision == RelevanceDecision.KEEP

    def to_dict(self) -> Dict[str, Any]:
        return {
            "decision": self.decision.value,
            "keyword_matched": self.keyword_matched,
            "boolean_match": self.boolean_match,
        }


def build_match_text(title: Optional[str], text: Optional[str]) -> str:
    """매칭 대상 텍스트 (title + ' ' + text)"""
    return f"{title or ''} {text or ''}".strip()


def match_keyword(keywords: Sequence[str], text: str) -> str:
    """처음 포함된 키워드 (소문자), 없으면 빈 문자열"""
    haystack = (text or "").lower()
    for keyword in keywords or []:
        needle = (keyword or "").strip().lower()
        if needle and needle in haystack:
            return needle
    return ""


class MentionRelevanceFilter:
    """키워드 + 불리언 검색식 필터"""

    def __init__(self, evaluator: Optional[BooleanQueryEvaluator] = None):
        self.evaluator = evaluator or BooleanQueryEvaluator()

    def check(
        self,
        text: str,
        keywords: Sequence[str],
        boolean_query: Optional[str] = None,
    ) -> RelevanceResult:
        keyword = match_keyword(keywords, text)
        query = sanitize(boolean_query or "")
        boolean_match = self.evaluator.evaluate(query, text)

        if not boolean_match:
            return RelevanceResult(RelevanceDecision.DROP_BOOLEAN, keyword, False)

        has_keywords = any((k or "").strip() for k in keywords or [])
        if has_keywords and not keyword:
            return RelevanceResult(RelevanceDecision.DROP_KEYWORD, "", True)

        return RelevanceResult(RelevanceDecision.KEEP, keyword, True)

    def filter_texts(
        self,
        texts: List[str],
        keywords: Sequence[str],
        boolean_query: Optional[str] = None,
    ) -> List[str]:
        """관련 텍스트만 반환"""
        return [t for t in texts if self.check(t, keywords, boolean_query).keep]
