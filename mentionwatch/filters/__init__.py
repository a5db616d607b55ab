"""
Filters
멘션 관련성 판정

모듈:
- boolean_query: 불리언 검색식 평가
- relevance: 키워드 + 검색식 관련성 판정
"""

from mentionwatch.filters.boolean_query import (
    BooleanQueryEvaluator,
    sanitize,
    evaluate,
)
from mentionwatch.filters.relevance import (
    MentionRelevanceFilter,
    RelevanceDecision,
    RelevanceResult,
    build_match_text,
    match_keyword,
)

__all__ = [
    "BooleanQueryEvaluator",
    "sanitize",
    "evaluate",
    "MentionRelevanceFilter",
    "RelevanceDecision",
    "RelevanceResult",
    "build_match_text",
    "match_keyword",
]
