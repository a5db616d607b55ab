"""
Unit Tests for Filters
BooleanQueryEvaluator, MentionRelevanceFilter 테스트

Run: pytest tests/unit/test_filters.py -v
"""

import pytest

from mentionwatch.filters.boolean_query import (
    BooleanQueryEvaluator,
    evaluate,
    sanitize,
    to_postfix,
)
from mentionwatch.filters.relevance import (
    MentionRelevanceFilter,
    RelevanceDecision,
    build_match_text,
    match_keyword,
)


class TestSanitize:
    """검색식 정리"""

    def test_removes_unsafe_characters(self):
        assert sanitize('budget & "tax" | relief!').split() == ["budget", "tax", "relief"]

    def test_keeps_parentheses(self):
        assert sanitize("(budget OR tax)") == "(budget OR tax)"

    def test_empty(self):
        assert sanitize("") == ""
        assert sanitize(None) == ""


class TestBooleanQuery:
    """불리언 검색식 평가"""

    def test_empty_query_is_true(self):
        assert evaluate("", "anything") is True
        assert evaluate("   ", "") is True

    def test_term_is_case_insensitive_substring(self):
        assert evaluate("Budget", "The new BUDGETARY plan") is True
        assert evaluate("budget", "nothing here") is False

    @pytest.mark.parametrize("a", [True, False])
    @pytest.mark.parametrize("b", [True, False])
    def test_operators_match_python_semantics(self, a, b):
        text = " ".join(word for word, present in (("alpha", a), ("beta", b)) if present)

        assert evaluate("alpha AND beta", text) == (a and b)
        assert evaluate("alpha OR beta", text) == (a or b)
        assert evaluate("NOT alpha", text) == (not a)

    def test_operators_case_insensitive(self):
        assert evaluate("alpha and not beta", "alpha only") is True
        assert evaluate("alpha Or beta", "beta") is True

    def test_precedence_not_and_or(self):
        # NOT > AND > OR
        assert evaluate("alpha OR beta AND gamma", "alpha") is True
        assert evaluate("(alpha OR beta) AND gamma", "alpha") is False
        assert evaluate("NOT alpha AND beta", "beta") is True

    def test_parentheses_grouping(self):
        query = "budget AND (tax OR relief) AND NOT sports"
        assert evaluate(query, "budget brings tax changes") is True
        assert evaluate(query, "budget for sports tax") is False
        assert evaluate(query, "budget only") is False

    @pytest.mark.parametrize("query", [
        "AND",
        "NOT",
        "OR OR",
        "((budget",
        "budget))",
        ")(",
        "budget AND",
        "NOT NOT NOT",
    ])
    def test_malformed_queries_never_raise(self, query):
        result = evaluate(sanitize(query), "budget text")
        assert isinstance(result, bool)

    def test_missing_operand_is_false(self):
        assert evaluate("AND", "anything") is False
        assert evaluate("budget AND", "budget") is False

    def test_unbalanced_parentheses_dropped(self):
        assert evaluate("((budget", "budget") is True
        assert to_postfix("budget)") == [("term", "budget")]

    def test_evaluator_caches_postfix(self):
        evaluator = BooleanQueryEvaluator()
        assert evaluator.evaluate("alpha AND beta", "alpha beta") is True
        assert evaluator.evaluate("alpha AND beta", "alpha") is False
        assert list(evaluator._cache) == ["alpha AND beta"]

    def test_evaluator_cache_bounded(self):
        evaluator = BooleanQueryEvaluator(max_cache_size=2)
        for term in ("a", "b", "c"):
            evaluator.evaluate(term, term)
        assert len(evaluator._cache) <= 2


class TestRelevanceFilter:
    """키워드 + 검색식 관련성"""

    @pytest.fixture
    def relevance(self):
        return MentionRelevanceFilter()

    def test_keyword_match_kept(self, relevance):
        result = relevance.check("The new Budget plan passed", ["budget"], "")
        assert result.keep is True
        assert result.keyword_matched == "budget"

    def test_unrelated_dropped(self, relevance):
        result = relevance.check("Unrelated news", ["budget"], "")
        assert result.keep is False
        assert result.decision == RelevanceDecision.DROP_KEYWORD

    def test_boolean_failure_dropped(self, relevance):
        result = relevance.check("budget for sports", ["budget"], "budget AND NOT sports")
        assert result.keep is False
        assert result.decision == RelevanceDecision.DROP_BOOLEAN

    def test_no_keywords_relies_on_query(self, relevance):
        assert relevance.check("tax relief", [], "tax").keep is True
        assert relevance.check("weather", [], "tax").keep is False

    def test_no_keywords_no_query_keeps(self, relevance):
        result = relevance.check("anything", [], "")
        assert result.keep is True
        assert result.keyword_matched == ""

    def test_first_matching_keyword_wins(self):
        assert match_keyword(["Tax", "budget"], "budget and tax") == "tax"
        assert match_keyword(["  ", "budget"], "budget") == "budget"
        assert match_keyword([], "budget") == ""

    def test_match_text_joins_title_and_body(self):
        assert build_match_text("Title", "body") == "Title body"
        assert build_match_text(None, "body") == "body"

    def test_filter_texts(self, relevance):
        texts = ["budget news", "sports news", "budget sports"]
        assert relevance.filter_texts(texts, ["budget"], "NOT sports") == ["budget news"]
