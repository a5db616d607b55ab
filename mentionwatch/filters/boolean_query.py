"""
Boolean Query Evaluator

프로젝트의 불리언 검색식(AND / OR / NOT, 괄호)을 멘션 텍스트에 대해 평가.

- 연산자는 대소문자를 구분하지 않음
- 항(term)은 텍스트의 부분 문자열(대소문자 무시)이면 참
- 빈 검색식은 항상 참
- 어떤 입력에도 예외를 던지지 않음 (피연산자 부족 시 False로 간주)
"""

import re
import logging
from typing import Dict, List, Tuple

logger = logging.getLogger(__name__)


# ============================================================
# Grammar
# ============================================================

OPERATOR_PRECEDENCE: Dict[str, int] = {
    "NOT": 3,
    "AND": 2,
    "OR": 1,
}

TERM = "term"
OPERATOR = "op"

_UNSAFE_CHARS = re.compile(r"[^\w\s()]")
_TOKEN_PATTERN = re.compile(r"\(|\)|[^\s()]+")

PostfixToken = Tuple[str, str]


def sanitize(raw: str) -> str:
    """단어 문자, 공백, 괄호 이외의 문자를 공백으로 치환"""
    if not raw:
        return ""
    return _UNSAFE_CHARS.sub(" ", raw).strip()


def tokenize(query: str) -> List[str]:
    return _TOKEN_PATTERN.findall(query or "")


def to_postfix(query: str) -> List[PostfixToken]:
    """
    Shunting-yard 변환

    짝이 맞지 않는 괄호는 버린다.
    """
    output: List[PostfixToken] = []
    operators: List[str] = []

    for token in tokenize(query):
        upper = token.upper()

        if upper in OPERATOR_PRECEDENCE:
            if upper != "NOT":
                while (
                    operators
                    and operators[-1] != "("
                    and OPERATOR_PRECEDENCE[operators[-1]] >= OPERATOR_PRECEDENCE[upper]
                ):
                    output.append((OPERATOR, operators.pop()))
            operators.append(upper)
        elif token == "(":
            operators.append(token)
        elif token == ")":
            while operators and operators[-1] != "(":
                output.append((OPERATOR, operators.pop()))
            if operators:
                operators.pop()
        else:
            output.append((TERM, token.lower()))

    while operators:
        op = operators.pop()
        if op != "(":
            output.append((OPERATOR, op))

    return output


def evaluate_postfix(postfix: List[PostfixToken], text: str) -> bool:
    haystack = (text or "").lower()
    stack: List[bool] = []

    for kind, value in postfix:
        if kind == TERM:
            stack.append(value in haystack)
        elif value == "NOT":
            operand = stack.pop() if stack else False
            stack.append(not operand)
        else:
            right = stack.pop() if stack else False
            left = stack.pop() if stack else False
            stack.append(left and right if value == "AND" else left or right)

    return bool(stack.pop()) if stack else False


def evaluate(query: str, text: str) -> bool:
    """검색식 평가 (빈 검색식은 True)"""
    if not query or not query.strip():
        return True
    return evaluate_postfix(to_postfix(query), text)


# ============================================================
# Evaluator (postfix 캐시)
# ============================================================

class BooleanQueryEvaluator:
    """
    불리언 검색식 평가기

    같은 검색식이 한 수집 회차 동안 여러 멘션에 반복 적용되므로
    변환된 postfix를 캐시한다.
    """

    def __init__(self, max_cache_size: int = 512):
        self.max_cache_size = max_cache_size
        self._cache: Dict[str, List[PostfixToken]] = {}

    def sanitize(self, raw: str) -> str:
        return sanitize(raw)

    def compile(self, query: str) -> List[PostfixToken]:
        cached = self._cache.get(query)
        if cached is not None:
            return cached

        postfix = to_postfix(query)
        if len(self._cache) >= self.max_cache_size:
            self._cache.clear()
        self._cache[query] = postfix
        return postfix

    def evaluate(self, query: str, text: str) -> bool:
        if not query or not query.strip():
            return True
        return evaluate_postfix(self.compile(query), text)
