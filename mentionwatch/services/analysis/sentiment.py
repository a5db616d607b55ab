"""
Text Classifier
멘션 텍스트의 언어 태그와 감성 레이블 판정

실제 ML 분류기는 외부 협력자이며 TextClassifier 프로토콜만 만족하면 된다.
기본 구현 LexiconSentimentClassifier는 키워드 기반 빠른 분석이다.
"""

import logging
import re
from typing import Optional, Protocol, Sequence, runtime_checkable

from mentionwatch.data_pipeline.domain.models import SentimentResult

logger = logging.getLogger(__name__)

DEVANAGARI = re.compile(r"[ऀ-ॿ]")
HANGUL = re.compile(r"[가-힣]")
LATIN = re.compile(r"[a-zA-Z]")

MAX_TEXT_LENGTH = 512


@runtime_checkable
class TextClassifier(Protocol):
    """감성 / 언어 분류기"""

    def classify(self, text: str) -> SentimentResult:
        ...

    def detect_language(self, text: str) -> str:
        ...


def detect_language(text: Optional[str]) -> str:
    """문자 체계 기반 언어 태그 (ne / ko / en / unknown)"""
    if not text:
        return "unknown"
    if DEVANAGARI.search(text):
        return "ne"
    if HANGUL.search(text):
        return "ko"
    if LATIN.search(text):
        return "en"
    return "unknown"


class LexiconSentimentClassifier:
    """
    키워드 기반 감성 분류기

    긍정/부정 키워드 출현 수를 비교한다. 키워드가 없으면 neutral.
    """

    POSITIVE_KEYWORDS = (
        "good", "great", "excellent", "amazing", "wonderful", "awesome",
        "love", "best", "happy", "success", "win", "praise", "recommend",
        "राम्रो", "सफल", "खुसी",
        "좋아", "최고", "감사", "만족",
    )

    NEGATIVE_KEYWORDS = (
        "bad", "terrible", "poor", "awful", "horrible", "worst",
        "hate", "angry", "scam", "fraud", "corrupt", "corruption",
        "protest", "crisis", "fail", "failure", "disappointed",
        "नराम्रो", "भ्रष्टाचार", "असफल",
        "최악", "실망", "불만",
    )

    def __init__(
        self,
        positive_keywords: Optional[Sequence[str]] = None,
        negative_keywords: Optional[Sequence[str]] = None,
    ):
        self.positive_keywords = tuple(positive_keywords or self.POSITIVE_KEYWORDS)
        self.negative_keywords = tuple(negative_keywords or self.NEGATIVE_KEYWORDS)

    def detect_language(self, text: str) -> str:
        return detect_language(text)

    def classify(self, text: str) -> SentimentResult:
        trimmed = (text or "").strip()
        if not trimmed:
            return SentimentResult(label="neutral", confidence=0.0)

        lower = trimmed[:MAX_TEXT_LENGTH].lower()
        positive = sum(1 for word in self.positive_keywords if word in lower)
        negative = sum(1 for word in self.negative_keywords if word in lower)

        if positive == negative:
            return SentimentResult(label="neutral", confidence=0.2 if positive == 0 else 0.3)

        total = positive + negative
        dominant = max(positive, negative)
        # 키워드 기반이므로 확신도 상한을 둔다
        confidence = round(min(0.4 + 0.4 * dominant / total * min(total, 3) / 3, 0.8), 4)
        label = "positive" if positive > negative else "negative"
        return SentimentResult(label=label, confidence=confidence)
