from mentionwatch.services.analysis.sentiment import (
    LexiconSentimentClassifier,
    TextClassifier,
    detect_language,
)

__all__ = ["LexiconSentimentClassifier", "TextClassifier", "detect_language"]
