"""
Content Fingerprint
정규화된 본문의 SHA-256 해시로 유사 중복 멘션을 식별
"""

import hashlib
import re
from typing import Optional

# 영숫자(유니코드 포함)가 아닌 문자 구간, 밑줄 포함
_NON_ALNUM = re.compile(r"[\W_]+")


def normalize(text: Optional[str]) -> str:
    """소문자화 후 비영숫자 구간을 공백 하나로 치환"""
    if not text:
        return ""
    return _NON_ALNUM.sub(" ", text.lower()).strip()


def fingerprint(text: Optional[str]) -> Optional[str]:
    """정규화 결과가 비어 있으면 None"""
    normalized = normalize(text)
    if not normalized:
        return None
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def fingerprint_mention(title: Optional[str], text: Optional[str]) -> Optional[str]:
    return fingerprint(f"{title or ''} {text or ''}")
