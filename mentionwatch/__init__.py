"""
MentionWatch - 멘션 수집 및 알림 엔진
"""

__version__ = "1.0.0"
