"""
Services
수집 외 도메인 서비스 (알림, 분석, 알림 전달, 플랫폼)
"""
