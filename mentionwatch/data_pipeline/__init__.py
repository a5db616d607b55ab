"""
Data Pipeline
멘션 수집 파이프라인

모듈:
- adapters: 소스별 커넥터
- crawlers: 외부 크롤러 클라이언트 (Apify)
- domain: 도메인 모델
- processors: 지문 / 도달 범위 계산
- repositories: 영속 계층 (SQLAlchemy)
- pipeline: 수집 오케스트레이터
"""
