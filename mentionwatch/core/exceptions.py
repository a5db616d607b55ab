"""
도메인 예외
"""


class MentionWatchError(Exception):
    """기본 예외"""


class ProjectValidationError(MentionWatchError):
    """프로젝트 입력값 검증 실패"""


class ProjectNotFoundError(MentionWatchError):
    """프로젝트 없음"""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


class AccountNotFoundError(MentionWatchError):
    """계정 없음"""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class ConnectorError(MentionWatchError):
    """커넥터 수집 실패"""

    def __init__(self, connector_id: str, message: str):
        self.connector_id = connector_id
        super().__init__(message)
