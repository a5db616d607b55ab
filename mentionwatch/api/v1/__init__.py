from mentionwatch.api.v1 import accounts, alerts, projects, realtime

__all__ = ["accounts", "alerts", "projects", "realtime"]
