from mentionwatch.schedulers.ingestion_scheduler import IngestionScheduler, TickReport, is_due

__all__ = ["IngestionScheduler", "TickReport", "is_due"]
