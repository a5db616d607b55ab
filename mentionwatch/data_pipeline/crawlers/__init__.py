from .apify_client import ApifyClient

__all__ = ["ApifyClient"]
