"""Custom exception hierarchy."""


class ScraperError(Exception):
    """Base for every project exception."""


class ImageFetchError(ScraperError):
    """Image could not be downloaded or decoded."""


class ImageSaveError(ScraperError):
    """Resized image could not be written to disk."""


class StoreError(ScraperError):
    """The record store rejected a read or a write."""


class RateLimitTimeout(ScraperError):
    """No rate-limiter token became available within the wait budget."""


class ConfigurationError(ScraperError):
    """Invalid or missing configuration."""
