from utils.exceptions import (
    ScraperError,
    ImageFetchError,
    ImageSaveError,
    StoreError,
    RateLimitTimeout,
    ConfigurationError,
)
from utils.log_config import get_logger
from utils.concurrency import (
    AtomicCounter,
    QuotaGate,
    RateLimiter,
)
