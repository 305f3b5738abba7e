"""Domain errors raised by the ingestion pipeline."""


class RestaurantTrackerError(Exception):
    """Base class for Restaurant Tracker failures."""

    error_code = "RESTAURANT_TRACKER_ERROR"


class ConfigError(RestaurantTrackerError):
    """Raised for invalid or missing source configuration."""

    error_code = "CONFIG_ERROR"


class PayloadParseError(RestaurantTrackerError):
    """Raised when an upstream payload is not in the adapter's shape."""

    error_code = "PAYLOAD_PARSE_ERROR"


class CrawlError(RestaurantTrackerError):
    """Raised when a crawl run cannot complete."""

    error_code = "CRAWL_ERROR"


class UpstreamUnavailableError(CrawlError):
    """Raised when the upstream source cannot be reached at all."""

    error_code = "UPSTREAM_UNAVAILABLE"


class NoDataError(CrawlError):
    """Raised when the upstream responds but no records can be extracted."""

    error_code = "NO_DATA"


class AlreadySeededError(RestaurantTrackerError):
    """Raised when a preview crawl is requested after the store is seeded."""

    error_code = "ALREADY_SEEDED"

    def __init__(self, reason: str = "Database already seeded. Use weekly cron job for updates."):
        self.reason = reason
        super().__init__(reason)
