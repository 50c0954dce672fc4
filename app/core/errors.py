class InsightsError(Exception):
    """Base class for every error this service raises on purpose."""


class InsufficientDataError(InsightsError):
    """Raised when a batch has fewer posts than an aggregation needs."""


class UnknownToolError(InsightsError):
    """Raised when a tool name has no registered handler."""


class UpstreamError(InsightsError):
    """Raised when the data acquisition layer cannot deliver a profile."""


class UpstreamUnavailableError(UpstreamError):
    """The scraping provider failed, timed out or answered garbage."""


class NotFoundError(UpstreamError):
    """The account does not exist or has no retrievable posts."""


class RateLimitedError(UpstreamError):
    """The scraping provider throttled the request."""


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning ``default`` instead of raising on a zero denominator."""
    if not denominator:
        return default
    return numerator / denominator
