"""Custom exceptions for Sentinel."""


class SentinelError(Exception):
    """Base class for Sentinel errors."""


class SourceControlError(SentinelError):
    """Raised when the source-control API call fails.

    Treated as transient: the job queue retries the job with backoff.
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ChannelDeliveryError(SentinelError):
    """Raised when a single notification channel rejects a delivery."""

    def __init__(self, channel: str, message: str, status_code: int | None = None):
        self.channel = channel
        self.status_code = status_code
        super().__init__(f"{channel}: {message}")


class NotificationDeliveryError(SentinelError):
    """Raised when every channel of an alert failed to deliver."""

    def __init__(self, alert_id: str, failures: dict[str, str]):
        self.alert_id = alert_id
        self.failures = failures
        channels = ", ".join(sorted(failures))
        super().__init__(f"All channels failed for alert {alert_id}: {channels}")


class JobHandlerNotFoundError(SentinelError):
    """Raised when a claimed job has no registered handler."""

    def __init__(self, queue: str, name: str):
        self.queue = queue
        self.name = name
        super().__init__(f"No handler registered for job {name!r} on queue {queue!r}")
