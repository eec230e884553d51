"""
Application errors for clean API error handling.

Use ServiceUnavailableError when a dependency (agent credentials, agent id)
is misconfigured or unreachable so the API can return 503 with a user-facing message.
UpstreamError and FileIngestionError map to 502 and 400 respectively.
"""


class ServiceUnavailableError(Exception):
    """Raised when a required service (e.g. the upstream agent) is unavailable or misconfigured."""

    status_code = 503

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(ServiceUnavailableError):
    """Raised when a required credential or identifier is missing."""


class UpstreamError(Exception):
    """Raised when the upstream completion call fails."""

    status_code = 502

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class FileIngestionError(Exception):
    """Raised when an attachment cannot be downloaded, uploaded, or indexed."""

    status_code = 400

    def __init__(self, message: str, url: str = "") -> None:
        self.message = message
        self.url = url
        super().__init__(message)
