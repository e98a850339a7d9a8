"""Exception taxonomy for template acquisition."""

from __future__ import annotations


class TemplateFetchError(Exception):
    """Base class for every failure surfaced by the acquisition flow."""


class ConfigurationError(TemplateFetchError):
    """Missing credentials or an unusable target URL. Never retried."""


class BrowserLaunchError(TemplateFetchError):
    pass


class NavigationError(TemplateFetchError):
    pass


class AuthenticationError(TemplateFetchError):
    pass


class DownloadTriggerNotFound(TemplateFetchError):
    def __init__(self, message: str = "No download control found", *, tried: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.tried = tried


class DownloadNotStarted(TemplateFetchError):
    def __init__(self, message: str = "Download did not start", *, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts


class ArtifactWriteError(TemplateFetchError):
    pass
