"""
Custom exceptions for the vidreach composition pipeline
"""
from typing import Optional


class VidreachException(Exception):
    """Base exception for vidreach"""
    def __init__(self, message: str, error_code: str = None, details: dict = None):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class DownloadError(VidreachException):
    """Remote asset unreachable, non-success status, or incomplete transfer"""
    def __init__(self, message: str, url: str = None, status_code: Optional[int] = None, details: dict = None):
        self.url = url
        self.status_code = status_code
        details = dict(details or {})
        details.setdefault('url', url)
        details.setdefault('status_code', status_code)
        super().__init__(message, details=details)


class CompositionError(VidreachException):
    """Compositing engine failed (bad codec, filter graph error, encoder crash, timeout)"""
    def __init__(self, message: str, stderr: str = "", details: dict = None):
        self.stderr = stderr or ""
        super().__init__(message, details=details)


class PublishError(VidreachException):
    """Upload to durable storage failed"""
    pass


class EngineUnavailableError(VidreachException):
    """Compositing engine not installed or not reachable in this environment"""
    pass


class RemoteExecutionError(VidreachException):
    """Remote composition endpoint returned an error or could not be reached"""
    pass


class CompositionCancelledError(VidreachException):
    """Composition was cancelled at a stage boundary"""
    pass


class ValidationError(VidreachException):
    """Input validation failed"""
    pass
