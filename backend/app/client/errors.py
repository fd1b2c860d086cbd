"""Errors raised by the client core"""
from typing import Any, Optional


class CatalogError(Exception):
    """A catalog call returned a non-2xx status"""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.message} (HTTP {self.status_code})"


class UploadError(Exception):
    """A file transfer failed"""


class UploadCancelled(UploadError):
    """The caller cancelled a file transfer"""
