"""Errors raised while talking to the Nucleares webserver"""
from typing import Optional


class UpstreamError(Exception):
    """A request to the upstream failed (connectivity, timeout or bad status)"""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None,
                 reason: Optional[str] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.reason = reason


class ControlError(UpstreamError):
    """A variable write was rejected or could not be delivered"""
