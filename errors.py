"""
Error taxonomy

Every failure the API can report is one of these. Handlers and the store
raise them; main.py renders them as {"ok": false, "error", "message"}.
"""

from typing import Optional


class VideoShareError(Exception):
    status_code = 500
    code = "error"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        self.code = code or self.code
        self.message = message or self.code
        super().__init__(self.message)


class ValidationError(VideoShareError):
    """Client input is malformed. The code names the rule that failed."""
    status_code = 400
    code = "validation_error"

    def __init__(self, code: str, message: Optional[str] = None):
        super().__init__(message=message or code, code=code)


class AuthError(VideoShareError):
    status_code = 401
    code = "unauthorized"


class NotFoundError(VideoShareError):
    status_code = 404
    code = "not_found"


class UnsupportedFilterError(VideoShareError):
    status_code = 400
    code = "unsupported_filter"


class StoreError(VideoShareError):
    """Database unreachable or the operation failed. Message stays generic."""
    status_code = 500
    code = "store_error"
