"""
Exception hierarchy shared by the transport, mapper and paginator components
"""

from typing import Optional, Any


class APIError(Exception):
    """Base failure raised for any fatal condition during an API call"""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class TransportError(APIError):
    """Raised when the connection or stream fails (DNS, connect, read)"""
    pass


class ProtocolError(APIError):
    """Raised when the server response does not have the expected shape"""
    pass


class DecodeError(ProtocolError):
    """Raised when a JSON document cannot be mapped onto a data object"""
    pass


class ResponseError(APIError):
    """Raised when the server answers with a status outside [200, 300)"""

    def __init__(self, message: str, status_code: int, reason: Optional[str] = None,
                 error_body: Optional[Any] = None):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason
        self.error_body = error_body


class NoSuchElementError(APIError, LookupError):
    """Raised when an element is taken from an exhausted paginator"""
    pass
