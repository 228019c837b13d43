"""
Error classification for non-successful HTTP responses
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import requests

from .exceptions import APIError, ResponseError
from .object_mapper import ObjectMapper


@dataclass
class ErrorMessage:
    """Structured error body returned by the API"""
    message: Optional[str] = None
    errors: Optional[List[str]] = None
    trackingId: Optional[str] = None


def is_success(status_code: int) -> bool:
    """Success window is [200, 300); 300 itself is a failure"""
    return 200 <= status_code < 300


def parse_error_body(data: Optional[bytes]) -> Optional[ErrorMessage]:
    """
    Best-effort decode of an error body

    Args:
        data: Raw error response body

    Returns:
        ErrorMessage when the body is a JSON object carrying a message, else None
    """
    if not data:
        return None
    try:
        error_message = ObjectMapper().read_json(ErrorMessage, data)
    except (APIError, ValueError):
        return None
    if error_message.message is None:
        return None
    return error_message


def check_response(response: requests.Response, logger: Optional[logging.Logger] = None,
                   tracking_id: Optional[str] = None) -> None:
    """
    Raise ResponseError unless the response status is in [200, 300)

    The message has the form 'bad response code <code>[ <reason>][: <message>]'
    where <message> comes from the error body if it can be parsed.

    Args:
        response: Response whose body has not been consumed yet
        logger: Optional logger for the error body at DEBUG
        tracking_id: Correlation identifier of the request, for logging

    Raises:
        ResponseError: If the status code is outside the success window
    """
    status_code = response.status_code
    if is_success(status_code):
        return

    message = f"bad response code {status_code}"
    if response.reason:
        message += f" {response.reason}"

    try:
        body = response.content
    except requests.exceptions.RequestException:
        body = None

    if logger is not None and logger.isEnabledFor(logging.DEBUG):
        logger.debug(f"Error Body {tracking_id}: {body.decode('utf-8', errors='replace') if body else ''}")

    error_body = parse_error_body(body)
    if error_body is not None:
        message += f": {error_body.message}"

    raise ResponseError(message, status_code=status_code, reason=response.reason, error_body=error_body)
