"""
CredentialHolder module for the bearer credential shared with an external refresher
"""

import threading
from typing import Optional

from .exceptions import APIError


class CredentialHolder:
    """Thread-safe, swappable holder for the access token used on every call"""

    BEARER_PREFIX = "Bearer "

    def __init__(self, token: Optional[str] = None):
        self._token = token
        self._lock = threading.Lock()

    def get(self) -> Optional[str]:
        """Return the current raw credential"""
        with self._lock:
            return self._token

    def set(self, token: str) -> None:
        """Replace the credential, e.g. after a token refresh"""
        with self._lock:
            self._token = token

    def authorization_header(self) -> str:
        """
        Build the Authorization header value from the current credential

        The 'Bearer ' scheme is only prepended when the stored value does not
        already carry it.

        Raises:
            APIError: If no credential has been set
        """
        token = self.get()
        if not token:
            raise APIError("no access token configured")
        if token.startswith(self.BEARER_PREFIX):
            return token
        return f"{self.BEARER_PREFIX}{token}"
