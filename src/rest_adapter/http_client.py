"""
HTTPClient module for authenticated JSON requests with typed request and response bodies
"""

import io
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Callable, Dict, Iterator, Mapping, Optional, Sequence, Tuple, Type, TypeVar, Union
from urllib.parse import urlencode, urlsplit

import requests
import urllib3

from .config_loader import APIConfig, ConfigLoader
from .credentials import CredentialHolder
from .error_classifier import check_response
from .exceptions import ProtocolError, TransportError
from .object_mapper import JsonEvent, ObjectMapper, json_events
from .pagination_strategy import PagingIterator


T = TypeVar('T')

QueryParams = Union[Sequence[Tuple[str, str]], Mapping[str, str], None]

TRACKING_ID_HEADER = "TrackingID"

# Failures raised while reading a streamed response body
STREAM_ERRORS = (requests.exceptions.RequestException, urllib3.exceptions.HTTPError, OSError)


@dataclass
class APIRequest:
    """Represents a single outbound API request"""
    url: str
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None

    @property
    def tracking_id(self) -> Optional[str]:
        return self.headers.get(TRACKING_ID_HEADER)


class Connection:
    """A session and its streamed response, owned by one call and released together"""

    def __init__(self, request: APIRequest, session: requests.Session, response: requests.Response,
                 logger: logging.Logger):
        self.request = request
        self.session = session
        self.response = response
        self.logger = logger
        self.closed = False

    @property
    def url(self) -> str:
        return self.request.url

    @property
    def headers(self) -> Mapping[str, str]:
        return self.response.headers

    def check(self) -> None:
        """Raise ResponseError for a status outside [200, 300)"""
        check_response(self.response, self.logger, self.request.tracking_id)

    def body_stream(self) -> BinaryIO:
        """
        Return the response body as a byte stream

        With DEBUG enabled the body is buffered and logged first, otherwise the
        raw socket stream is handed over without buffering.
        """
        if self.logger.isEnabledFor(logging.DEBUG):
            try:
                content = self.response.content
            except STREAM_ERRORS as e:
                raise TransportError(f"io error reading {self.url}: {e}", e) from e
            self.logger.debug(
                f"Response Body {self.request.tracking_id}: {content.decode('utf-8', errors='replace')}"
            )
            return io.BytesIO(content)

        raw = self.response.raw
        raw.decode_content = True
        return raw

    def events(self) -> Iterator[JsonEvent]:
        """Stream JSON events of the response body, mapping I/O failures to TransportError"""
        stream = self.body_stream()
        try:
            yield from json_events(stream)
        except STREAM_ERRORS as e:
            raise TransportError(f"io error reading {self.url}: {e}", e) from e

    def close(self) -> None:
        """Release the response and its session; later calls are no-ops"""
        if self.closed:
            return
        self.closed = True
        try:
            self.response.close()
        finally:
            self.session.close()


class HTTPClient:
    """HTTP client issuing one authenticated connection per call"""

    def __init__(self, base_url: str, credentials: Union[CredentialHolder, str],
                 timeout: float = 60, logger: Optional[logging.Logger] = None,
                 session_factory: Callable[[], requests.Session] = requests.Session,
                 object_mapper: Optional[ObjectMapper] = None):
        """
        Args:
            base_url: Base address prepended to every request path
            credentials: Holder of the bearer token (a plain string is wrapped)
            timeout: Connect and read timeout in seconds
            logger: Optional sink; summaries at INFO, bodies at DEBUG
            session_factory: Creates the session used for a single call
            object_mapper: Mapper for request and response bodies
        """
        self.base_url = base_url.rstrip('/')
        if isinstance(credentials, CredentialHolder):
            self.credentials = credentials
        else:
            self.credentials = CredentialHolder(credentials)
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self.session_factory = session_factory
        self.object_mapper = object_mapper or ObjectMapper(self.logger)

    @classmethod
    def from_config(cls, config: APIConfig, logger: Optional[logging.Logger] = None) -> 'HTTPClient':
        """
        Create a client from a loaded APIConfig

        Raises:
            EnvironmentError: If the token environment variable is not set
        """
        ConfigLoader.validate_environment_variables(config)
        token = ConfigLoader.get_environment_value(config.authentication['token_env'])
        return cls(config.base_url, CredentialHolder(token), timeout=config.timeout, logger=logger)

    # Request construction

    def build_url(self, path: str, params: QueryParams = None) -> str:
        """
        Build the request URL from the base address, path and ordered query parameters

        Raises:
            ProtocolError: If the result is not an absolute http(s) URL
        """
        url = f"{self.base_url}{path}"
        if params:
            pairs = list(params.items()) if isinstance(params, Mapping) else list(params)
            url = f"{url}?{urlencode(pairs)}"

        parts = urlsplit(url)
        if parts.scheme not in ('http', 'https') or not parts.netloc:
            raise ProtocolError(f"bad url: {url}")
        return url

    def build_request(self, method: str, url: str, body: Any = None) -> APIRequest:
        """Attach standard headers and encode the optional body"""
        headers = {
            'Content-Type': 'application/json',
            'Accept': 'application/json',
            # Read on every call so a refreshed token is picked up
            'Authorization': self.credentials.authorization_header(),
            TRACKING_ID_HEADER: str(uuid.uuid4())
        }
        data = self.object_mapper.encode_bytes(body) if body is not None else None
        return APIRequest(url=url, method=method, headers=headers, body=data)

    def open(self, method: str, url: str, body: Any = None) -> Connection:
        """
        Send a request and return the open connection with its unread response

        Raises:
            TransportError: On connection-level failures
            ProtocolError: If the body cannot be encoded as JSON
        """
        request = self.build_request(method, url, body)

        self.logger.info(f"Request {request.tracking_id}: {method} {url}")
        if request.body is not None and self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(f"Request Body {request.tracking_id}: {request.body.decode('utf-8')}")

        session = self.session_factory()
        try:
            response = session.request(
                method,
                url,
                headers=request.headers,
                data=request.body,
                stream=True,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            session.close()
            raise TransportError(f"io error: {e}", e) from e

        self.logger.info(f"Response {request.tracking_id}: {response.status_code} {response.reason}")
        return Connection(request, session, response, self.logger)

    # HTTP methods

    def request(self, method: str, path: str, params: QueryParams = None, body: Any = None,
                target_type: Optional[Type[T]] = None) -> Optional[T]:
        """
        Make a single request and decode the response into target_type

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            path: API path appended to the base address
            params: Ordered query parameters
            body: Optional data object sent as the JSON body
            target_type: Dataclass to decode the response into; None skips decoding

        Returns:
            Decoded response object, or None when no target type is given

        Raises:
            TransportError: On I/O failures
            ResponseError: On a status outside [200, 300)
            ProtocolError: If the URL or request body is invalid, or the response body is unexpected
        """
        url = self.build_url(path, params)
        connection = self.open(method, url, body)
        try:
            connection.check()
            if target_type is None:
                return None
            return self.object_mapper.decode(target_type, connection.events())
        finally:
            connection.close()

    def get(self, target_type: Type[T], path: str, params: QueryParams = None) -> T:
        """Make a GET request"""
        return self.request('GET', path, params=params, target_type=target_type)

    def post(self, target_type: Type[T], path: str, body: Any) -> T:
        """Make a POST request"""
        return self.request('POST', path, body=body, target_type=target_type)

    def put(self, target_type: Type[T], path: str, body: Any) -> T:
        """Make a PUT request"""
        return self.request('PUT', path, body=body, target_type=target_type)

    def delete(self, path: str) -> None:
        """Make a DELETE request; only the status is checked"""
        self.request('DELETE', path)

    def list(self, target_type: Type[T], path: str, params: QueryParams = None) -> PagingIterator[T]:
        """
        Lazily iterate a collection endpoint across all of its pages

        No request is made until the first element is requested.
        """
        return PagingIterator(self, target_type, self.build_url(path, params))
