"""
PagingIterator module for following Link-header pagination as one lazy sequence
"""

from enum import Enum
from typing import TYPE_CHECKING, Generic, Iterator, Optional, Type, TypeVar
from urllib.parse import urljoin

from .exceptions import APIError, NoSuchElementError, ProtocolError
from .link_header import parse_link_header
from .object_mapper import JsonEvent

if TYPE_CHECKING:
    from .http_client import Connection, HTTPClient


T = TypeVar('T')

ITEMS_KEY = 'items'
NEXT_RELATION = 'next'


class PageState(Enum):
    """Position of a PagingIterator within the paginated collection"""
    START = "start"
    IN_PAGE = "in_page"
    AT_BOUNDARY = "at_boundary"
    DONE = "done"


class PagingIterator(Generic[T]):
    """
    Forward-only iterator over every item of a paginated collection endpoint

    Each page is a JSON object with an 'items' array. Items are decoded one at
    a time from the streamed body; when a page is exhausted the 'next' relation
    of its Link header is fetched. Iteration ends when there is no such
    relation or it points back at the current page. At most one connection is
    open at a time and each is closed when it is abandoned.

    Not safe for concurrent use from several threads.
    """

    def __init__(self, client: 'HTTPClient', target_type: Type[T], url: str):
        self.client = client
        self.target_type = target_type
        self.url = url
        self.state = PageState.START
        self.pages_fetched = 0
        self.logger = client.logger
        self._connection: Optional['Connection'] = None
        self._events: Optional[Iterator[JsonEvent]] = None
        self._buffered: Optional[T] = None
        self._has_buffered = False

    def __iter__(self) -> 'PagingIterator[T]':
        return self

    def __next__(self) -> T:
        if not self.advance():
            raise StopIteration
        return self.take()

    def __enter__(self) -> 'PagingIterator[T]':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def advance(self) -> bool:
        """
        Make the next element available

        Returns:
            True if an element is buffered for take(), False once the collection is exhausted

        Raises:
            APIError: On transport, protocol or server failures; the open
                connection is released and the iterator finishes
        """
        if self._has_buffered:
            return True

        try:
            return self._advance()
        except APIError:
            self.close()
            raise

    def take(self) -> T:
        """
        Return and clear the element produced by the last successful advance()

        When nothing is buffered, take() advances by itself, like next() on an
        iterator, so consecutive calls return consecutive elements. The
        no-such-element failure is only raised once the collection is exhausted.

        Raises:
            NoSuchElementError: If the collection has no further elements
        """
        if not self.advance():
            raise NoSuchElementError("no more elements in collection")

        element = self._buffered
        self._buffered = None
        self._has_buffered = False
        return element

    def close(self) -> None:
        """Release the current connection and stop iterating"""
        self._release()
        self.state = PageState.DONE

    def _advance(self) -> bool:
        while True:
            if self.state is PageState.DONE:
                return False

            if self.state is PageState.START:
                self._open_page()
                self.state = PageState.IN_PAGE

            if self.state is PageState.IN_PAGE:
                event, _ = self._next_event()
                if event == 'start_map':
                    self._buffered = self.client.object_mapper.read_object(self.target_type, self._events)
                    self._has_buffered = True
                    return True
                if event != 'end_array':
                    raise ProtocolError(f"bad json event in {ITEMS_KEY}: {event}")
                self.state = PageState.AT_BOUNDARY

            if self.state is PageState.AT_BOUNDARY:
                next_url = self._next_link()
                if next_url is None or next_url == self.url:
                    self.logger.info(f"No further pages after {self.url} ({self.pages_fetched} fetched)")
                    self.close()
                    return False

                self._release()
                self.url = next_url
                self.state = PageState.START

    def _open_page(self) -> None:
        """Request the current URL and position the parser at the start of its items"""
        self.pages_fetched += 1
        self.logger.info(f"Fetching page {self.pages_fetched}: {self.url}")
        self._connection = self.client.open('GET', self.url)
        self._connection.check()
        self._events = self._connection.events()

        depth = 0
        for event, value in self._events:
            if event == 'map_key' and depth == 1 and value == ITEMS_KEY:
                break
            if event in ('start_map', 'start_array'):
                depth += 1
            elif event in ('end_map', 'end_array'):
                depth -= 1
        else:
            raise ProtocolError(f"missing '{ITEMS_KEY}' in response from {self.url}")

        event, _ = self._next_event()
        if event != 'start_array':
            raise ProtocolError(f"expected array for '{ITEMS_KEY}', got event: {event}")

    def _next_event(self) -> JsonEvent:
        try:
            return next(self._events)
        except StopIteration:
            raise ProtocolError(f"unexpected end of response from {self.url}")

    def _next_link(self) -> Optional[str]:
        link = parse_link_header(self._connection.headers.get('Link'), NEXT_RELATION)
        if link is None:
            return None
        return urljoin(self.url, link)

    def _release(self) -> None:
        if self._connection is not None:
            self._connection.close()
        self._connection = None
        self._events = None
