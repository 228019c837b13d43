"""
Generic REST API client package
Provides typed JSON request/response mapping, error classification and
Link-header pagination over a bearer-authenticated HTTP transport
"""

from .config_loader import ConfigLoader, APIConfig, ConfigurationError, EnvironmentError
from .credentials import CredentialHolder
from .error_classifier import ErrorMessage, check_response, is_success, parse_error_body
from .exceptions import (
    APIError, TransportError, ProtocolError, DecodeError, ResponseError, NoSuchElementError
)
from .http_client import HTTPClient, APIRequest, Connection
from .link_header import parse_link_header, parse_links
from .logging_config import configure_logging
from .object_mapper import ObjectMapper, FieldKind, FieldDescriptor, field_table
from .pagination_strategy import PagingIterator, PageState

__all__ = [
    'ConfigLoader',
    'APIConfig',
    'ConfigurationError',
    'EnvironmentError',
    'CredentialHolder',
    'ErrorMessage',
    'check_response',
    'is_success',
    'parse_error_body',
    'APIError',
    'TransportError',
    'ProtocolError',
    'DecodeError',
    'ResponseError',
    'NoSuchElementError',
    'HTTPClient',
    'APIRequest',
    'Connection',
    'parse_link_header',
    'parse_links',
    'configure_logging',
    'ObjectMapper',
    'FieldKind',
    'FieldDescriptor',
    'field_table',
    'PagingIterator',
    'PageState'
]
