"""
ObjectMapper module for converting typed data objects to and from JSON
without per-type serialisation code
"""

import dataclasses
import io
import json
import logging
import types
from decimal import Decimal, InvalidOperation
from enum import Enum
from functools import lru_cache
from typing import Any, BinaryIO, Dict, Iterable, Iterator, List, Optional, Tuple, Type, TypeVar, Union
from typing import get_args, get_origin, get_type_hints

import ijson

from .exceptions import DecodeError, ProtocolError


T = TypeVar('T')

JsonEvent = Tuple[str, Any]

SCALAR_EVENTS = {'string', 'number', 'boolean'}

# Marker returned by value conversion when the JSON value does not fit the field
_MISMATCH = object()


class FieldKind(Enum):
    """Closed set of field kinds a data object may declare"""
    TEXT = "text"
    INTEGER = "integer"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    TEXT_LIST = "text_list"
    OBJECT = "object"
    UNSUPPORTED = "unsupported"


@dataclasses.dataclass(frozen=True)
class FieldDescriptor:
    """Name, kind and (for nested objects) target type of one declared field"""
    name: str
    kind: FieldKind
    target_type: Optional[type] = None


def _unwrap_optional(annotation: Any) -> Any:
    """Strip Optional[...] / X | None down to the single wrapped type"""
    if get_origin(annotation) in (Union, types.UnionType):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def resolve_kind(annotation: Any) -> FieldDescriptor:
    """
    Classify a field annotation into one of the supported field kinds

    Args:
        annotation: Resolved type annotation of the field

    Returns:
        FieldDescriptor with an empty name, kind and nested type if any
    """
    annotation = _unwrap_optional(annotation)

    # bool before int, since bool is an int subclass
    if annotation is bool:
        return FieldDescriptor('', FieldKind.BOOLEAN)
    if annotation is str:
        return FieldDescriptor('', FieldKind.TEXT)
    if annotation is int:
        return FieldDescriptor('', FieldKind.INTEGER)
    if annotation is Decimal:
        return FieldDescriptor('', FieldKind.DECIMAL)
    if get_origin(annotation) is list and get_args(annotation) == (str,):
        return FieldDescriptor('', FieldKind.TEXT_LIST)
    if isinstance(annotation, type) and dataclasses.is_dataclass(annotation):
        return FieldDescriptor('', FieldKind.OBJECT, annotation)
    return FieldDescriptor('', FieldKind.UNSUPPORTED)


@lru_cache(maxsize=None)
def field_table(data_type: type) -> Dict[str, FieldDescriptor]:
    """
    Build (once per type) the descriptor table for a data object class

    Args:
        data_type: A dataclass type

    Returns:
        Ordered mapping of field name to FieldDescriptor

    Raises:
        TypeError: If data_type is not a dataclass or its annotations cannot be resolved
    """
    if not (isinstance(data_type, type) and dataclasses.is_dataclass(data_type)):
        raise TypeError(f"{data_type!r} is not a dataclass type")

    try:
        hints = get_type_hints(data_type)
    except NameError as e:
        raise TypeError(f"cannot resolve annotations of {data_type.__name__}: {e}") from e
    table: Dict[str, FieldDescriptor] = {}
    for field in dataclasses.fields(data_type):
        resolved = resolve_kind(hints.get(field.name, field.type))
        table[field.name] = FieldDescriptor(field.name, resolved.kind, resolved.target_type)
    return table


def json_events(stream: Union[BinaryIO, bytes]) -> Iterator[JsonEvent]:
    """
    Stream (event, value) pairs from a JSON byte source

    Numbers come back as int or Decimal so that precision is never lost.

    Raises:
        DecodeError: If the document is malformed or truncated
    """
    if isinstance(stream, (bytes, bytearray)):
        stream = io.BytesIO(stream)
    try:
        yield from ijson.basic_parse(stream, use_float=False)
    except ijson.JSONError as e:
        raise DecodeError(f"malformed json: {e}", e) from e


class ObjectMapper:
    """Maps flat dataclass instances to JSON objects and back by field name"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    # Encoding

    def encode(self, obj: Any) -> Dict[str, Any]:
        """
        Convert a data object into a JSON-ready dictionary

        Fields holding None are omitted and fields of unsupported kinds are
        skipped.

        Args:
            obj: Dataclass instance to encode

        Returns:
            Dictionary keyed by field name
        """
        result: Dict[str, Any] = {}

        for descriptor in field_table(type(obj)).values():
            value = getattr(obj, descriptor.name, None)
            if value is None:
                continue

            if descriptor.kind is FieldKind.TEXT:
                result[descriptor.name] = str(value)
            elif descriptor.kind is FieldKind.INTEGER:
                result[descriptor.name] = int(value)
            elif descriptor.kind is FieldKind.DECIMAL:
                result[descriptor.name] = value if isinstance(value, Decimal) else Decimal(value)
            elif descriptor.kind is FieldKind.BOOLEAN:
                result[descriptor.name] = bool(value)
            elif descriptor.kind is FieldKind.TEXT_LIST:
                result[descriptor.name] = [str(item) for item in value]
            elif descriptor.kind is FieldKind.OBJECT:
                result[descriptor.name] = self.encode(value)

        return result

    def encode_bytes(self, obj: Any) -> bytes:
        """
        Encode a data object as UTF-8 JSON, writing decimals exactly

        Raises:
            ProtocolError: If obj is not a data object or holds a value that
                cannot be written as JSON (e.g. a NaN decimal)
        """
        try:
            return _dumps(self.encode(obj)).encode('utf-8')
        except (TypeError, ValueError) as e:
            raise ProtocolError(f"cannot encode {type(obj).__name__}: {e}", e) from e

    # Decoding

    def read_json(self, target_type: Type[T], stream: Union[BinaryIO, bytes]) -> T:
        """Decode the top-level JSON object of a byte stream into target_type"""
        return self.decode(target_type, json_events(stream))

    def decode(self, target_type: Type[T], events: Iterable[JsonEvent]) -> T:
        """
        Decode one streamed JSON object into a new instance of target_type

        Args:
            target_type: Dataclass to instantiate
            events: (event, value) pairs positioned before the object's start

        Returns:
            Populated instance of target_type

        Raises:
            DecodeError: If the stream does not start with a JSON object or
                is otherwise malformed
        """
        events = iter(events)
        try:
            event, _ = next(events)
        except StopIteration:
            raise DecodeError("empty json document")

        if event != 'start_map':
            raise DecodeError(f"expected json object, got event: {event}")

        return self.read_object(target_type, events)

    def read_object(self, target_type: Type[T], events: Iterator[JsonEvent]) -> T:
        """
        Decode the remainder of an object whose start_map was already consumed

        Unknown keys and values of the wrong kind are skipped; the object is
        always read through to its closing event.
        """
        try:
            table = field_table(target_type)
            result = target_type()
        except TypeError as e:
            raise DecodeError(f"cannot instantiate {getattr(target_type, '__name__', target_type)}: {e}", e) from e

        pending: Optional[FieldDescriptor] = None

        for event, value in events:
            if event == 'map_key':
                pending = table.get(value)
                if pending is None:
                    self.logger.debug(f"Ignoring unknown key '{value}' for {target_type.__name__}")

            elif event in SCALAR_EVENTS:
                if pending is not None:
                    self._assign(result, pending, value)
                pending = None

            elif event == 'null':
                pending = None

            elif event == 'start_array':
                values = self._read_array(events)
                if pending is not None:
                    self._assign(result, pending, values)
                pending = None

            elif event == 'start_map':
                if pending is not None and pending.kind is FieldKind.OBJECT:
                    setattr(result, pending.name, self.read_object(pending.target_type, events))
                else:
                    skip_container(events)
                pending = None

            elif event == 'end_map':
                return result

            else:
                raise DecodeError(f"bad json event: {event}")

        raise DecodeError(f"unexpected end of json while reading {target_type.__name__}")

    def _read_array(self, events: Iterator[JsonEvent]) -> List[Any]:
        """Collect scalar array values up to end_array; nested containers are skipped"""
        values: List[Any] = []

        for event, value in events:
            if event == 'end_array':
                return values
            if event in ('start_map', 'start_array'):
                skip_container(events)
                values.append(_MISMATCH)
            elif event in SCALAR_EVENTS or event == 'null':
                values.append(value)
            else:
                raise DecodeError(f"bad json event in array: {event}")

        raise DecodeError("unexpected end of json inside array")

    def _assign(self, result: Any, descriptor: FieldDescriptor, value: Any) -> None:
        converted = self._convert(descriptor.kind, value)
        if converted is _MISMATCH:
            self.logger.debug(
                f"Ignoring value of type {type(value).__name__} for "
                f"{descriptor.kind.value} field '{descriptor.name}'"
            )
            return
        setattr(result, descriptor.name, converted)

    @staticmethod
    def _convert(kind: FieldKind, value: Any) -> Any:
        """Convert a decoded JSON value to the field kind, or return _MISMATCH"""
        if kind is FieldKind.TEXT:
            return value if isinstance(value, str) else _MISMATCH

        if kind is FieldKind.BOOLEAN:
            return value if isinstance(value, bool) else _MISMATCH

        if kind is FieldKind.INTEGER:
            if isinstance(value, int) and not isinstance(value, bool):
                return value
            return _MISMATCH

        if kind is FieldKind.DECIMAL:
            if isinstance(value, bool) or not isinstance(value, (int, Decimal)):
                return _MISMATCH
            try:
                return Decimal(value)
            except InvalidOperation as e:
                raise DecodeError(f"invalid decimal value {value!r}", e) from e

        if kind is FieldKind.TEXT_LIST:
            if isinstance(value, list) and all(isinstance(item, str) for item in value):
                return value
            return _MISMATCH

        return _MISMATCH


def skip_container(events: Iterator[JsonEvent]) -> None:
    """Consume events up to the end of a container whose start was already read"""
    depth = 1
    for event, _ in events:
        if event in ('start_map', 'start_array'):
            depth += 1
        elif event in ('end_map', 'end_array'):
            depth -= 1
            if depth == 0:
                return
    raise DecodeError("unexpected end of json inside nested container")


def _dumps(value: Any) -> str:
    """Serialise an encoded object; Decimal is written as a JSON number without rounding"""
    if isinstance(value, dict):
        members = ', '.join(f"{json.dumps(key)}: {_dumps(item)}" for key, item in value.items())
        return f"{{{members}}}"
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"cannot encode non-finite decimal {value}")
        return str(value)
    return json.dumps(value)
