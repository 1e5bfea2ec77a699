"""
Codec for the PHP serialize() wire format.

Scheduler tasks are stored as serialize()d PHP objects. This module reads
and writes the subset of the format those blobs use:

    N;                          null
    b:1;                        bool
    i:42;                       int
    d:0.5;                      float (INF, -INF, NAN included)
    s:5:"hello";                string, length is a byte count
    a:2:{i:0;s:1:"a";i:1;N;}    array (ordered map, int or string keys)
    O:8:"stdClass":1:{s:3:"foo";i:1;}
                                object, property names may carry a
                                visibility prefix (see protected/private)

References (r:, R:), custom serialization (C:) and enums (E:) are not
supported and raise UnserializeError.

Usage:
    from schedmigrate.serialized import PhpObject, dumps, loads, protected

    blob = dumps(PhpObject("stdClass", {protected("foo"): 1}))
    obj = loads(blob)
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from schedmigrate.errors import UnserializeError


ObjectHook = Callable[[str, dict[str, Any]], Any]

_VALUE_TAGS = (b"b", b"i", b"d", b"s", b"a", b"O")

_INT_RE = re.compile(rb"-?\d+")
_FLOAT_RE = re.compile(rb"-?(?:INF|NAN|\d+(?:\.\d*)?(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)")


@dataclass
class PhpObject:
    """
    A serialized PHP object.

    Attributes:
        class_name: Fully qualified class name as it appears in the O: tag
        properties: Property name -> value, in serialization order. Names
            are stored exactly as serialized, including the NUL-delimited
            visibility prefix of protected and private properties.
    """
    class_name: str
    properties: dict[str, Any] = field(default_factory=dict)


def protected(name: str) -> str:
    """Encoded name of a protected property."""
    return f"\0*\0{name}"


def private(class_name: str, name: str) -> str:
    """Encoded name of a private property declared on class_name."""
    return f"\0{class_name}\0{name}"


class _Decoder:
    """Single-pass recursive descent over a serialized byte string."""

    def __init__(self, data: bytes, object_hook: Optional[ObjectHook], encoding: str):
        self.data = data
        self.pos = 0
        self.object_hook = object_hook
        self.encoding = encoding

    def error(self, message: str) -> UnserializeError:
        return UnserializeError(message, offset=self.pos)

    def expect(self, token: bytes) -> None:
        end = self.pos + len(token)
        if self.data[self.pos:end] != token:
            found = self.data[self.pos:end]
            raise self.error(f"Expected {token!r}, found {found!r}")
        self.pos = end

    def read_until(self, delimiter: bytes) -> bytes:
        end = self.data.find(delimiter, self.pos)
        if end < 0:
            raise self.error(f"Missing {delimiter!r}")
        chunk = self.data[self.pos:end]
        self.pos = end + len(delimiter)
        return chunk

    def read_int(self, delimiter: bytes) -> int:
        chunk = self.read_until(delimiter)
        if not _INT_RE.fullmatch(chunk):
            raise self.error(f"Invalid integer {chunk!r}")
        return int(chunk)

    def read_length(self) -> int:
        length = self.read_int(b":")
        if length < 0:
            raise self.error(f"Negative length {length}")
        return length

    def read_text(self, raw: bytes) -> str:
        try:
            return raw.decode(self.encoding)
        except UnicodeDecodeError as e:
            raise self.error(f"Cannot decode string as {self.encoding}: {e.reason}")

    def read_string_body(self, length: int) -> str:
        self.expect(b'"')
        end = self.pos + length
        if end > len(self.data):
            raise self.error(f"String length {length} runs past end of data")
        raw = self.data[self.pos:end]
        self.pos = end
        self.expect(b'"')
        return self.read_text(raw)

    def decode(self) -> Any:
        if self.pos >= len(self.data):
            raise self.error("Unexpected end of data")

        tag = self.data[self.pos:self.pos + 1]
        if tag == b"N":
            self.expect(b"N;")
            return None
        if tag not in _VALUE_TAGS:
            raise self.error(f"Unsupported token {tag!r}")

        self.pos += 1
        self.expect(b":")

        if tag == b"b":
            value = self.read_int(b";")
            if value not in (0, 1):
                raise self.error(f"Invalid boolean {value}")
            return bool(value)
        if tag == b"i":
            return self.read_int(b";")
        if tag == b"d":
            return self.decode_float()
        if tag == b"s":
            value = self.read_string_body(self.read_length())
            self.expect(b";")
            return value
        if tag == b"a":
            count = self.read_length()
            return self.decode_members(count, keys=(b"i", b"s"))
        if tag == b"O":
            class_name = self.read_string_body(self.read_length())
            self.expect(b":")
            count = self.read_length()
            properties = self.decode_members(count, keys=(b"s",))
            if self.object_hook is not None:
                return self.object_hook(class_name, properties)
            return PhpObject(class_name, properties)
        raise self.error(f"Unsupported token {tag!r}")

    def decode_float(self) -> float:
        chunk = self.read_until(b";")
        if not _FLOAT_RE.fullmatch(chunk):
            raise self.error(f"Invalid float {chunk!r}")
        if chunk == b"INF":
            return math.inf
        if chunk == b"-INF":
            return -math.inf
        if chunk in (b"NAN", b"-NAN"):
            return math.nan
        return float(chunk)

    def decode_members(self, count: int, keys: tuple[bytes, ...]) -> dict[Any, Any]:
        self.expect(b"{")
        members: dict[Any, Any] = {}
        for _ in range(count):
            key_tag = self.data[self.pos:self.pos + 1]
            if key_tag not in keys:
                raise self.error(f"Invalid member key tag {key_tag!r}")
            key = self.decode()
            members[key] = self.decode()
        self.expect(b"}")
        return members


def loads(
    data: bytes | str,
    object_hook: Optional[ObjectHook] = None,
    encoding: str = "utf-8",
) -> Any:
    """
    Decode a serialized value.

    Args:
        data: Serialized bytes (str input is encoded with ``encoding``)
        object_hook: Called as ``object_hook(class_name, properties)`` for
            every object, innermost first. Defaults to building PhpObject.
        encoding: Text encoding of string values

    Returns:
        The decoded value. Arrays become dicts in serialization order.

    Raises:
        UnserializeError: If the data is malformed or has trailing bytes
    """
    if isinstance(data, str):
        data = data.encode(encoding)

    decoder = _Decoder(data, object_hook, encoding)
    value = decoder.decode()
    if decoder.pos != len(data):
        raise decoder.error("Trailing data after serialized value")
    return value


def _dump_float(value: float) -> bytes:
    if math.isnan(value):
        return b"d:NAN;"
    if math.isinf(value):
        return b"d:INF;" if value > 0 else b"d:-INF;"
    if value.is_integer() and abs(value) < 1e15:
        return b"d:%d;" % int(value)
    return b"d:" + repr(value).replace("e", "E").encode("ascii") + b";"


def _dump_string(raw: bytes) -> bytes:
    return b's:%d:"%s";' % (len(raw), raw)


def _dump(value: Any, encoding: str, out: list[bytes]) -> None:
    if value is None:
        out.append(b"N;")
    elif isinstance(value, bool):
        out.append(b"b:1;" if value else b"b:0;")
    elif isinstance(value, int):
        out.append(b"i:%d;" % value)
    elif isinstance(value, float):
        out.append(_dump_float(value))
    elif isinstance(value, str):
        out.append(_dump_string(value.encode(encoding)))
    elif isinstance(value, bytes):
        out.append(_dump_string(value))
    elif isinstance(value, (list, tuple)):
        _dump(dict(enumerate(value)), encoding, out)
    elif isinstance(value, dict):
        out.append(b"a:%d:{" % len(value))
        for key, item in value.items():
            if isinstance(key, bool) or not isinstance(key, (int, str)):
                raise TypeError(f"Array keys must be int or str, got {type(key).__name__}")
            _dump(key, encoding, out)
            _dump(item, encoding, out)
        out.append(b"}")
    elif isinstance(value, PhpObject):
        class_name = value.class_name.encode(encoding)
        out.append(b'O:%d:"%s":%d:{' % (len(class_name), class_name, len(value.properties)))
        for name, item in value.properties.items():
            _dump(name, encoding, out)
            _dump(item, encoding, out)
        out.append(b"}")
    else:
        raise TypeError(f"Cannot serialize {type(value).__name__}")


def dumps(value: Any, encoding: str = "utf-8") -> bytes:
    """Serialize a value (None, bool, int, float, str, bytes, list, dict, PhpObject)."""
    out: list[bytes] = []
    _dump(value, encoding, out)
    return b"".join(out)
