"""
Reinterpret serialized objects of unknown classes as generic records.

The legacy task class no longer exists, so its blobs cannot be decoded into
it. Instead the blob is rewritten textually before decoding:

1. Every visibility-mangled property name is reduced to its bare name.
   Private properties are serialized as s:<n>:"\\0<DeclaringClass>\\0<name>"
   and protected ones as s:<n>:"\\0*\\0<name>"; both become s:<len>:"<name>".
2. Every object tag O:<n>:"<Class>" is replaced by the target class.

Both rewrites run over the whole blob, so nested objects (the schedule) are
handled by the same pass. The result is then decoded once.
"""

import logging
import re

from schedmigrate.errors import UnserializeError
from schedmigrate.schemas import GenericRecord
from schedmigrate.serialized import loads

logger = logging.getLogger(__name__)

GENERIC_CLASS = "stdClass"

_MANGLED_PROPERTY_RE = re.compile(rb's:\d+:"\x00([^\x00]+)\x00([^"]+)"')
_OBJECT_TAG_RE = re.compile(rb'O:\d+:"[^"]+"')


def unmangle_properties(blob: bytes) -> bytes:
    """Rewrite private/protected property names to bare names."""
    def replace(match: re.Match) -> bytes:
        name = match.group(2)
        return b's:%d:"%s"' % (len(name), name)

    return _MANGLED_PROPERTY_RE.sub(replace, blob)


def retag_objects(blob: bytes, class_name: str = GENERIC_CLASS) -> bytes:
    """Replace every object's class tag with class_name."""
    encoded = class_name.encode("utf-8")
    tag = b'O:%d:"%s"' % (len(encoded), encoded)
    return _OBJECT_TAG_RE.sub(lambda _match: tag, blob)


def cast_to_class(
    blob: bytes | str,
    class_name: str = GENERIC_CLASS,
    encoding: str = "utf-8",
) -> GenericRecord:
    """
    Decode a serialized object of any class as a GenericRecord.

    Args:
        blob: Serialized object (str is encoded with ``encoding``)
        class_name: Class every object is retagged as
        encoding: Text encoding of the blob's strings

    Returns:
        GenericRecord whose class_name is ``class_name``. Nested objects are
        GenericRecords too.

    Raises:
        UnserializeError: If the rewritten blob cannot be decoded, or does
            not hold an object at the top level
    """
    if isinstance(blob, str):
        blob = blob.encode(encoding)

    rewritten = retag_objects(unmangle_properties(blob), class_name)
    value = loads(rewritten, object_hook=GenericRecord, encoding=encoding)

    if not isinstance(value, GenericRecord):
        raise UnserializeError(
            f"Expected a serialized object, got {type(value).__name__}"
        )

    logger.debug(f"Reinterpreted {len(blob)} byte blob as {class_name} with {len(value)} fields")
    return value
