"""BER packets as used by the LDAP wire protocol."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union


class ClassType(enum.IntEnum):
    """Class bits of a BER identifier octet."""

    UNIVERSAL = 0x00
    APPLICATION = 0x40
    CONTEXT = 0x80
    PRIVATE = 0xC0


class TagType(enum.IntEnum):
    """Primitive/constructed bit of a BER identifier octet."""

    PRIMITIVE = 0x00
    CONSTRUCTED = 0x20


class Tag(enum.IntEnum):
    """Universal tag numbers."""

    EOC = 0
    BOOLEAN = 1
    INTEGER = 2
    BIT_STRING = 3
    OCTET_STRING = 4
    NULL = 5
    OBJECT_IDENTIFIER = 6
    OBJECT_DESCRIPTOR = 7
    EXTERNAL = 8
    REAL = 9
    ENUMERATED = 10
    EMBEDDED_PDV = 11
    UTF8_STRING = 12
    RELATIVE_OID = 13
    SEQUENCE = 16
    SET = 17
    NUMERIC_STRING = 18
    PRINTABLE_STRING = 19
    T61_STRING = 20
    VIDEOTEX_STRING = 21
    IA5_STRING = 22
    UTC_TIME = 23
    GENERALIZED_TIME = 24
    GRAPHIC_STRING = 25
    VISIBLE_STRING = 26
    GENERAL_STRING = 27
    UNIVERSAL_STRING = 28
    CHARACTER_STRING = 29
    BMP_STRING = 30


class Application(enum.IntEnum):
    """LDAP protocol operation tags (application class)."""

    BIND_REQUEST = 0
    BIND_RESPONSE = 1
    UNBIND_REQUEST = 2
    SEARCH_REQUEST = 3
    SEARCH_RESULT_ENTRY = 4
    SEARCH_RESULT_DONE = 5
    MODIFY_REQUEST = 6
    MODIFY_RESPONSE = 7
    ADD_REQUEST = 8
    ADD_RESPONSE = 9
    DEL_REQUEST = 10
    DEL_RESPONSE = 11
    MODIFY_DN_REQUEST = 12
    MODIFY_DN_RESPONSE = 13
    COMPARE_REQUEST = 14
    COMPARE_RESPONSE = 15
    ABANDON_REQUEST = 16
    SEARCH_RESULT_REFERENCE = 19
    EXTENDED_REQUEST = 23
    EXTENDED_RESPONSE = 24
    INTERMEDIATE_RESPONSE = 25


class PacketError(ValueError):
    """Raised when bytes do not form a valid BER packet."""


_STRING_TAGS = frozenset(
    {
        Tag.OCTET_STRING,
        Tag.UTF8_STRING,
        Tag.NUMERIC_STRING,
        Tag.PRINTABLE_STRING,
        Tag.T61_STRING,
        Tag.VIDEOTEX_STRING,
        Tag.IA5_STRING,
        Tag.UTC_TIME,
        Tag.GENERALIZED_TIME,
        Tag.GRAPHIC_STRING,
        Tag.VISIBLE_STRING,
        Tag.GENERAL_STRING,
    }
)


@dataclass
class Packet:
    """A BER element: either primitive with data, or constructed with children."""

    class_type: ClassType = ClassType.UNIVERSAL
    tag_type: TagType = TagType.PRIMITIVE
    tag: int = 0
    value: Any = None
    data: bytes = b""
    description: str = ""
    children: list = field(default_factory=list)

    @property
    def byte_value(self) -> bytes:
        """The raw content octets of a primitive packet."""
        return self.data

    def append_child(self, child: "Packet") -> None:
        """Append a child element to this packet."""
        self.children.append(child)

    def to_bytes(self) -> bytes:
        """Encode this packet and its children as BER."""
        if self.tag_type == TagType.CONSTRUCTED:
            content = b"".join(child.to_bytes() for child in self.children)
        else:
            content = bytes(self.data)
        return (
            _encode_identifier(self.class_type, self.tag_type, self.tag)
            + _encode_length(len(content))
            + content
        )


def _encode_identifier(class_type: int, tag_type: int, tag: int) -> bytes:
    if tag < 0:
        raise PacketError(f"invalid tag number {tag}")
    first = int(class_type) | int(tag_type)
    if tag < 0x1F:
        return bytes([first | tag])
    digits = []
    while True:
        digits.append(tag & 0x7F)
        tag >>= 7
        if not tag:
            break
    digits.reverse()
    return bytes([first | 0x1F, *(d | 0x80 for d in digits[:-1]), digits[-1]])


def _encode_length(length: int) -> bytes:
    if length < 0x80:
        return bytes([length])
    body = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([0x80 | len(body)]) + body


def _encode_integer(value: int) -> bytes:
    bits = value.bit_length() if value >= 0 else (~value).bit_length()
    return value.to_bytes(bits // 8 + 1, "big", signed=True)


def _read_length(data: bytes, offset: int, limit: int) -> tuple[int, int]:
    if offset >= limit:
        raise PacketError("unexpected end of data reading length")
    first = data[offset]
    offset += 1
    if first < 0x80:
        return first, offset
    if first == 0x80:
        raise PacketError("indefinite length is not supported")
    count = first & 0x7F
    if count > 8:
        raise PacketError("length too long")
    if offset + count > limit:
        raise PacketError("unexpected end of data reading length")
    return int.from_bytes(data[offset : offset + count], "big"), offset + count


def _decode_value(class_type: ClassType, tag: int, content: bytes) -> Any:
    if class_type != ClassType.UNIVERSAL:
        return None
    if tag == Tag.BOOLEAN:
        return any(content)
    if tag in (Tag.INTEGER, Tag.ENUMERATED):
        return int.from_bytes(content, "big", signed=True)
    if tag in _STRING_TAGS:
        return content.decode("utf-8", errors="replace")
    if tag == Tag.NULL:
        return None
    return bytes(content)


def _read_packet(data: bytes, offset: int, limit: int) -> tuple[Packet, int]:
    if offset >= limit:
        raise PacketError("unexpected end of data reading identifier")
    first = data[offset]
    offset += 1
    class_type = ClassType(first & 0xC0)
    tag_type = TagType(first & 0x20)
    tag = first & 0x1F
    if tag == 0x1F:
        tag = 0
        while True:
            if offset >= limit:
                raise PacketError("unexpected end of data reading tag")
            octet = data[offset]
            offset += 1
            tag = (tag << 7) | (octet & 0x7F)
            if not octet & 0x80:
                break
    length, offset = _read_length(data, offset, limit)
    end = offset + length
    if end > limit:
        raise PacketError("packet length exceeds available data")
    packet = Packet(class_type=class_type, tag_type=tag_type, tag=tag)
    if tag_type == TagType.CONSTRUCTED:
        position = offset
        while position < end:
            child, position = _read_packet(data, position, end)
            packet.append_child(child)
    else:
        content = data[offset:end]
        packet.data = content
        packet.value = _decode_value(class_type, tag, content)
    return packet, end


def decode_packet(data: Union[bytes, bytearray, memoryview]) -> Packet:
    """Decode exactly one BER packet from ``data``."""
    raw = bytes(data)
    packet, end = _read_packet(raw, 0, len(raw))
    if end != len(raw):
        raise PacketError(f"{len(raw) - end} trailing bytes after packet")
    return packet


def new_string(
    class_type: ClassType,
    tag_type: TagType,
    tag: int,
    value: Union[str, bytes],
    description: str,
) -> Packet:
    """Create a primitive packet holding a string (or raw bytes)."""
    if isinstance(value, str):
        data = value.encode("utf-8")
        text = value
    else:
        data = bytes(value)
        text = data.decode("utf-8", errors="replace")
    return Packet(class_type, tag_type, int(tag), text, data, description)


def new_integer(
    class_type: ClassType, tag_type: TagType, tag: int, value: int, description: str
) -> Packet:
    """Create a primitive packet holding a two's-complement integer."""
    number = int(value)
    return Packet(
        class_type, tag_type, int(tag), number, _encode_integer(number), description
    )


def new_boolean(
    class_type: ClassType, tag_type: TagType, tag: int, value: bool, description: str
) -> Packet:
    """Create a primitive packet holding a boolean encoded as 1 or 0."""
    flag = bool(value)
    return Packet(
        class_type,
        tag_type,
        int(tag),
        flag,
        b"\x01" if flag else b"\x00",
        description,
    )


def new_constructed(class_type: ClassType, tag: int, description: str) -> Packet:
    """Create an empty constructed packet."""
    return Packet(class_type, TagType.CONSTRUCTED, int(tag), description=description)


def new_sequence(description: str) -> Packet:
    """Create an empty universal SEQUENCE."""
    return new_constructed(ClassType.UNIVERSAL, Tag.SEQUENCE, description)


def build_request(message_id: int, request: Any) -> Packet:
    """Wrap a request in an LDAPMessage envelope carrying ``message_id``.

    ``request`` is either an object with an ``append_to(envelope)`` method or a
    callable taking the envelope.
    """
    envelope = new_sequence("LDAP Request")
    envelope.append_child(
        new_integer(
            ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.INTEGER, message_id, "MessageID"
        )
    )
    append: Optional[Callable[[Packet], Any]] = getattr(request, "append_to", None)
    if append is None:
        if not callable(request):
            raise TypeError("request must have append_to() or be callable")
        append = request
    append(envelope)
    return envelope