"""Compile LDAP search filter strings to BER packets and back."""

from __future__ import annotations

import enum
from typing import Optional, Union

from ldapkit.errors import LDAPError, ResultCode
from ldapkit.packet import (
    ClassType,
    Packet,
    Tag,
    TagType,
    new_boolean,
    new_constructed,
    new_string,
)


class FilterChoice(enum.IntEnum):
    """Context tags of the Filter CHOICE."""

    AND = 0
    OR = 1
    NOT = 2
    EQUALITY_MATCH = 3
    SUBSTRINGS = 4
    GREATER_OR_EQUAL = 5
    LESS_OR_EQUAL = 6
    PRESENT = 7
    APPROX_MATCH = 8
    EXTENSIBLE_MATCH = 9

    @property
    def description(self) -> str:
        """Human-readable name of this filter choice."""
        return _FILTER_DESCRIPTIONS[self]


_FILTER_DESCRIPTIONS = {
    FilterChoice.AND: "And",
    FilterChoice.OR: "Or",
    FilterChoice.NOT: "Not",
    FilterChoice.EQUALITY_MATCH: "Equality Match",
    FilterChoice.SUBSTRINGS: "Substrings",
    FilterChoice.GREATER_OR_EQUAL: "Greater Or Equal",
    FilterChoice.LESS_OR_EQUAL: "Less Or Equal",
    FilterChoice.PRESENT: "Present",
    FilterChoice.APPROX_MATCH: "Approx Match",
    FilterChoice.EXTENSIBLE_MATCH: "Extensible Match",
}


class SubstringChoice(enum.IntEnum):
    """Context tags of the parts of a substrings filter."""

    INITIAL = 0
    ANY = 1
    FINAL = 2

    @property
    def description(self) -> str:
        """Human-readable name of this substring part."""
        return _SUBSTRING_DESCRIPTIONS[self]


_SUBSTRING_DESCRIPTIONS = {
    SubstringChoice.INITIAL: "Substrings Initial",
    SubstringChoice.ANY: "Substrings Any",
    SubstringChoice.FINAL: "Substrings Final",
}


class MatchingRuleAssertion(enum.IntEnum):
    """Context tags of the fields of a MatchingRuleAssertion."""

    MATCHING_RULE = 1
    TYPE = 2
    MATCH_VALUE = 3
    DN_ATTRIBUTES = 4

    @property
    def description(self) -> str:
        """Human-readable name of this field."""
        return _MRA_DESCRIPTIONS[self]


_MRA_DESCRIPTIONS = {
    MatchingRuleAssertion.MATCHING_RULE: "Matching Rule Assertion Matching Rule",
    MatchingRuleAssertion.TYPE: "Matching Rule Assertion Type",
    MatchingRuleAssertion.MATCH_VALUE: "Matching Rule Assertion Match Value",
    MatchingRuleAssertion.DN_ATTRIBUTES: "Matching Rule Assertion DN Attributes",
}

_SYMBOL_ANY = b"*"
_RUNE_ERROR = 0xFFFD
_ESCAPED_BYTES = frozenset(b"\x00()*\\")
_HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")


class _State(enum.Enum):
    ATTR = enum.auto()
    MATCHING_RULE = enum.auto()
    CONDITION = enum.auto()


def _compile_error(message: str) -> LDAPError:
    return LDAPError(ResultCode.ERROR_FILTER_COMPILE, message)


def _as_bytes(value: Union[str, bytes, bytearray, memoryview]) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8", errors="surrogateescape")
    return bytes(value)


def _decode_rune(data: bytes, pos: int) -> tuple[int, int]:
    """Decode one UTF-8 character at ``pos``; invalid input yields (U+FFFD, 1)."""
    if pos >= len(data):
        return _RUNE_ERROR, 0
    first = data[pos]
    if first < 0x80:
        return first, 1
    if 0xC2 <= first <= 0xDF:
        size = 2
    elif 0xE0 <= first <= 0xEF:
        size = 3
    elif 0xF0 <= first <= 0xF4:
        size = 4
    else:
        return _RUNE_ERROR, 1
    try:
        char = data[pos : pos + size].decode("utf-8")
    except UnicodeDecodeError:
        return _RUNE_ERROR, 1
    return ord(char), size


def _format_byte(value: int) -> str:
    char = chr(value)
    if char.isprintable():
        return f"U+{value:04X} '{char}'"
    return f"U+{value:04X}"


def escape_filter(value: Union[str, bytes]) -> str:
    """Escape NUL, parentheses, '*', backslash and non-ASCII bytes as \\xx."""
    return "".join(
        f"\\{byte:02x}" if byte > 0x7F or byte in _ESCAPED_BYTES else chr(byte)
        for byte in _as_bytes(value)
    )


def decode_escaped_symbols(src: Union[str, bytes]) -> bytes:
    """Turn ``ABC\\xx\\xx`` filter text into the literal bytes it stands for."""
    data = _as_bytes(src)
    out = bytearray()
    pos = 0
    offset = 0
    while pos < len(data):
        rune, size = _decode_rune(data, pos)
        if rune == _RUNE_ERROR:
            raise _compile_error(f"ldap: error reading rune at position {offset}")
        pos += size
        if rune == ord("\\"):
            pair = data[pos : pos + 2]
            if not pair:
                raise _compile_error(
                    "ldap: invalid characters for escape in filter: EOF"
                )
            if len(pair) < 2:
                raise _compile_error("ldap: missing characters for escape in filter")
            pos += 2
            for byte in pair:
                if byte not in _HEX_DIGITS:
                    raise _compile_error(
                        "ldap: invalid characters for escape in filter: "
                        f"invalid byte: {_format_byte(byte)}"
                    )
            out.append(int(pair, 16))
        else:
            out += data[pos - size : pos]
        offset += size
    return bytes(out)


def compile_filter(filter: Union[str, bytes]) -> Packet:
    """Compile a string search filter into its BER packet."""
    data = _as_bytes(filter)
    if not data or data[0] != ord("("):
        raise _compile_error("ldap: filter does not start with an '('")
    try:
        packet, pos = _compile(data, 1)
    except LDAPError:
        raise
    except (IndexError, ValueError, RecursionError) as exc:
        raise _compile_error("ldap: error compiling filter") from exc
    if pos > len(data):
        raise _compile_error("ldap: unexpected end of filter")
    if pos < len(data):
        extra = data[pos:].decode("utf-8", errors="replace")
        raise _compile_error(
            f"ldap: finished compiling filter with extra at end: {extra}"
        )
    return packet


def _compile_set(data: bytes, pos: int, parent: Packet) -> int:
    while pos < len(data) and data[pos] == ord("("):
        child, pos = _compile(data, pos + 1)
        parent.append_child(child)
    if pos == len(data):
        raise _compile_error("ldap: unexpected end of filter")
    return pos + 1


def _compile(data: bytes, pos: int) -> tuple[Packet, int]:
    rune, width = _decode_rune(data, pos)
    if rune == _RUNE_ERROR:
        raise _compile_error(f"ldap: error reading rune at position {pos}")
    if rune == ord("("):
        packet, new_pos = _compile(data, pos + width)
        return packet, new_pos + 1
    if rune in (ord("&"), ord("|")):
        choice = FilterChoice.AND if rune == ord("&") else FilterChoice.OR
        packet = new_constructed(ClassType.CONTEXT, choice, choice.description)
        return packet, _compile_set(data, pos + width, packet)
    if rune == ord("!"):
        packet = new_constructed(
            ClassType.CONTEXT, FilterChoice.NOT, FilterChoice.NOT.description
        )
        child, new_pos = _compile(data, pos + width)
        packet.append_child(child)
        return packet, new_pos
    return _compile_item(data, pos)


_ATTR_OPERATORS = (
    (b">=", FilterChoice.GREATER_OR_EQUAL),
    (b"<=", FilterChoice.LESS_OR_EQUAL),
    (b"~=", FilterChoice.APPROX_MATCH),
)


def _compile_item(data: bytes, pos: int) -> tuple[Packet, int]:
    state = _State.ATTR
    attribute = bytearray()
    matching_rule = bytearray()
    condition = bytearray()
    dn_attributes = False
    choice: Optional[FilterChoice] = None
    new_pos = pos
    width = 0

    while new_pos < len(data):
        rune, width = _decode_rune(data, new_pos)
        if rune == ord(")"):
            break
        if rune == _RUNE_ERROR:
            raise _compile_error(f"ldap: error reading rune at position {new_pos}")

        if state is _State.ATTR:
            if data.startswith(b":dn:=", new_pos):
                choice, dn_attributes, state = (
                    FilterChoice.EXTENSIBLE_MATCH,
                    True,
                    _State.CONDITION,
                )
                new_pos += 5
            elif data.startswith(b":dn:", new_pos):
                choice, dn_attributes, state = (
                    FilterChoice.EXTENSIBLE_MATCH,
                    True,
                    _State.MATCHING_RULE,
                )
                new_pos += 4
            elif data.startswith(b":=", new_pos):
                choice, state = FilterChoice.EXTENSIBLE_MATCH, _State.CONDITION
                new_pos += 2
            elif rune == ord(":"):
                choice, state = FilterChoice.EXTENSIBLE_MATCH, _State.MATCHING_RULE
                new_pos += 1
            elif rune == ord("="):
                choice, state = FilterChoice.EQUALITY_MATCH, _State.CONDITION
                new_pos += 1
            else:
                for operator, operator_choice in _ATTR_OPERATORS:
                    if data.startswith(operator, new_pos):
                        choice, state = operator_choice, _State.CONDITION
                        new_pos += 2
                        break
                else:
                    attribute += data[new_pos : new_pos + width]
                    new_pos += width
        elif state is _State.MATCHING_RULE:
            if data.startswith(b":=", new_pos):
                state = _State.CONDITION
                new_pos += 2
            else:
                matching_rule += data[new_pos : new_pos + width]
                new_pos += width
        else:
            condition += data[new_pos : new_pos + width]
            new_pos += width

    if new_pos == len(data):
        raise _compile_error("ldap: unexpected end of filter")
    if choice is None:
        raise _compile_error("ldap: error parsing filter")

    attr_text = attribute.decode("utf-8")
    cond = bytes(condition)

    if choice is FilterChoice.EXTENSIBLE_MATCH:
        packet = new_constructed(ClassType.CONTEXT, choice, choice.description)
        if matching_rule:
            rule = MatchingRuleAssertion.MATCHING_RULE
            packet.append_child(
                new_string(
                    ClassType.CONTEXT,
                    TagType.PRIMITIVE,
                    rule,
                    matching_rule.decode("utf-8"),
                    rule.description,
                )
            )
        if attribute:
            kind = MatchingRuleAssertion.TYPE
            packet.append_child(
                new_string(
                    ClassType.CONTEXT, TagType.PRIMITIVE, kind, attr_text, kind.description
                )
            )
        match_value = MatchingRuleAssertion.MATCH_VALUE
        packet.append_child(
            new_string(
                ClassType.CONTEXT,
                TagType.PRIMITIVE,
                match_value,
                decode_escaped_symbols(cond),
                match_value.description,
            )
        )
        if dn_attributes:
            dn_field = MatchingRuleAssertion.DN_ATTRIBUTES
            packet.append_child(
                new_boolean(
                    ClassType.CONTEXT,
                    TagType.PRIMITIVE,
                    dn_field,
                    True,
                    dn_field.description,
                )
            )
    elif choice is FilterChoice.EQUALITY_MATCH and cond == _SYMBOL_ANY:
        present = FilterChoice.PRESENT
        packet = new_string(
            ClassType.CONTEXT, TagType.PRIMITIVE, present, attr_text, present.description
        )
    elif choice is FilterChoice.EQUALITY_MATCH and _SYMBOL_ANY in cond:
        substrings = FilterChoice.SUBSTRINGS
        packet = new_constructed(ClassType.CONTEXT, substrings, substrings.description)
        packet.append_child(_octet_string(attr_text, "Attribute"))
        sequence = new_constructed(ClassType.UNIVERSAL, Tag.SEQUENCE, "Substrings")
        parts = cond.split(_SYMBOL_ANY)
        last = len(parts) - 1
        for index, part in enumerate(parts):
            if not part:
                continue
            if index == 0:
                part_tag = SubstringChoice.INITIAL
            elif index == last:
                part_tag = SubstringChoice.FINAL
            else:
                part_tag = SubstringChoice.ANY
            sequence.append_child(
                new_string(
                    ClassType.CONTEXT,
                    TagType.PRIMITIVE,
                    part_tag,
                    decode_escaped_symbols(part),
                    part_tag.description,
                )
            )
        packet.append_child(sequence)
    else:
        value = decode_escaped_symbols(cond)
        packet = new_constructed(ClassType.CONTEXT, choice, choice.description)
        packet.append_child(_octet_string(attr_text, "Attribute"))
        packet.append_child(_octet_string(value, "Condition"))

    return packet, new_pos + width


def _octet_string(value: Union[str, bytes], description: str) -> Packet:
    return new_string(
        ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.OCTET_STRING, value, description
    )


def decompile_filter(packet: Packet) -> str:
    """Render a filter packet back into its string form."""
    try:
        return _decompile(packet)
    except LDAPError:
        raise
    except (IndexError, AttributeError, TypeError, ValueError, RecursionError) as exc:
        raise LDAPError(
            ResultCode.ERROR_FILTER_DECOMPILE, "ldap: error decompiling filter"
        ) from exc


def _text(data: bytes) -> str:
    return bytes(data).decode("utf-8", errors="replace")


_COMPARISON_OPERATORS = {
    FilterChoice.EQUALITY_MATCH: "=",
    FilterChoice.GREATER_OR_EQUAL: ">=",
    FilterChoice.LESS_OR_EQUAL: "<=",
    FilterChoice.APPROX_MATCH: "~=",
}


def _decompile(packet: Packet) -> str:
    parts = ["("]
    tag = packet.tag

    if tag == FilterChoice.AND:
        parts.append("&")
        parts.extend(_decompile(child) for child in packet.children)
    elif tag == FilterChoice.OR:
        parts.append("|")
        parts.extend(_decompile(child) for child in packet.children)
    elif tag == FilterChoice.NOT:
        parts.append("!")
        parts.append(_decompile(packet.children[0]))
    elif tag == FilterChoice.SUBSTRINGS:
        parts.append(_text(packet.children[0].data))
        parts.append("=")
        for index, child in enumerate(packet.children[1].children):
            if index == 0 and child.tag != SubstringChoice.INITIAL:
                parts.append("*")
            parts.append(escape_filter(child.data))
            if child.tag != SubstringChoice.FINAL:
                parts.append("*")
    elif tag in _COMPARISON_OPERATORS:
        parts.append(_text(packet.children[0].data))
        parts.append(_COMPARISON_OPERATORS[FilterChoice(tag)])
        parts.append(escape_filter(packet.children[1].data))
    elif tag == FilterChoice.PRESENT:
        parts.append(_text(packet.data))
        parts.append("=*")
    elif tag == FilterChoice.EXTENSIBLE_MATCH:
        attr = ""
        matching_rule = ""
        value = b""
        dn_attributes = False
        for child in packet.children:
            if child.tag == MatchingRuleAssertion.MATCHING_RULE:
                matching_rule = _text(child.data)
            elif child.tag == MatchingRuleAssertion.TYPE:
                attr = _text(child.data)
            elif child.tag == MatchingRuleAssertion.MATCH_VALUE:
                value = bytes(child.data)
            elif child.tag == MatchingRuleAssertion.DN_ATTRIBUTES:
                if isinstance(child.value, bool):
                    dn_attributes = child.value
                else:
                    dn_attributes = any(child.data)
        parts.append(attr)
        if dn_attributes:
            parts.append(":dn")
        if matching_rule:
            parts.append(":")
            parts.append(matching_rule)
        parts.append(":=")
        parts.append(escape_filter(value))

    parts.append(")")
    return "".join(parts)