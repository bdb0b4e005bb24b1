"""Search requests, search result entries and reading of search responses."""

from __future__ import annotations

import enum
import sys
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence, TextIO

from ldapkit.errors import LDAPError, ResultCode, raise_for_result
from ldapkit.filter import compile_filter
from ldapkit.packet import (
    Application,
    ClassType,
    Packet,
    Tag,
    TagType,
    new_boolean,
    new_constructed,
    new_integer,
    new_string,
)


class Scope(enum.IntEnum):
    """Search scope choices."""

    BASE_OBJECT = 0
    SINGLE_LEVEL = 1
    WHOLE_SUBTREE = 2

    @property
    def description(self) -> str:
        """Human-readable name of this scope."""
        return _SCOPE_DESCRIPTIONS[self]


_SCOPE_DESCRIPTIONS = {
    Scope.BASE_OBJECT: "Base Object",
    Scope.SINGLE_LEVEL: "Single Level",
    Scope.WHOLE_SUBTREE: "Whole Subtree",
}


class DerefAliases(enum.IntEnum):
    """Alias dereferencing choices."""

    NEVER = 0
    IN_SEARCHING = 1
    FINDING_BASE_OBJ = 2
    ALWAYS = 3

    @property
    def description(self) -> str:
        """Human-readable name of this choice."""
        return _DEREF_DESCRIPTIONS[self]


_DEREF_DESCRIPTIONS = {
    DerefAliases.NEVER: "NeverDerefAliases",
    DerefAliases.IN_SEARCHING: "DerefInSearching",
    DerefAliases.FINDING_BASE_OBJ: "DerefFindingBaseObj",
    DerefAliases.ALWAYS: "DerefAlways",
}


def _out(file: Optional[TextIO]) -> TextIO:
    return sys.stdout if file is None else file


@dataclass
class EntryAttribute:
    """A single attribute of an entry with its string and raw values."""

    name: str
    values: list = field(default_factory=list)
    byte_values: list = field(default_factory=list)

    def _render(self) -> str:
        return f"{self.name}: [{' '.join(self.values)}]"

    def print(self, file: Optional[TextIO] = None) -> None:
        """Write a human-readable line describing this attribute."""
        print(self._render(), file=_out(file))

    def pretty_print(self, indent: int = 0, file: Optional[TextIO] = None) -> None:
        """Write a human-readable line indented by ``indent`` spaces."""
        print(" " * indent + self._render(), file=_out(file))


def new_entry_attribute(name: str, values: Iterable[str]) -> EntryAttribute:
    """Create an attribute whose raw values are the UTF-8 encoded ``values``."""
    texts = list(values)
    return EntryAttribute(
        name=name,
        values=texts,
        byte_values=[value.encode("utf-8") for value in texts],
    )


@dataclass
class Entry:
    """A single search result entry."""

    dn: str
    attributes: list = field(default_factory=list)

    def _find(self, attribute: str, fold: bool) -> Optional[EntryAttribute]:
        wanted = attribute.casefold() if fold else attribute
        for attr in self.attributes:
            name = attr.name.casefold() if fold else attr.name
            if name == wanted:
                return attr
        return None

    def get_attribute_values(self, attribute: str) -> list:
        """Values of the named attribute, or an empty list."""
        attr = self._find(attribute, fold=False)
        return attr.values if attr is not None else []

    def get_equal_fold_attribute_values(self, attribute: str) -> list:
        """Values of the named attribute, matched case-insensitively."""
        attr = self._find(attribute, fold=True)
        return attr.values if attr is not None else []

    def get_raw_attribute_values(self, attribute: str) -> list:
        """Raw byte values of the named attribute, or an empty list."""
        attr = self._find(attribute, fold=False)
        return attr.byte_values if attr is not None else []

    def get_equal_fold_raw_attribute_values(self, attribute: str) -> list:
        """Raw byte values of the named attribute, matched case-insensitively."""
        attr = self._find(attribute, fold=True)
        return attr.byte_values if attr is not None else []

    def get_attribute_value(self, attribute: str) -> str:
        """First value of the named attribute, or an empty string."""
        values = self.get_attribute_values(attribute)
        return values[0] if values else ""

    def get_equal_fold_attribute_value(self, attribute: str) -> str:
        """First value of the named attribute matched case-insensitively, or ''."""
        values = self.get_equal_fold_attribute_values(attribute)
        return values[0] if values else ""

    def get_raw_attribute_value(self, attribute: str) -> bytes:
        """First raw value of the named attribute, or empty bytes."""
        values = self.get_raw_attribute_values(attribute)
        return values[0] if values else b""

    def get_equal_fold_raw_attribute_value(self, attribute: str) -> bytes:
        """First raw value of the named attribute matched case-insensitively."""
        values = self.get_equal_fold_raw_attribute_values(attribute)
        return values[0] if values else b""

    def print(self, file: Optional[TextIO] = None) -> None:
        """Write a human-readable description of the entry."""
        out = _out(file)
        print(f"DN: {self.dn}", file=out)
        for attr in self.attributes:
            attr.print(out)

    def pretty_print(self, indent: int = 0, file: Optional[TextIO] = None) -> None:
        """Write a human-readable, indented description of the entry."""
        out = _out(file)
        print(f"{' ' * indent}DN: {self.dn}", file=out)
        for attr in self.attributes:
            attr.pretty_print(indent + 2, out)


def new_entry(dn: str, attributes: Mapping[str, Sequence[str]]) -> Entry:
    """Create an entry whose attributes are ordered by name."""
    return Entry(
        dn=dn,
        attributes=[
            new_entry_attribute(name, attributes[name]) for name in sorted(attributes)
        ],
    )


@dataclass
class SearchResult:
    """The entries, referrals and controls a search returned."""

    entries: list = field(default_factory=list)
    referrals: list = field(default_factory=list)
    controls: list = field(default_factory=list)

    def print(self, file: Optional[TextIO] = None) -> None:
        """Write a human-readable description of every entry."""
        for entry in self.entries:
            entry.print(file)

    def pretty_print(self, indent: int = 0, file: Optional[TextIO] = None) -> None:
        """Write an indented human-readable description of every entry."""
        for entry in self.entries:
            entry.pretty_print(indent, file)


def _encode_control(control: Any) -> Packet:
    if isinstance(control, Packet):
        return control
    encode = getattr(control, "encode", None)
    if encode is None:
        raise TypeError("control must be a Packet or have an encode() method")
    return encode()


def _encode_controls(controls: Iterable[Any]) -> Packet:
    packet = new_constructed(ClassType.CONTEXT, 0, "Controls")
    for control in controls:
        packet.append_child(_encode_control(control))
    return packet


@dataclass
class SearchRequest:
    """A search request to send to the server.

    Controls are either ready-made packets or objects with an ``encode()``
    method returning one.
    """

    base_dn: str
    scope: int = Scope.BASE_OBJECT
    deref_aliases: int = DerefAliases.NEVER
    size_limit: int = 0
    time_limit: int = 0
    types_only: bool = False
    filter: str = "(objectClass=*)"
    attributes: list = field(default_factory=list)
    controls: list = field(default_factory=list)

    def append_to(self, envelope: Packet) -> None:
        """Encode the request (and its controls) into ``envelope``."""
        universal, primitive = ClassType.UNIVERSAL, TagType.PRIMITIVE
        pkt = new_constructed(
            ClassType.APPLICATION, Application.SEARCH_REQUEST, "Search Request"
        )
        pkt.append_child(
            new_string(universal, primitive, Tag.OCTET_STRING, self.base_dn, "Base DN")
        )
        pkt.append_child(
            new_integer(universal, primitive, Tag.ENUMERATED, self.scope, "Scope")
        )
        pkt.append_child(
            new_integer(
                universal, primitive, Tag.ENUMERATED, self.deref_aliases, "Deref Aliases"
            )
        )
        pkt.append_child(
            new_integer(universal, primitive, Tag.INTEGER, self.size_limit, "Size Limit")
        )
        pkt.append_child(
            new_integer(universal, primitive, Tag.INTEGER, self.time_limit, "Time Limit")
        )
        pkt.append_child(
            new_boolean(universal, primitive, Tag.BOOLEAN, self.types_only, "Types Only")
        )
        pkt.append_child(compile_filter(self.filter))
        attributes = new_constructed(universal, Tag.SEQUENCE, "Attributes")
        for attribute in self.attributes:
            attributes.append_child(
                new_string(universal, primitive, Tag.OCTET_STRING, attribute, "Attribute")
            )
        pkt.append_child(attributes)

        envelope.append_child(pkt)
        if self.controls:
            envelope.append_child(_encode_controls(self.controls))


def _read_entry(response: Packet) -> Entry:
    entry = Entry(dn=response.children[0].value)
    for child in response.children[1].children:
        attr = EntryAttribute(name=child.children[0].value)
        for value in child.children[1].children:
            attr.values.append(value.value)
            attr.byte_values.append(bytes(value.data))
        entry.attributes.append(attr)
    return entry


def read_search_result(packets: Iterable[Packet]) -> SearchResult:
    """Collect the responses of one search until its SearchResultDone.

    Raises LDAPError when the server reports an error or the responses run
    out before the search is done. Controls of the final message are kept as
    packets.
    """
    result = SearchResult()
    for packet in packets:
        if packet is None:
            raise LDAPError(ResultCode.ERROR_NETWORK, "ldap: could not retrieve message")
        response = packet.children[1]
        if response.tag == Application.SEARCH_RESULT_ENTRY:
            result.entries.append(_read_entry(response))
        elif response.tag == Application.SEARCH_RESULT_DONE:
            raise_for_result(packet)
            if len(packet.children) == 3:
                result.controls.extend(packet.children[2].children)
            return result
        elif response.tag == Application.SEARCH_RESULT_REFERENCE:
            result.referrals.append(response.children[0].value)
    raise LDAPError(ResultCode.ERROR_NETWORK, "ldap: response channel closed")