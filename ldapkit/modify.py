"""Modify requests: add, delete, replace and increment attribute values."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Iterable

from ldapkit.errors import raise_for_result
from ldapkit.packet import (
    Application,
    ClassType,
    Packet,
    Tag,
    TagType,
    new_constructed,
    new_integer,
    new_string,
)
from ldapkit.search import _encode_controls

logger = logging.getLogger(__name__)


class ModifyOperation(enum.IntEnum):
    """Change operation choices of a modify request."""

    ADD = 0
    DELETE = 1
    REPLACE = 2
    INCREMENT = 3


@dataclass
class PartialAttribute:
    """An attribute type with the values a change applies to."""

    type: str
    vals: list = field(default_factory=list)

    def encode(self) -> Packet:
        """Encode as a PartialAttribute SEQUENCE."""
        seq = new_constructed(ClassType.UNIVERSAL, Tag.SEQUENCE, "PartialAttribute")
        seq.append_child(
            new_string(
                ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.OCTET_STRING, self.type, "Type"
            )
        )
        values = new_constructed(ClassType.UNIVERSAL, Tag.SET, "AttributeValue")
        for value in self.vals:
            values.append_child(
                new_string(
                    ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.OCTET_STRING, value, "Vals"
                )
            )
        seq.append_child(values)
        return seq


@dataclass
class Change:
    """One change of a modify request."""

    operation: ModifyOperation
    modification: PartialAttribute

    def encode(self) -> Packet:
        """Encode as a Change SEQUENCE."""
        change = new_constructed(ClassType.UNIVERSAL, Tag.SEQUENCE, "Change")
        change.append_child(
            new_integer(
                ClassType.UNIVERSAL,
                TagType.PRIMITIVE,
                Tag.ENUMERATED,
                int(self.operation),
                "Operation",
            )
        )
        change.append_child(self.modification.encode())
        return change


@dataclass
class ModifyRequest:
    """A request to modify the attributes of the entry named by ``dn``."""

    dn: str
    changes: list = field(default_factory=list)
    controls: list = field(default_factory=list)

    def _append_change(
        self, operation: ModifyOperation, attr_type: str, attr_vals: Iterable[str]
    ) -> None:
        self.changes.append(
            Change(operation, PartialAttribute(type=attr_type, vals=list(attr_vals)))
        )

    def add(self, attr_type: str, attr_vals: Iterable[str]) -> None:
        """Queue adding ``attr_vals`` to the attribute."""
        self._append_change(ModifyOperation.ADD, attr_type, attr_vals)

    def delete(self, attr_type: str, attr_vals: Iterable[str]) -> None:
        """Queue deleting ``attr_vals`` (or the whole attribute if empty)."""
        self._append_change(ModifyOperation.DELETE, attr_type, attr_vals)

    def replace(self, attr_type: str, attr_vals: Iterable[str]) -> None:
        """Queue replacing the attribute's values with ``attr_vals``."""
        self._append_change(ModifyOperation.REPLACE, attr_type, attr_vals)

    def increment(self, attr_type: str, attr_val: str) -> None:
        """Queue incrementing the attribute by ``attr_val``."""
        self._append_change(ModifyOperation.INCREMENT, attr_type, [attr_val])

    def append_to(self, envelope: Packet) -> None:
        """Encode the request (and its controls) into ``envelope``."""
        pkt = new_constructed(
            ClassType.APPLICATION, Application.MODIFY_REQUEST, "Modify Request"
        )
        pkt.append_child(
            new_string(
                ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.OCTET_STRING, self.dn, "DN"
            )
        )
        changes = new_constructed(ClassType.UNIVERSAL, Tag.SEQUENCE, "Changes")
        for change in self.changes:
            changes.append_child(change.encode())
        pkt.append_child(changes)

        envelope.append_child(pkt)
        if self.controls:
            envelope.append_child(_encode_controls(self.controls))


def check_modify_response(packet: Packet) -> None:
    """Raise LDAPError if a modify response reports failure.

    A response of another kind is logged and otherwise ignored.
    """
    tag = packet.children[1].tag
    if tag == Application.MODIFY_RESPONSE:
        raise_for_result(packet)
    else:
        logger.warning("Unexpected Response: %d", tag)