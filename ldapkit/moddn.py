"""Modify DN requests: rename an entry and optionally move it."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ldapkit.errors import raise_for_result
from ldapkit.packet import (
    Application,
    ClassType,
    Packet,
    Tag,
    TagType,
    new_boolean,
    new_constructed,
    new_string,
)
from ldapkit.search import _encode_controls

logger = logging.getLogger(__name__)


@dataclass
class ModifyDNRequest:
    """A request to rename ``dn`` to ``new_rdn``.

    A non-empty ``new_superior`` moves the entry below that DN. To move an
    entry without renaming it, ``new_rdn`` must be the first RDN of ``dn``.
    """

    dn: str
    new_rdn: str
    delete_old_rdn: bool = False
    new_superior: str = ""
    controls: list = field(default_factory=list)

    def append_to(self, envelope: Packet) -> None:
        """Encode the request (and its controls) into ``envelope``."""
        universal, primitive = ClassType.UNIVERSAL, TagType.PRIMITIVE
        pkt = new_constructed(
            ClassType.APPLICATION, Application.MODIFY_DN_REQUEST, "Modify DN Request"
        )
        pkt.append_child(new_string(universal, primitive, Tag.OCTET_STRING, self.dn, "DN"))
        pkt.append_child(
            new_string(universal, primitive, Tag.OCTET_STRING, self.new_rdn, "New RDN")
        )
        if self.delete_old_rdn:
            pkt.append_child(
                new_string(universal, primitive, Tag.BOOLEAN, b"\xff", "Delete old RDN")
            )
        else:
            pkt.append_child(
                new_boolean(universal, primitive, Tag.BOOLEAN, False, "Delete old RDN")
            )
        if self.new_superior:
            pkt.append_child(
                new_string(
                    ClassType.CONTEXT, primitive, 0, self.new_superior, "New Superior"
                )
            )

        envelope.append_child(pkt)
        if self.controls:
            envelope.append_child(_encode_controls(self.controls))


def check_modify_dn_response(packet: Packet) -> None:
    """Raise LDAPError if a modify DN response reports failure.

    A response of another kind is logged and otherwise ignored.
    """
    tag = packet.children[1].tag
    if tag == Application.MODIFY_DN_RESPONSE:
        raise_for_result(packet)
    else:
        logger.warning("Unexpected Response: %d", tag)