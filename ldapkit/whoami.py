"""The "Who Am I?" extended operation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ldapkit.errors import LDAPError, ResultCode, raise_for_result
from ldapkit.packet import (
    Application,
    ClassType,
    Packet,
    TagType,
    build_request,
    new_constructed,
    new_string,
)

WHO_AM_I_OID = "1.3.6.1.4.1.4203.1.11.3"
_RESPONSE_VALUE_TAG = 11


@dataclass
class WhoAmIResult:
    """The authorization identity the server reports."""

    authz_id: str = ""


def _append_who_am_i(envelope: Packet) -> None:
    request = new_constructed(
        ClassType.APPLICATION,
        Application.EXTENDED_REQUEST,
        "Who Am I? Extended Operation",
    )
    request.append_child(
        new_string(
            ClassType.CONTEXT,
            TagType.PRIMITIVE,
            0,
            WHO_AM_I_OID,
            "Extended Request Name: Who Am I? OID",
        )
    )
    envelope.append_child(request)


def build_who_am_i_request(message_id: int) -> Packet:
    """Build the LDAPMessage for a Who Am I? request.

    Controls, if any, may be appended to the returned envelope.
    """
    return build_request(message_id, _append_who_am_i)


def parse_who_am_i_response(packet: Optional[Packet]) -> WhoAmIResult:
    """Extract the authzId from an extended response, raising on failure."""
    if packet is None:
        raise LDAPError(ResultCode.ERROR_NETWORK, "ldap: could not retrieve message")
    response = packet.children[1]
    if response.tag != Application.EXTENDED_RESPONSE:
        raise LDAPError(
            ResultCode.ERROR_UNEXPECTED_RESPONSE,
            f"Unexpected Response: {response.tag}",
        )
    raise_for_result(packet)

    result = WhoAmIResult()
    for child in response.children:
        if child.tag == _RESPONSE_VALUE_TAG:
            result.authz_id = bytes(child.data).decode("utf-8", errors="replace")
    return result