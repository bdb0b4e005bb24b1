import pytest

from ldapkit.errors import LDAPError, ResultCode
from ldapkit.packet import (
    Application,
    ClassType,
    Tag,
    TagType,
    decode_packet,
    new_constructed,
    new_integer,
    new_sequence,
    new_string,
)
from ldapkit.whoami import (
    WHO_AM_I_OID,
    WhoAmIResult,
    build_who_am_i_request,
    parse_who_am_i_response,
)


def _response(tag, code, authz=None, diagnostic=""):
    body = new_constructed(ClassType.APPLICATION, tag, "Extended Response")
    body.append_child(
        new_integer(ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.ENUMERATED, code, "code")
    )
    body.append_child(
        new_string(ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.OCTET_STRING, "", "dn")
    )
    body.append_child(
        new_string(
            ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.OCTET_STRING, diagnostic, "diag"
        )
    )
    if authz is not None:
        body.append_child(
            new_string(ClassType.CONTEXT, TagType.PRIMITIVE, 11, authz, "Value")
        )
    packet = new_sequence("LDAPMessage")
    packet.append_child(
        new_integer(ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.INTEGER, 5, "id")
    )
    packet.append_child(body)
    return packet


def test_request_structure():
    envelope = decode_packet(build_who_am_i_request(5).to_bytes())
    assert envelope.children[0].value == 5
    body = envelope.children[1]
    assert body.class_type == ClassType.APPLICATION
    assert body.tag == Application.EXTENDED_REQUEST
    name = body.children[0]
    assert name.class_type == ClassType.CONTEXT
    assert name.tag == 0
    assert name.data == WHO_AM_I_OID.encode()
    assert len(envelope.children) == 2


def test_request_carries_rfc4532_oid():
    envelope = decode_packet(build_who_am_i_request(1).to_bytes())
    assert envelope.children[1].children[0].data == b"1.3.6.1.4.1.4203.1.11.3"


def test_parse_authz_id():
    authz = "dn:uid=someone,dc=example,dc=org"
    raw = _response(Application.EXTENDED_RESPONSE, 0, authz).to_bytes()
    assert parse_who_am_i_response(decode_packet(raw)) == WhoAmIResult(authz)


def test_parse_anonymous_gives_empty():
    result = parse_who_am_i_response(_response(Application.EXTENDED_RESPONSE, 0))
    assert result.authz_id == ""


def test_parse_unexpected_response():
    packet = _response(Application.BIND_RESPONSE, 0)
    with pytest.raises(LDAPError) as info:
        parse_who_am_i_response(packet)
    assert info.value.result_code == ResultCode.ERROR_UNEXPECTED_RESPONSE
    assert info.value.message == f"Unexpected Response: {int(Application.BIND_RESPONSE)}"


def test_parse_none():
    with pytest.raises(LDAPError) as info:
        parse_who_am_i_response(None)
    assert info.value.result_code == ResultCode.ERROR_NETWORK
    assert info.value.message == "ldap: could not retrieve message"