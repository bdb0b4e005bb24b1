import io

import pytest

from ldapkit.errors import LDAPError, ResultCode
from ldapkit.filter import FilterChoice
from ldapkit.packet import (
    Application,
    ClassType,
    Tag,
    TagType,
    build_request,
    decode_packet,
    new_constructed,
    new_integer,
    new_sequence,
    new_string,
)
from ldapkit.search import (
    DerefAliases,
    Entry,
    EntryAttribute,
    Scope,
    SearchRequest,
    SearchResult,
    new_entry,
    new_entry_attribute,
    read_search_result,
)

U, P = ClassType.UNIVERSAL, TagType.PRIMITIVE


def _octet(value):
    return new_string(U, P, Tag.OCTET_STRING, value, "")


def _message(response, controls=None):
    msg = new_sequence("LDAPMessage")
    msg.append_child(new_integer(U, P, Tag.INTEGER, 1, "messageID"))
    msg.append_child(response)
    if controls is not None:
        msg.append_child(controls)
    return decode_packet(msg.to_bytes())


def _entry_packet(dn, attrs):
    resp = new_constructed(ClassType.APPLICATION, Application.SEARCH_RESULT_ENTRY, "")
    resp.append_child(_octet(dn))
    seq = new_sequence("attrs")
    for name, values in attrs.items():
        attr = new_sequence("attr")
        attr.append_child(_octet(name))
        vals = new_constructed(U, Tag.SET, "vals")
        for value in values:
            vals.append_child(_octet(value))
        attr.append_child(vals)
        seq.append_child(attr)
    resp.append_child(seq)
    return _message(resp)


def _done_packet(code=0, diagnostic="", controls=None):
    resp = new_constructed(ClassType.APPLICATION, Application.SEARCH_RESULT_DONE, "")
    resp.append_child(new_integer(U, P, Tag.ENUMERATED, code, "resultCode"))
    resp.append_child(_octet(""))
    resp.append_child(_octet(diagnostic))
    return _message(resp, controls)


def _referral_packet(url):
    resp = new_constructed(
        ClassType.APPLICATION, Application.SEARCH_RESULT_REFERENCE, ""
    )
    resp.append_child(_octet(url))
    return _message(resp)


def test_new_entry_is_deterministic():
    attributes = {
        "alpha": ["value"],
        "beta": ["value"],
        "gamma": ["value"],
        "delta": ["value"],
        "epsilon": ["value"],
    }
    first = new_entry("testDN", attributes)
    for _ in range(100):
        assert new_entry("testDN", attributes) == first


def test_new_entry_sorts_attribute_names():
    entry = new_entry("testDN", {"gamma": ["g"], "alpha": ["a"], "beta": ["b"]})
    assert [attr.name for attr in entry.attributes] == ["alpha", "beta", "gamma"]


def test_get_attribute_value_and_equal_fold():
    attributes = {
        "Alpha": ["value"],
        "bEta": ["value"],
        "gaMma": ["value"],
        "delTa": ["value"],
        "epsiLon": ["value"],
    }
    entry = new_entry("testDN", attributes)
    assert entry.get_attribute_value("Alpha") == "value"
    assert entry.get_equal_fold_attribute_value("alpha") == "value"
    assert entry.get_attribute_value("alpha") == ""


def test_missing_attribute_defaults():
    entry = new_entry("dn", {"cn": ["x"]})
    assert entry.get_attribute_values("sn") == []
    assert entry.get_equal_fold_attribute_values("SN") == []
    assert entry.get_raw_attribute_values("sn") == []
    assert entry.get_raw_attribute_value("sn") == b""
    assert entry.get_equal_fold_raw_attribute_value("SN") == b""


def test_raw_values():
    entry = new_entry("dn", {"cn": ["Lučić", "b"]})
    assert entry.get_raw_attribute_values("cn") == ["Lučić".encode(), b"b"]
    assert entry.get_raw_attribute_value("cn") == "Lučić".encode()
    assert entry.get_equal_fold_raw_attribute_value("CN") == "Lučić".encode()
    assert entry.get_equal_fold_raw_attribute_values("Cn") == ["Lučić".encode(), b"b"]


def test_new_entry_attribute():
    attr = new_entry_attribute("mail", ["a", "b"])
    assert attr == EntryAttribute("mail", ["a", "b"], [b"a", b"b"])


def test_print_formats():
    entry = new_entry("testDN", {"alpha": ["v1", "v2"]})
    out = io.StringIO()
    entry.print(out)
    assert out.getvalue() == "DN: testDN\nalpha: [v1 v2]\n"

    out = io.StringIO()
    SearchResult(entries=[entry, entry]).pretty_print(2, out)
    assert out.getvalue() == "  DN: testDN\n    alpha: [v1 v2]\n" * 2


def test_search_request_encoding_round_trip():
    req = SearchRequest(
        "dc=example,dc=com",
        Scope.WHOLE_SUBTREE,
        DerefAliases.ALWAYS,
        10,
        5,
        False,
        "(cn=cis-fac)",
        ["cn", "description"],
    )
    envelope = decode_packet(build_request(7, req).to_bytes())
    assert envelope.children[0].value == 7
    body = envelope.children[1]
    assert body.class_type == ClassType.APPLICATION
    assert body.tag == Application.SEARCH_REQUEST
    values = [child.value for child in body.children[:6]]
    assert values == ["dc=example,dc=com", 2, 3, 10, 5, False]
    assert body.children[6].tag == FilterChoice.EQUALITY_MATCH
    assert [c.value for c in body.children[7].children] == ["cn", "description"]
    assert len(envelope.children) == 2


def test_search_request_controls_appended():
    control = new_sequence("Control")
    control.append_child(_octet("1.2.840.113556.1.4.319"))
    req = SearchRequest("dc=example,dc=com", filter="(objectClass=*)", controls=[control])
    envelope = decode_packet(build_request(1, req).to_bytes())
    assert len(envelope.children) == 3
    controls = envelope.children[2]
    assert controls.class_type == ClassType.CONTEXT
    assert controls.tag == 0
    assert controls.children[0].children[0].value == "1.2.840.113556.1.4.319"


def test_search_request_bad_filter():
    req = SearchRequest("dc=example,dc=com", filter="cn=x")
    with pytest.raises(LDAPError) as info:
        build_request(1, req)
    assert info.value.result_code == ResultCode.ERROR_FILTER_COMPILE


def test_read_search_result_collects_everything():
    control = new_sequence("Control")
    control.append_child(_octet("1.2.3"))
    controls = new_constructed(ClassType.CONTEXT, 0, "Controls")
    controls.append_child(control)
    packets = [
        _entry_packet("cn=a,dc=example,dc=com", {"cn": ["a"], "mail": ["a@example.com"]}),
        _referral_packet("ldap://ldap.example.com/dc=example,dc=com"),
        _entry_packet("cn=b,dc=example,dc=com", {"cn": ["b"]}),
        _done_packet(controls=controls),
        _entry_packet("cn=never,dc=example,dc=com", {}),
    ]
    result = read_search_result(packets)
    assert [e.dn for e in result.entries] == [
        "cn=a,dc=example,dc=com",
        "cn=b,dc=example,dc=com",
    ]
    assert result.entries[0].get_attribute_value("mail") == "a@example.com"
    assert result.entries[0].get_raw_attribute_value("cn") == b"a"
    assert result.referrals == ["ldap://ldap.example.com/dc=example,dc=com"]
    assert len(result.controls) == 1
    assert result.controls[0].children[0].value == "1.2.3"


def test_read_search_result_error_code():
    with pytest.raises(LDAPError) as info:
        read_search_result([_done_packet(ResultCode.NO_SUCH_OBJECT, "no such")])
    assert info.value.result_code == ResultCode.NO_SUCH_OBJECT
    assert info.value.message == "no such"


def test_read_search_result_runs_out():
    with pytest.raises(LDAPError) as info:
        read_search_result([_entry_packet("cn=a", {"cn": ["a"]})])
    assert info.value.result_code == ResultCode.ERROR_NETWORK


def test_scope_and_deref_descriptions():
    assert Scope.WHOLE_SUBTREE.description == "Whole Subtree"
    assert DerefAliases.FINDING_BASE_OBJ.description == "DerefFindingBaseObj"
    assert Entry("x").get_attribute_value("cn") == ""