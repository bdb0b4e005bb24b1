import pytest

from ldapkit.packet import (
    Application,
    ClassType,
    Packet,
    PacketError,
    Tag,
    TagType,
    build_request,
    decode_packet,
    new_boolean,
    new_constructed,
    new_integer,
    new_sequence,
    new_string,
)

PPOLICY_TIME_BEFORE_EXPIRATION = bytes(
    [0xa0, 0x29, 0x30, 0x27, 0x4, 0x19, 0x31, 0x2e, 0x33, 0x2e, 0x36, 0x2e, 0x31,
     0x2e, 0x34, 0x2e, 0x31, 0x2e, 0x34, 0x32, 0x2e, 0x32, 0x2e, 0x32, 0x37, 0x2e,
     0x38, 0x2e, 0x35, 0x2e, 0x31, 0x4, 0xa, 0x30, 0x8, 0xa0, 0x6, 0x80, 0x4, 0x7f,
     0xff, 0xf6, 0x5c]
)

PPOLICY_ACCOUNT_LOCKED = bytes(
    [0xa0, 0x24, 0x30, 0x22, 0x4, 0x19, 0x31, 0x2e, 0x33, 0x2e, 0x36, 0x2e, 0x31,
     0x2e, 0x34, 0x2e, 0x31, 0x2e, 0x34, 0x32, 0x2e, 0x32, 0x2e, 0x32, 0x37, 0x2e,
     0x38, 0x2e, 0x35, 0x2e, 0x31, 0x4, 0x5, 0x30, 0x3, 0x81, 0x1, 0x1]
)


@pytest.mark.parametrize("raw", [PPOLICY_TIME_BEFORE_EXPIRATION, PPOLICY_ACCOUNT_LOCKED])
def test_decode_control_packet_structure(raw):
    packet = decode_packet(raw)
    assert packet.class_type == ClassType.CONTEXT
    assert packet.tag_type == TagType.CONSTRUCTED
    assert packet.tag == 0
    control = packet.children[0]
    assert control.tag == Tag.SEQUENCE
    assert control.children[0].value == "1.3.6.1.4.1.42.2.27.8.5.1"
    assert control.children[1].tag == Tag.OCTET_STRING


@pytest.mark.parametrize("raw", [PPOLICY_TIME_BEFORE_EXPIRATION, PPOLICY_ACCOUNT_LOCKED])
def test_decode_then_encode_is_identity(raw):
    assert decode_packet(raw).to_bytes() == raw


def test_nested_value_decodes_from_octet_string():
    packet = decode_packet(PPOLICY_ACCOUNT_LOCKED)
    inner = decode_packet(packet.children[0].children[1].data)
    error = inner.children[0]
    assert error.class_type == ClassType.CONTEXT
    assert error.tag == 1
    assert error.data == b"\x01"
    assert error.value is None


def test_integer_zero_wire_bytes():
    packet = new_integer(ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.INTEGER, 0, "n")
    assert packet.to_bytes() == b"\x02\x01\x00"


def test_empty_sequence_wire_bytes():
    assert new_sequence("empty").to_bytes() == b"\x30\x00"


def test_boolean_true_is_encoded_as_one():
    packet = new_boolean(ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.BOOLEAN, True, "b")
    assert packet.data == b"\x01"
    assert decode_packet(packet.to_bytes()).value is True


def test_boolean_false_round_trip():
    packet = new_boolean(ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.BOOLEAN, False, "b")
    assert decode_packet(packet.to_bytes()).value is False


@pytest.mark.parametrize(
    "number", [0, 1, 127, 128, 255, 256, -1, -128, -129, 2**31, 2**40, -(2**40)]
)
def test_integer_round_trip(number):
    packet = new_integer(ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.INTEGER, number, "n")
    decoded = decode_packet(packet.to_bytes())
    assert decoded.value == number
    assert decoded.data == packet.data


@pytest.mark.parametrize("number", [0, 5, -5, 300])
def test_enumerated_round_trip(number):
    packet = new_integer(ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.ENUMERATED, number, "e")
    assert decode_packet(packet.to_bytes()).value == number


@pytest.mark.parametrize("text", ["", "cn=admin,dc=example,dc=com", "함수목록", "x" * 300, "y" * 70000])
def test_string_round_trip(text):
    packet = new_string(ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.OCTET_STRING, text, "s")
    decoded = decode_packet(packet.to_bytes())
    assert decoded.value == text
    assert decoded.data == text.encode("utf-8")


def test_string_from_bytes_keeps_raw_data():
    packet = new_string(ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.BOOLEAN, b"\xff", "flag")
    assert packet.data == b"\xff"
    assert decode_packet(packet.to_bytes()).value is True


def test_context_primitive_has_raw_data_only():
    packet = new_string(ClassType.CONTEXT, TagType.PRIMITIVE, 0, "uid=someone", "ctx")
    decoded = decode_packet(packet.to_bytes())
    assert decoded.class_type == ClassType.CONTEXT
    assert decoded.value is None
    assert decoded.byte_value == b"uid=someone"


def test_high_tag_number_round_trip():
    packet = new_string(ClassType.PRIVATE, TagType.PRIMITIVE, 400, "v", "high")
    decoded = decode_packet(packet.to_bytes())
    assert decoded.tag == 400
    assert decoded.class_type == ClassType.PRIVATE
    assert decoded.data == b"v"


def test_constructed_round_trip_preserves_tree():
    outer = new_constructed(ClassType.APPLICATION, Application.SEARCH_REQUEST, "req")
    inner = new_sequence("inner")
    inner.append_child(
        new_string(ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.OCTET_STRING, "cn", "a")
    )
    inner.append_child(
        new_string(ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.OCTET_STRING, "sn", "b")
    )
    outer.append_child(inner)
    outer.append_child(
        new_integer(ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.INTEGER, 42, "n")
    )
    decoded = decode_packet(outer.to_bytes())
    assert decoded.class_type == ClassType.APPLICATION
    assert decoded.tag == Application.SEARCH_REQUEST
    assert [c.value for c in decoded.children[0].children] == ["cn", "sn"]
    assert decoded.children[1].value == 42
    assert decoded.to_bytes() == outer.to_bytes()


def test_truncated_data_raises():
    with pytest.raises(PacketError):
        decode_packet(PPOLICY_ACCOUNT_LOCKED[:-1])


def test_trailing_data_raises():
    with pytest.raises(PacketError):
        decode_packet(PPOLICY_ACCOUNT_LOCKED + b"\x00")


def test_empty_data_raises():
    with pytest.raises(ValueError):
        decode_packet(b"")


def test_indefinite_length_raises():
    with pytest.raises(PacketError):
        decode_packet(b"\x30\x80\x00\x00")


def test_build_request_with_callable():
    payload = new_constructed(ClassType.APPLICATION, Application.UNBIND_REQUEST, "unbind")
    envelope = build_request(7, lambda env: env.append_child(payload))
    assert envelope.tag == Tag.SEQUENCE
    assert envelope.children[0].value == 7
    assert envelope.children[1] is payload
    decoded = decode_packet(envelope.to_bytes())
    assert decoded.children[0].value == 7
    assert decoded.children[1].tag == Application.UNBIND_REQUEST


def test_build_request_with_append_to_object():
    class _Request:
        def append_to(self, envelope):
            envelope.append_child(
                new_string(ClassType.UNIVERSAL, TagType.PRIMITIVE, Tag.OCTET_STRING, "dn", "DN")
            )

    envelope = build_request(3, _Request())
    assert [child.value for child in envelope.children] == [3, "dn"]


def test_build_request_rejects_non_request():
    with pytest.raises(TypeError):
        build_request(1, 5)


def test_default_packet_is_empty_universal_primitive():
    packet = Packet()
    assert packet.children == []
    assert packet.to_bytes() == b"\x00\x00"