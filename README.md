# ldapkit

Build and parse LDAP protocol messages in pure Python. The package uses only
the standard library.

ldapkit produces the BER-encoded bytes of LDAP requests and reads the
response packets you pass back to it. You choose the socket, TLS setup and
event loop yourself.

## Modules

- `ldapkit.packet`: a small BER model. It has `Packet` (with `append_child`,
  `to_bytes` and `byte_value`), `decode_packet`, `new_string`, `new_integer`,
  `new_boolean`, `new_constructed` and `new_sequence`, plus the enums
  `ClassType`, `TagType`, `Tag` and `Application`. `build_request(message_id,
  request)` wraps a request in an LDAPMessage envelope. The request can be an
  object with `append_to(envelope)` or a callable that takes the envelope.
  Malformed bytes raise `PacketError`.
- `ldapkit.errors`: `ResultCode`, `describe_result_code`, `LDAPError`,
  `get_ldap_error`, `raise_for_result`, `is_error_any_of` and
  `is_error_with_code`.
- `ldapkit.filter`: RFC 4515 search filters. It has `compile_filter`,
  `decompile_filter`, `escape_filter` and `decode_escaped_symbols`, plus the
  enums `FilterChoice`, `SubstringChoice` and `MatchingRuleAssertion`.
  Supported forms are equality, substrings, presence, `>=`, `<=`, `~=` and
  extensible match, combined with `&`, `|` and `!`.
- `ldapkit.search`: `SearchRequest`, `Scope`, `DerefAliases`, `Entry`,
  `EntryAttribute`, `SearchResult`, `new_entry`, `new_entry_attribute` and
  `read_search_result`.
- `ldapkit.modify`: `ModifyRequest` (with `add`, `delete`, `replace` and
  `increment`), `Change`, `PartialAttribute`, `ModifyOperation` and
  `check_modify_response`.
- `ldapkit.moddn`: `ModifyDNRequest` and `check_modify_dn_response`.
- `ldapkit.whoami`: the RFC 4532 "Who Am I?" extended operation. It has
  `build_who_am_i_request`, `parse_who_am_i_response` and `WhoAmIResult`.

## Filters

```python
from ldapkit.filter import compile_filter, decompile_filter, escape_filter

packet = compile_filter("(&(sn=Miller)(givenName=Bob))")
wire = packet.to_bytes()
print(decompile_filter(packet))     # (&(sn=Miller)(givenName=Bob))

print(escape_filter("a*b(c)"))      # a\2ab\28c\29
```

`escape_filter` escapes NUL, parentheses, `*`, backslash and every non-ASCII
byte as `\xx`. If a filter is malformed, `compile_filter` raises `LDAPError`
with `ResultCode.ERROR_FILTER_COMPILE`. If `decompile_filter` cannot read a
packet, it raises `LDAPError` with `ResultCode.ERROR_FILTER_DECOMPILE`.

## Searching

```python
from ldapkit.packet import build_request, decode_packet
from ldapkit.search import SearchRequest, Scope, DerefAliases, read_search_result

request = SearchRequest(
    base_dn="dc=example,dc=com",
    scope=Scope.WHOLE_SUBTREE,
    deref_aliases=DerefAliases.ALWAYS,
    filter="(objectClass=person)",
    attributes=["cn", "mail"],
)
message = build_request(1, request)
sock.sendall(message.to_bytes())

# Feed the decoded response packets for message 1, in order:
result = read_search_result(decode_packet(raw) for raw in responses)
for entry in result.entries:
    print(entry.dn, entry.get_attribute_value("cn"))
```

`read_search_result` collects entries and referrals until it reaches the
SearchResultDone message. It raises `LDAPError` if the server reports an
error, or if the packets run out before the search is done. The controls of
the final message are kept as raw `Packet` objects.

In a `SearchRequest` or any other request, a control can be a `Packet` or any
object whose `encode()` method returns one.

To look up an attribute on an `Entry`, use `get_attribute_value(s)` or
`get_raw_attribute_value(s)`. The `get_equal_fold_*` variants match the name
case-insensitively. `print` and `pretty_print` write a readable listing to
standard output or to a file you give them.

## Modifying entries

```python
from ldapkit.modify import ModifyRequest, check_modify_response
from ldapkit.moddn import ModifyDNRequest, check_modify_dn_response

modify = ModifyRequest("uid=user,ou=people,dc=example,dc=org")
modify.replace("mail", ["user@example.com"])
modify.add("description", ["on call"])
sock.sendall(build_request(2, modify).to_bytes())
check_modify_response(decode_packet(reply))   # raises LDAPError on failure

rename = ModifyDNRequest("uid=user,ou=people,dc=example,dc=org", "uid=new", True, "")
sock.sendall(build_request(3, rename).to_bytes())
check_modify_dn_response(decode_packet(reply))
```

If a non-empty `new_superior` is set, the entry moves under that DN. If the
check functions receive a response of the wrong kind, they log a warning and
do not raise.

## Who Am I?

```python
from ldapkit.whoami import build_who_am_i_request, parse_who_am_i_response

sock.sendall(build_who_am_i_request(4).to_bytes())
print(parse_who_am_i_response(decode_packet(reply)).authz_id)
```

If the reply is not an extended response, `parse_who_am_i_response` raises
`LDAPError` with `ResultCode.ERROR_UNEXPECTED_RESPONSE`.

## Errors

`LDAPError` carries `result_code`, `matched_dn`, `message` and the response
`packet`. Its string form is `LDAP Result Code <n> "<description>":
<message>`. To test an error, use
`is_error_with_code(err, ResultCode.INVALID_CREDENTIALS)` or
`is_error_any_of(err, code1, code2)`.

## What ldapkit does not do

- It opens no connections and has no connection object.
- It does not dial servers, bind or authenticate, and it does not support
  StartTLS.
- It does not track message IDs or match responses to requests.
- It has no paged search and no typed controls such as paging or password
  policy. Controls are passed through as packets.

All of these are left to the code that uses the package.

## Running the tests

```
pip install -e .[test]
pytest
```