"""LDAP result codes and the exception that carries them."""

from __future__ import annotations

import enum
from typing import Optional, Union

from ldapkit.packet import ClassType, Packet, TagType


class ResultCode(enum.IntEnum):
    """LDAP result codes plus client-side error codes."""

    SUCCESS = 0
    OPERATIONS_ERROR = 1
    PROTOCOL_ERROR = 2
    TIME_LIMIT_EXCEEDED = 3
    SIZE_LIMIT_EXCEEDED = 4
    COMPARE_FALSE = 5
    COMPARE_TRUE = 6
    AUTH_METHOD_NOT_SUPPORTED = 7
    STRONG_AUTH_REQUIRED = 8
    REFERRAL = 10
    ADMIN_LIMIT_EXCEEDED = 11
    UNAVAILABLE_CRITICAL_EXTENSION = 12
    CONFIDENTIALITY_REQUIRED = 13
    SASL_BIND_IN_PROGRESS = 14
    NO_SUCH_ATTRIBUTE = 16
    UNDEFINED_ATTRIBUTE_TYPE = 17
    INAPPROPRIATE_MATCHING = 18
    CONSTRAINT_VIOLATION = 19
    ATTRIBUTE_OR_VALUE_EXISTS = 20
    INVALID_ATTRIBUTE_SYNTAX = 21
    NO_SUCH_OBJECT = 32
    ALIAS_PROBLEM = 33
    INVALID_DN_SYNTAX = 34
    IS_LEAF = 35
    ALIAS_DEREFERENCING_PROBLEM = 36
    INAPPROPRIATE_AUTHENTICATION = 48
    INVALID_CREDENTIALS = 49
    INSUFFICIENT_ACCESS_RIGHTS = 50
    BUSY = 51
    UNAVAILABLE = 52
    UNWILLING_TO_PERFORM = 53
    LOOP_DETECT = 54
    SORT_CONTROL_MISSING = 60
    OFFSET_RANGE_ERROR = 61
    NAMING_VIOLATION = 64
    OBJECT_CLASS_VIOLATION = 65
    NOT_ALLOWED_ON_NON_LEAF = 66
    NOT_ALLOWED_ON_RDN = 67
    ENTRY_ALREADY_EXISTS = 68
    OBJECT_CLASS_MODS_PROHIBITED = 69
    RESULTS_TOO_LARGE = 70
    AFFECTS_MULTIPLE_DSAS = 71
    VIRTUAL_LIST_VIEW_ERROR_OR_CONTROL_ERROR = 76
    OTHER = 80
    SERVER_DOWN = 81
    LOCAL_ERROR = 82
    ENCODING_ERROR = 83
    DECODING_ERROR = 84
    TIMEOUT = 85
    AUTH_UNKNOWN = 86
    FILTER_ERROR = 87
    USER_CANCELED = 88
    PARAM_ERROR = 89
    NO_MEMORY = 90
    CONNECT_ERROR = 91
    NOT_SUPPORTED = 92
    CONTROL_NOT_FOUND = 93
    NO_RESULTS_RETURNED = 94
    MORE_RESULTS_TO_RETURN = 95
    CLIENT_LOOP = 96
    REFERRAL_LIMIT_EXCEEDED = 97
    INVALID_RESPONSE = 100
    AMBIGUOUS_RESPONSE = 101
    TLS_NOT_SUPPORTED = 112
    INTERMEDIATE_RESPONSE = 113
    UNKNOWN_TYPE = 114
    CANCELED = 118
    NO_SUCH_OPERATION = 119
    TOO_LATE = 120
    CANNOT_CANCEL = 121
    ASSERTION_FAILED = 122
    AUTHORIZATION_DENIED = 123
    SYNC_REFRESH_REQUIRED = 4096

    ERROR_NETWORK = 200
    ERROR_FILTER_COMPILE = 201
    ERROR_FILTER_DECOMPILE = 202
    ERROR_DEBUGGING = 203
    ERROR_UNEXPECTED_MESSAGE = 204
    ERROR_UNEXPECTED_RESPONSE = 205
    ERROR_EMPTY_PASSWORD = 206

    @property
    def description(self) -> str:
        """Human-readable description of this code."""
        return describe_result_code(self)


_R = ResultCode

_DESCRIPTIONS = {
    _R.SUCCESS: "Success",
    _R.OPERATIONS_ERROR: "Operations Error",
    _R.PROTOCOL_ERROR: "Protocol Error",
    _R.TIME_LIMIT_EXCEEDED: "Time Limit Exceeded",
    _R.SIZE_LIMIT_EXCEEDED: "Size Limit Exceeded",
    _R.COMPARE_FALSE: "Compare False",
    _R.COMPARE_TRUE: "Compare True",
    _R.AUTH_METHOD_NOT_SUPPORTED: "Auth Method Not Supported",
    _R.STRONG_AUTH_REQUIRED: "Strong Auth Required",
    _R.REFERRAL: "Referral",
    _R.ADMIN_LIMIT_EXCEEDED: "Admin Limit Exceeded",
    _R.UNAVAILABLE_CRITICAL_EXTENSION: "Unavailable Critical Extension",
    _R.CONFIDENTIALITY_REQUIRED: "Confidentiality Required",
    _R.SASL_BIND_IN_PROGRESS: "Sasl Bind In Progress",
    _R.NO_SUCH_ATTRIBUTE: "No Such Attribute",
    _R.UNDEFINED_ATTRIBUTE_TYPE: "Undefined Attribute Type",
    _R.INAPPROPRIATE_MATCHING: "Inappropriate Matching",
    _R.CONSTRAINT_VIOLATION: "Constraint Violation",
    _R.ATTRIBUTE_OR_VALUE_EXISTS: "Attribute Or Value Exists",
    _R.INVALID_ATTRIBUTE_SYNTAX: "Invalid Attribute Syntax",
    _R.NO_SUCH_OBJECT: "No Such Object",
    _R.ALIAS_PROBLEM: "Alias Problem",
    _R.INVALID_DN_SYNTAX: "Invalid DN Syntax",
    _R.IS_LEAF: "Is Leaf",
    _R.ALIAS_DEREFERENCING_PROBLEM: "Alias Dereferencing Problem",
    _R.INAPPROPRIATE_AUTHENTICATION: "Inappropriate Authentication",
    _R.INVALID_CREDENTIALS: "Invalid Credentials",
    _R.INSUFFICIENT_ACCESS_RIGHTS: "Insufficient Access Rights",
    _R.BUSY: "Busy",
    _R.UNAVAILABLE: "Unavailable",
    _R.UNWILLING_TO_PERFORM: "Unwilling To Perform",
    _R.LOOP_DETECT: "Loop Detect",
    _R.SORT_CONTROL_MISSING: "Sort Control Missing",
    _R.OFFSET_RANGE_ERROR: "Result Offset Range Error",
    _R.NAMING_VIOLATION: "Naming Violation",
    _R.OBJECT_CLASS_VIOLATION: "Object Class Violation",
    _R.RESULTS_TOO_LARGE: "Results Too Large",
    _R.NOT_ALLOWED_ON_NON_LEAF: "Not Allowed On Non Leaf",
    _R.NOT_ALLOWED_ON_RDN: "Not Allowed On RDN",
    _R.ENTRY_ALREADY_EXISTS: "Entry Already Exists",
    _R.OBJECT_CLASS_MODS_PROHIBITED: "Object Class Mods Prohibited",
    _R.AFFECTS_MULTIPLE_DSAS: "Affects Multiple DSAs",
    _R.VIRTUAL_LIST_VIEW_ERROR_OR_CONTROL_ERROR: (
        "Failed because of a problem related to the virtual list view"
    ),
    _R.OTHER: "Other",
    _R.SERVER_DOWN: "Cannot establish a connection",
    _R.LOCAL_ERROR: "An error occurred",
    _R.ENCODING_ERROR: "LDAP encountered an error while encoding",
    _R.DECODING_ERROR: "LDAP encountered an error while decoding",
    _R.TIMEOUT: "LDAP timeout while waiting for a response from the server",
    _R.AUTH_UNKNOWN: "The auth method requested in a bind request is unknown",
    _R.FILTER_ERROR: "An error occurred while encoding the given search filter",
    _R.USER_CANCELED: "The user canceled the operation",
    _R.PARAM_ERROR: "An invalid parameter was specified",
    _R.NO_MEMORY: "Out of memory error",
    _R.CONNECT_ERROR: "A connection to the server could not be established",
    _R.NOT_SUPPORTED: "An attempt has been made to use a feature not supported LDAP",
    _R.CONTROL_NOT_FOUND: (
        "The controls required to perform the requested operation were not found"
    ),
    _R.NO_RESULTS_RETURNED: "No results were returned from the server",
    _R.MORE_RESULTS_TO_RETURN: "There are more results in the chain of results",
    _R.CLIENT_LOOP: (
        "A loop has been detected. For example when following referrals"
    ),
    _R.REFERRAL_LIMIT_EXCEEDED: "The referral hop limit has been exceeded",
    _R.CANCELED: "Operation was canceled",
    _R.NO_SUCH_OPERATION: (
        "Server has no knowledge of the operation requested for cancellation"
    ),
    _R.TOO_LATE: "Too late to cancel the outstanding operation",
    _R.CANNOT_CANCEL: (
        "The identified operation does not support cancellation or the cancel "
        "operation cannot be performed"
    ),
    _R.ASSERTION_FAILED: (
        "An assertion control given in the LDAP operation evaluated to false "
        "causing the operation to not be performed"
    ),
    _R.SYNC_REFRESH_REQUIRED: "Refresh Required",
    _R.INVALID_RESPONSE: "Invalid Response",
    _R.AMBIGUOUS_RESPONSE: "Ambiguous Response",
    _R.TLS_NOT_SUPPORTED: "Tls Not Supported",
    _R.INTERMEDIATE_RESPONSE: "Intermediate Response",
    _R.UNKNOWN_TYPE: "Unknown Type",
    _R.AUTHORIZATION_DENIED: "Authorization Denied",
    _R.ERROR_NETWORK: "Network Error",
    _R.ERROR_FILTER_COMPILE: "Filter Compile Error",
    _R.ERROR_FILTER_DECOMPILE: "Filter Decompile Error",
    _R.ERROR_DEBUGGING: "Debugging Error",
    _R.ERROR_UNEXPECTED_MESSAGE: "Unexpected Message",
    _R.ERROR_UNEXPECTED_RESPONSE: "Unexpected Response",
    _R.ERROR_EMPTY_PASSWORD: "Empty password not allowed by the client",
}


def describe_result_code(code: int) -> str:
    """Return the description of ``code``, or an empty string if unknown."""
    return _DESCRIPTIONS.get(int(code), "")


class LDAPError(Exception):
    """An LDAP operation failed with a result code."""

    def __init__(
        self,
        result_code: int,
        message: Union[str, BaseException],
        matched_dn: str = "",
        packet: Optional[Packet] = None,
    ) -> None:
        if isinstance(message, BaseException):
            self.__cause__ = message
            message = str(message)
        super().__init__(message)
        self.result_code = int(result_code)
        self.message = message
        self.matched_dn = matched_dn
        self.packet = packet

    def __str__(self) -> str:
        description = describe_result_code(self.result_code)
        return f'LDAP Result Code {self.result_code} "{description}": {self.message}'


def get_ldap_error(packet: Optional[Packet]) -> Optional[LDAPError]:
    """Build an error from an LDAPResult message, or None on success."""
    if packet is None:
        return LDAPError(ResultCode.ERROR_UNEXPECTED_RESPONSE, "Empty packet")

    if len(packet.children) >= 2:
        response = packet.children[1]
        if response is None:
            return LDAPError(
                ResultCode.ERROR_UNEXPECTED_RESPONSE,
                "Empty response in packet",
                packet=packet,
            )
        if (
            response.class_type == ClassType.APPLICATION
            and response.tag_type == TagType.CONSTRUCTED
            and len(response.children) >= 3
        ):
            code, matched, diagnostic = (c.value for c in response.children[:3])
            if isinstance(code, int) and not isinstance(code, bool):
                code &= 0xFFFF
                if code == ResultCode.SUCCESS:
                    return None
                return LDAPError(
                    code,
                    diagnostic if isinstance(diagnostic, str) else "",
                    matched_dn=matched if isinstance(matched, str) else "",
                    packet=packet,
                )

    return LDAPError(ResultCode.ERROR_NETWORK, "Invalid packet format", packet=packet)


def raise_for_result(packet: Optional[Packet]) -> None:
    """Raise the error an LDAPResult message carries, if any."""
    error = get_ldap_error(packet)
    if error is not None:
        raise error


def is_error_any_of(err: Optional[BaseException], *codes: int) -> bool:
    """Tell whether ``err`` is an LDAPError with one of ``codes``."""
    if not isinstance(err, LDAPError):
        return False
    return any(err.result_code == int(code) for code in codes)


def is_error_with_code(err: Optional[BaseException], code: int) -> bool:
    """Tell whether ``err`` is an LDAPError with result code ``code``."""
    return is_error_any_of(err, code)