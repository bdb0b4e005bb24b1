"""Building and parsing LDAP protocol messages: BER packets, filters, search, modify, modify DN and Who Am I."""

__version__ = "0.1.0"
__all__ = ["packet", "errors", "filter", "search", "modify", "moddn", "whoami"]