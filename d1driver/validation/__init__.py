"""Statement verification."""

from .placeholders import count_placeholders, verify_statement

__all__ = ["count_placeholders", "verify_statement"]
