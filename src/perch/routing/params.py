"""Path parameter decoding.

Captured segments are percent-decoded one at a time. A malformed
escape never fails the request: the raw captured text is returned.
"""

import re
from urllib.parse import unquote

# A "%" not followed by two hex digits
_MALFORMED_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def decode_param(value: str) -> str:
    """Percent-decode *value*, or return it unchanged if malformed.

    Examples::

        decode_param("hello%20world")  -> "hello world"
        decode_param("100%")           -> "100%"
        decode_param("%E0%A4%A")       -> "%E0%A4%A"
        decode_param("%FF")            -> "%FF"   (not valid UTF-8)
    """
    if "%" not in value:
        return value
    if _MALFORMED_ESCAPE_RE.search(value):
        return value
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value
