"""Decode response bytes to text using the declared or embedded charset."""

import codecs
import logging
import re

log = logging.getLogger(__name__)

# charset=utf-8, charset="gb2312", <meta charset=Shift_JIS>
_CHARSET_RE = re.compile(r"""charset="?((?:\w|-)+)""", re.IGNORECASE)

UTF8 = "utf-8"


def find_charset(content: str | None) -> str | None:
    """Return the first charset token in content, or None."""
    if not content:
        return None
    m = _CHARSET_RE.search(content)
    return m.group(1) if m else None


def resolve_encoding(name: str | None) -> str | None:
    """Canonical codec name for a charset label, or None if it is not a known text encoding."""
    if not name:
        return None
    try:
        info = codecs.lookup(name)
        # Non-empty sample: decoding b"" never reaches the codec, so hex or
        # base64 would slip through
        b"a".decode(info.name, errors="replace")
    except (LookupError, UnicodeError):
        return None
    return info.name


def _decode_or_none(raw: bytes, encoding: str) -> str | None:
    try:
        return raw.decode(encoding, errors="replace")
    except (LookupError, UnicodeError) as e:
        log.debug("Decoding with %s failed (%s); keeping UTF-8", encoding, e)
        return None


def decode(raw: bytes, content_type: str | None = None) -> str:
    """
    Turn raw response bytes into text.

    The Content-Type header charset wins when it names a known encoding.
    Otherwise the bytes are read as UTF-8 and scanned for an embedded
    declaration (e.g. <meta charset=...>); a known non-UTF-8 declaration
    triggers a second decode. Unknown or missing charsets fall back to UTF-8.
    Never raises.
    """
    encoding = resolve_encoding(find_charset(content_type))
    if encoding is not None:
        text = _decode_or_none(raw, encoding)
        if text is not None:
            return text

    text = raw.decode(UTF8, errors="replace")
    embedded = find_charset(text)
    encoding = resolve_encoding(embedded)
    if encoding is None:
        if embedded:
            log.debug("Unknown charset %r; keeping UTF-8", embedded)
        return text
    if encoding == UTF8:
        return text
    redecoded = _decode_or_none(raw, encoding)
    return text if redecoded is None else redecoded
