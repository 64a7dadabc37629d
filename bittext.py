"""Text form of bit buffers.

A buffer is written as whitespace-separated tokens whose bits are
concatenated in order::

    0x9b 0b1        # hex digits, then binary digits
    1001 1011 1     # bare binary literals

Hex tokens may carry an odd number of digits; the lone last digit adds
four bits. That keeps :func:`dump` output parseable for every length.
"""

import logging
import string
from typing import Optional

from bitbuf import Bitbuf, BitbufConfig, BitbufParseError

logger = logging.getLogger(__name__)

_HEX_DIGITS = frozenset(string.hexdigits)
_BIN_DIGITS = frozenset("01")


def hex_to_byte(s: str) -> int:
    """Decode one or two hex digits into a byte value.

    :param s: Hex digits, case-insensitive.
    :type s: str
    :returns: Decoded value, 0..255.
    :rtype: int
    :raises BitbufParseError: If ``s`` is empty, longer than two characters
        or holds a non-hex character.
    """
    if not 1 <= len(s) <= 2 or not _HEX_DIGITS.issuperset(s):
        raise BitbufParseError(f"Wrong hex format: {s!r}")
    return int(s, 16)


def _append_hex(b: Bitbuf, digits: str) -> None:
    for i in range(0, len(digits) - 1, 2):
        b.append_byte(hex_to_byte(digits[i:i + 2]))
    if len(digits) % 2:
        b.append_numeric(hex_to_byte(digits[-1]), 4)


def _append_binary(b: Bitbuf, digits: str) -> None:
    for ch in digits:
        b.push_back(ch == "1")


def _check_token(token: str) -> None:
    if token.startswith("0x"):
        digits = token[2:]
        if not digits or not _HEX_DIGITS.issuperset(digits):
            raise BitbufParseError(f"Malformed hex literal: {token!r}")
    else:
        digits = token[2:] if token.startswith("0b") else token
        if not digits or not _BIN_DIGITS.issuperset(digits):
            raise BitbufParseError(f"Malformed binary literal: {token!r}")


def append_text(b: Bitbuf, text: str) -> None:
    """Append the bits described by ``text`` to ``b``.

    Every token is validated before the first bit is appended, so a
    malformed string leaves ``b`` unchanged.

    :param b: Destination buffer.
    :type b: Bitbuf
    :param text: Whitespace-separated ``0x``, ``0b`` or bare binary tokens.
    :type text: str
    :returns: None
    :rtype: None
    :raises BitbufParseError: If any token is malformed.
    """
    tokens = text.split()
    for token in tokens:
        _check_token(token)
    for token in tokens:
        if token.startswith("0x"):
            _append_hex(b, token[2:])
        elif token.startswith("0b"):
            _append_binary(b, token[2:])
        else:
            _append_binary(b, token)


def parse(text: str, config: Optional[BitbufConfig] = None) -> Bitbuf:
    """Build a new buffer from ``text``.

    :param text: Text in the format described in the module docstring.
    :type text: str
    :param config: Allocation settings of the new buffer.
    :type config: BitbufConfig | None
    :returns: The parsed buffer.
    :rtype: Bitbuf
    :raises BitbufParseError: If any token is malformed.
    """
    b = Bitbuf(0, config)
    append_text(b, text)
    logger.debug("Parsed %d bits from %d characters", len(b), len(text))
    return b


def dump(b: Bitbuf, form: str = "hex") -> str:
    """Render ``b`` so that :func:`parse` gives back the same bits.

    ``form="hex"`` writes the leading whole nibbles as one ``0x`` token and
    any remaining one to three bits as a ``0b`` token. ``form="bin"``
    writes a single ``0b`` token. An empty buffer renders as ``""``.

    :param b: Buffer to render.
    :type b: Bitbuf
    :param form: ``"hex"`` or ``"bin"``.
    :type form: str
    :returns: Text form of the buffer.
    :rtype: str
    """
    n = len(b)
    if n == 0:
        return ""
    if form == "bin":
        return "0b" + "".join("1" if bit else "0" for bit in b)
    if form != "hex":
        raise ValueError(f"Unknown dump form: {form!r}")

    nibbles, rest = divmod(n, 4)
    tokens = []
    if nibbles:
        packed = b.to_bytes().hex()
        tokens.append("0x" + packed[:nibbles])
    if rest:
        tail = "".join(
            "1" if b.getbit_unsafe(i) else "0" for i in range(n - rest, n)
        )
        tokens.append("0b" + tail)
    return " ".join(tokens)
