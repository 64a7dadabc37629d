import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple, Union

logger = logging.getLogger(__name__)

_REVERSE_TABLE = bytes(int(f"{i:08b}"[::-1], 2) for i in range(256))
_INVERT_TABLE = bytes(0xFF - i for i in range(256))


class BitbufError(Exception):
    """Base class for all bit buffer errors."""


class BitbufRangeError(BitbufError, IndexError):
    """Bit index or ``[start, end)`` range outside the logical length."""


class BitbufParseError(BitbufError, ValueError):
    """Malformed text handed to the parser."""


class BitbufOverflowError(BitbufError, OverflowError):
    """Numeric value does not fit the requested bit width."""


@dataclass(frozen=True)
class BitbufConfig:
    """Per-buffer allocation and conversion settings.

    :ivar block_size: Allocation granularity in bytes; capacity is always a
        multiple of it.
    :type block_size: int
    :ivar growth_factor: Multiplier applied to the current capacity when an
        append runs out of room.
    :type growth_factor: float
    :ivar numeric_width: Default bit width of :meth:`Bitbuf.to_numeric`.
    :type numeric_width: int
    """

    block_size: int = 1
    growth_factor: float = 2.0
    numeric_width: int = 64

    def __post_init__(self):
        if self.block_size < 1:
            raise ValueError(f"block_size must be positive, got {self.block_size}")
        if self.growth_factor < 1.0:
            raise ValueError(
                f"growth_factor must be at least 1.0, got {self.growth_factor}"
            )
        if self.numeric_width < 1:
            raise ValueError(
                f"numeric_width must be positive, got {self.numeric_width}"
            )


DEFAULT_CONFIG = BitbufConfig()


def byte_count(n: int) -> int:
    """Return the minimum number of bytes that can pack ``n`` bits.

    :param n: Number of bits.
    :type n: int
    :returns: ``ceil(n / 8)``.
    :rtype: int
    """
    return (n + 7) // 8


def _check_range(start: int, end: int, length: int) -> None:
    if not 0 <= start <= end <= length:
        raise BitbufRangeError(
            f"Invalid range [{start}, {end}) for buffer of {length} bits"
        )


def _check_bit(bit) -> int:
    if bit not in (0, 1):
        raise ValueError(f"Bit must be 0 or 1, got {bit!r}")
    return int(bit)


class Bitbuf:
    """Dynamic, byte-packed array of bits.

    Bits are stored eight per byte, MSB-first: bit ``i`` lives in byte
    ``i // 8`` at position ``7 - i % 8``. Storage only ever grows; bits past
    the logical length are unspecified unless an operation says otherwise.

    :ivar config: Allocation and conversion settings of this buffer.
    :type config: BitbufConfig
    """

    __hash__ = None

    def __init__(self, n: int = 0, config: Optional[BitbufConfig] = None):
        """Create an empty buffer with room for ``n`` bits.

        :param n: Number of bits to reserve up front. The logical length
            stays 0; use :meth:`zeros` for a buffer of ``n`` zero bits.
        :type n: int
        :param config: Allocation settings, :data:`DEFAULT_CONFIG` if omitted.
        :type config: BitbufConfig | None
        :returns: None
        :rtype: None
        """
        if n < 0:
            raise ValueError(f"Cannot reserve a negative number of bits: {n}")
        self.config = config if config is not None else DEFAULT_CONFIG
        self._buf = bytearray()
        self._len = 0
        if n:
            self.reserve(n)

    # -- alternate constructors ----------------------------------------

    @classmethod
    def zeros(cls, n: int, config: Optional[BitbufConfig] = None) -> "Bitbuf":
        """Make a buffer holding ``n`` zero bits.

        :param n: Number of zero bits.
        :type n: int
        :param config: Allocation settings.
        :type config: BitbufConfig | None
        :returns: New buffer of length ``n``.
        :rtype: Bitbuf
        """
        b = cls(n, config)
        b.append_zeros(n)
        return b

    @classmethod
    def from_text(cls, text: str, config: Optional[BitbufConfig] = None) -> "Bitbuf":
        """Parse ``text`` (``0x..``, ``0b..`` or bare binary tokens).

        :param text: Whitespace-separated tokens.
        :type text: str
        :param config: Allocation settings.
        :type config: BitbufConfig | None
        :returns: New buffer holding the decoded bits.
        :rtype: Bitbuf
        :raises BitbufParseError: If any token is malformed.
        """
        from bittext import parse

        return parse(text, config)

    @classmethod
    def from_sub(cls, other: "Bitbuf", start: int, end: int) -> "Bitbuf":
        """Make a buffer holding a copy of ``other[start:end]``.

        :raises BitbufRangeError: If ``[start, end)`` is not within ``other``.
        """
        b = cls(end - start if end > start else 0, other.config)
        b.append_sub(other, start, end)
        return b

    @classmethod
    def attach(
        cls,
        data: Union[bytes, bytearray, memoryview],
        length: Optional[int] = None,
        config: Optional[BitbufConfig] = None,
    ) -> "Bitbuf":
        """Build a buffer from packed bytes and an explicit bit length.

        :param data: MSB-first packed bytes. They are copied, so later
            changes to ``data`` do not reach the buffer.
        :type data: bytes | bytearray | memoryview
        :param length: Number of valid bits, ``8 * len(data)`` if omitted.
        :type length: int | None
        :param config: Allocation settings.
        :type config: BitbufConfig | None
        :returns: New buffer of the given length.
        :rtype: Bitbuf
        :raises BitbufRangeError: If ``length`` is negative or exceeds
            ``8 * len(data)``.
        """
        storage = bytearray(data)
        if length is None:
            length = 8 * len(storage)
        if not 0 <= length <= 8 * len(storage):
            raise BitbufRangeError(
                f"Length {length} does not fit in {len(storage)} bytes"
            )
        b = cls(0, config)
        b._buf = storage
        b._len = length
        # Keep capacity a multiple of the block size.
        b._reserve_bytes(len(storage))
        return b

    @classmethod
    def take(cls, other: "Bitbuf") -> "Bitbuf":
        """Move ``other``'s storage into a new buffer and empty ``other``.

        :param other: Source buffer; left empty with no storage.
        :type other: Bitbuf
        :returns: Buffer owning the former content of ``other``.
        :rtype: Bitbuf
        """
        b = cls(0, other.config)
        b._buf, b._len = other._buf, other._len
        other._buf, other._len = bytearray(), 0
        return b

    def copy(self) -> "Bitbuf":
        """Return an independent duplicate of this buffer."""
        b = Bitbuf(self._len, self.config)
        b.append(self)
        return b

    def __copy__(self):
        return self.copy()

    def __deepcopy__(self, memo):
        return self.copy()

    def detach(self) -> Tuple[bytes, int]:
        """Hand over the packed content and leave this buffer empty.

        :returns: ``(packed_bytes, length)``; the bytes are
            ``byte_count(length)`` long and the dirty tail is zeroed.
        :rtype: Tuple[bytes, int]
        """
        out = self.to_bytes(), self._len
        self._buf = bytearray()
        self._len = 0
        return out

    # -- capacity -------------------------------------------------------

    @property
    def capacity(self) -> int:
        """Number of bits the current storage holds without growing."""
        return 8 * len(self._buf)

    def avail(self) -> int:
        """Return the number of bits that can be appended without growing."""
        return self.capacity - self._len

    def reserve(self, n: int) -> None:
        """Ensure storage for at least ``n`` bits.

        The logical length is untouched and storage never shrinks, so calls
        with a non-increasing ``n`` are no-ops.

        :param n: Total number of bits (not extra bits) to make room for.
        :type n: int
        :returns: None
        :rtype: None
        """
        self._reserve_bytes(byte_count(n))

    def _reserve_bytes(self, nbytes: int) -> None:
        block = self.config.block_size
        nbytes = -(-nbytes // block) * block
        old = len(self._buf)
        if nbytes <= old:
            return
        self._buf.extend(bytes(nbytes - old))
        logger.debug("Grew bit buffer storage from %d to %d bytes", old, nbytes)

    def _grow(self, extra: int) -> None:
        """Make room for ``extra`` more bits, growing geometrically."""
        needed = byte_count(self._len + extra)
        cap = len(self._buf)
        if needed <= cap:
            return
        self._reserve_bytes(max(needed, int(cap * self.config.growth_factor)))

    # -- bit accessors --------------------------------------------------

    def __len__(self) -> int:
        return self._len

    def getbit_unsafe(self, i: int) -> int:
        """Read bit ``i`` without a bounds check."""
        return (self._buf[i >> 3] >> (7 - (i & 7))) & 1

    def setbit_unsafe(self, i: int, bit: int) -> None:
        """Write bit ``i`` without a bounds check."""
        mask = 0x80 >> (i & 7)
        if bit:
            self._buf[i >> 3] |= mask
        else:
            self._buf[i >> 3] &= ~mask & 0xFF

    def _check_index(self, i: int) -> None:
        if not 0 <= i < self._len:
            raise BitbufRangeError(
                f"Bit index {i} out of range for buffer of {self._len} bits"
            )

    def get(self, i: int) -> int:
        """Return bit ``i`` as 0 or 1.

        :param i: Bit index, ``0 <= i < len(self)``.
        :type i: int
        :returns: The bit value.
        :rtype: int
        :raises BitbufRangeError: If ``i`` is out of range.
        """
        self._check_index(i)
        return self.getbit_unsafe(i)

    def set(self, i: int, bit: int) -> None:
        """Set bit ``i`` to ``bit``.

        :param i: Bit index, ``0 <= i < len(self)``.
        :type i: int
        :param bit: 0 or 1 (``bool`` accepted).
        :type bit: int
        :returns: None
        :rtype: None
        :raises BitbufRangeError: If ``i`` is out of range.
        """
        self._check_index(i)
        self.setbit_unsafe(i, _check_bit(bit))

    def __getitem__(self, key):
        if isinstance(key, slice):
            start, end, step = key.indices(self._len)
            if step != 1:
                raise ValueError("Bitbuf slices do not support a step")
            return Bitbuf.from_sub(self, start, max(start, end))
        if key < 0:
            key += self._len
        return self.get(key)

    def __setitem__(self, key: int, bit: int) -> None:
        if key < 0:
            key += self._len
        self.set(key, bit)

    def __iter__(self) -> Iterator[int]:
        for i in range(self._len):
            yield self.getbit_unsafe(i)

    def push_back(self, bit: int) -> None:
        """Append a single bit.

        :param bit: 0 or 1.
        :type bit: int
        :returns: None
        :rtype: None
        """
        bit = _check_bit(bit)
        if self._len == self.capacity:
            self._grow(1)
        self.setbit_unsafe(self._len, bit)
        self._len += 1

    # -- byte-level fast path -------------------------------------------

    def append_byte(self, u8: int) -> None:
        """Append the 8 bits of ``u8``.

        When the length is byte aligned the byte is stored as is. Otherwise
        it is split across the partial trailing byte and a new one; the
        stale bits of the trailing byte are cleared first since earlier
        fast-path writes may have left them set.

        :param u8: Byte value, 0..255.
        :type u8: int
        :returns: None
        :rtype: None
        """
        if not 0 <= u8 <= 0xFF:
            raise ValueError(f"Byte value out of range: {u8}")
        self._grow(8)
        quot, mod = divmod(self._len, 8)
        if mod == 0:
            self._buf[quot] = u8
            self._len += 8
            return

        shift = 8 - mod
        tail = self._buf[quot] >> shift << shift
        self._buf[quot] = tail | (u8 >> mod)
        self._buf[quot + 1] = (u8 << shift) & 0xFF
        self._len += 8

    def _byte_at(self, pos: int, offset: int) -> int:
        """Unchecked read of the 8 bits starting at ``8 * pos + offset``."""
        if offset == 0:
            return self._buf[pos]
        ret = (self._buf[pos] << offset) & 0xFF
        if pos + 1 < byte_count(self._len):
            ret |= self._buf[pos + 1] >> (8 - offset)
        return ret

    def byte_at(self, pos: int, offset: int = 0) -> int:
        """Read the 8-bit window starting at bit ``8 * pos + offset``.

        Bits of the window that fall past the logical length read as 0.

        :param pos: Byte position.
        :type pos: int
        :param offset: Bit offset inside the byte, 0..7.
        :type offset: int
        :returns: The window as an integer, MSB first.
        :rtype: int
        :raises BitbufRangeError: If the first bit of the window is out of
            range or ``offset`` is not in 0..7.
        """
        if not 0 <= offset <= 7:
            raise BitbufRangeError(f"Bit offset must be in 0..7, got {offset}")
        first = 8 * pos + offset
        self._check_index(first)
        ret = self._byte_at(pos, offset)
        over = first + 8 - self._len
        if over > 0:
            ret = ret >> over << over
        return ret

    # -- bulk composition -----------------------------------------------

    def append(self, other: "Bitbuf") -> None:
        """Append the whole content of ``other``."""
        self.append_sub(other, 0, other._len)

    def append_sub(self, other: "Bitbuf", start: int, end: int) -> None:
        """Append bits ``[start, end)`` of ``other``.

        Takes a plain byte copy when both this buffer's length and ``start``
        are byte aligned, and otherwise feeds ``byte_at`` windows through
        :meth:`append_byte`.

        :param other: Source buffer, may be ``self``.
        :type other: Bitbuf
        :param start: First bit to copy.
        :type start: int
        :param end: One past the last bit to copy.
        :type end: int
        :returns: None
        :rtype: None
        :raises BitbufRangeError: If ``0 <= start <= end <= len(other)`` does
            not hold. The buffer is left untouched in that case.
        """
        _check_range(start, end, other._len)
        gap = end - start
        if gap == 0:
            return
        if other is self:
            other = self.copy()

        nbytes = byte_count(gap)
        if self._len % 8 == 0 and start % 8 == 0:
            self._grow(gap)
            dst = self._len // 8
            src = start // 8
            self._buf[dst:dst + nbytes] = other._buf[src:src + nbytes]
            self._len += gap
            return

        # append_byte writes whole bytes, so room for the padded tail too.
        old_len = self._len
        self._grow(8 * nbytes)
        pos, offset = divmod(start, 8)
        for i in range(nbytes):
            self.append_byte(other._byte_at(pos + i, offset))
        self._len = old_len + gap

    def append_zeros(self, n: int) -> None:
        """Append ``n`` zero bits.

        :param n: Number of bits, non-negative.
        :type n: int
        :returns: None
        :rtype: None
        """
        if n < 0:
            raise ValueError(f"Cannot append a negative number of bits: {n}")
        self._grow(n)
        while n and self._len % 8:
            self.setbit_unsafe(self._len, 0)
            self._len += 1
            n -= 1
        whole = n // 8
        if whole:
            dst = self._len // 8
            self._buf[dst:dst + whole] = bytes(whole)
            self._len += 8 * whole
        for _ in range(n % 8):
            self.setbit_unsafe(self._len, 0)
            self._len += 1

    def append_numeric(self, value: int, nbits: int) -> None:
        """Append the unsigned ``value`` as ``nbits`` bits, MSB first.

        :param value: Unsigned integer, ``0 <= value < 2 ** nbits``.
        :type value: int
        :param nbits: Field width in bits.
        :type nbits: int
        :returns: None
        :rtype: None
        :raises BitbufOverflowError: If ``value`` does not fit ``nbits``.
        """
        if nbits < 0:
            raise ValueError(f"Bit width must be non-negative, got {nbits}")
        if value < 0 or value >> nbits:
            raise BitbufOverflowError(f"{value} does not fit in {nbits} bits")
        self._grow(nbits)
        head = nbits % 8
        for i in range(nbits - 1, nbits - head - 1, -1):
            self.push_back((value >> i) & 1)
        for shift in range(nbits - head - 8, -1, -8):
            self.append_byte((value >> shift) & 0xFF)

    def __iadd__(self, other: "Bitbuf") -> "Bitbuf":
        if not isinstance(other, Bitbuf):
            return NotImplemented
        self.append(other)
        return self

    def __add__(self, other: "Bitbuf") -> "Bitbuf":
        if not isinstance(other, Bitbuf):
            return NotImplemented
        out = Bitbuf(self._len + other._len, self.config)
        out.append(self)
        out.append(other)
        return out

    def reset(self) -> None:
        """Drop all bits but keep the storage (its content becomes dirty)."""
        self._len = 0

    def clear(self) -> None:
        """Set every bit to 0, keeping the length."""
        whole = self._len // 8
        self._buf[:whole] = bytes(whole)
        for i in range(8 * whole, self._len):
            self.setbit_unsafe(i, 0)

    def zero_dirty_bits(self) -> None:
        """Zero every storage bit at or past the logical length."""
        used = byte_count(self._len)
        self._buf[used:] = bytes(len(self._buf) - used)
        dirty = 8 * used - self._len
        if dirty:
            self._buf[used - 1] = self._buf[used - 1] >> dirty << dirty

    # -- transforms -----------------------------------------------------

    def _resolve_range(self, start: int, end: Optional[int]) -> Tuple[int, int]:
        if end is None:
            end = self._len
        _check_range(start, end, self._len)
        return start, end

    def reverse(self, start: int = 0, end: Optional[int] = None) -> None:
        """Reverse the order of bits in ``[start, end)``, in place.

        :param start: First bit of the range.
        :type start: int
        :param end: One past the last bit, the length if omitted.
        :type end: int | None
        :returns: None
        :rtype: None
        :raises BitbufRangeError: If the range is invalid.
        """
        start, end = self._resolve_range(start, end)
        if start % 8 == 0 and end % 8 == 0:
            lo, hi = start // 8, end // 8
            chunk = self._buf[lo:hi]
            chunk.reverse()
            self._buf[lo:hi] = chunk.translate(_REVERSE_TABLE)
            return

        i, j = start, end - 1
        while i < j:
            a, b = self.getbit_unsafe(i), self.getbit_unsafe(j)
            if a != b:
                self.setbit_unsafe(i, b)
                self.setbit_unsafe(j, a)
            i += 1
            j -= 1

    def reverse_block(self, n: int) -> None:
        """Reverse every consecutive block of ``n`` bits independently.

        A trailing block shorter than ``n`` is reversed over its own span.
        """
        if n < 1:
            raise ValueError(f"Block size must be positive, got {n}")
        for s in range(0, self._len, n):
            self.reverse(s, min(s + n, self._len))

    def invert(self, start: int = 0, end: Optional[int] = None) -> None:
        """Flip every bit in ``[start, end)``; bits outside stay untouched.

        :param start: First bit of the range.
        :type start: int
        :param end: One past the last bit, the length if omitted.
        :type end: int | None
        :returns: None
        :rtype: None
        :raises BitbufRangeError: If the range is invalid.
        """
        start, end = self._resolve_range(start, end)
        i = start
        while i < end and i % 8:
            self.setbit_unsafe(i, 1 - self.getbit_unsafe(i))
            i += 1
        lo, hi = i // 8, end // 8
        if hi > lo:
            self._buf[lo:hi] = self._buf[lo:hi].translate(_INVERT_TABLE)
            i = 8 * hi
        while i < end:
            self.setbit_unsafe(i, 1 - self.getbit_unsafe(i))
            i += 1

    def __invert__(self) -> "Bitbuf":
        out = self.copy()
        out.invert()
        return out

    def _overwrite(self, other: "Bitbuf") -> None:
        """Copy ``other``'s bits over ours; both have the same length."""
        used = byte_count(self._len)
        self._buf[:used] = other._buf[:used]

    def shift_left(self, n: int) -> None:
        """Logical shift towards index 0 by ``n`` bits, zero-filling the end.

        :param n: Shift amount, non-negative.
        :type n: int
        :returns: None
        :rtype: None
        """
        if n < 0:
            raise ValueError(f"Shift amount must be non-negative, got {n}")
        if n == 0:
            return
        if n >= self._len:
            self.clear()
            return
        tmp = Bitbuf(self._len, self.config)
        tmp.append_sub(self, n, self._len)
        tmp.append_zeros(n)
        self._overwrite(tmp)

    def shift_right(self, n: int) -> None:
        """Logical shift away from index 0 by ``n`` bits, zero-filling the front.

        :param n: Shift amount, non-negative.
        :type n: int
        :returns: None
        :rtype: None
        """
        if n < 0:
            raise ValueError(f"Shift amount must be non-negative, got {n}")
        if n == 0:
            return
        if n >= self._len:
            self.clear()
            return
        tmp = Bitbuf(self._len, self.config)
        tmp.append_zeros(n)
        tmp.append_sub(self, 0, self._len - n)
        self._overwrite(tmp)

    def find(self, pattern: Union["Bitbuf", str], start: int = 0) -> int:
        """Return the index of the first occurrence of ``pattern``.

        :param pattern: Bit sequence to look for, as a buffer or in text form.
        :type pattern: Bitbuf | str
        :param start: Index to start searching from.
        :type start: int
        :returns: Index of the first match at or after ``start``, or -1.
        :rtype: int
        """
        if isinstance(pattern, str):
            pattern = Bitbuf.from_text(pattern)
        m = pattern._len
        if start < 0 or start > self._len:
            return -1
        if m == 0:
            return start
        needle = pattern._as_int()
        hay = self._as_int()
        mask = (1 << m) - 1
        for i in range(start, self._len - m + 1):
            if (hay >> (self._len - i - m)) & mask == needle:
                return i
        return -1

    # -- conversion & comparison ----------------------------------------

    def _as_int(self) -> int:
        used = byte_count(self._len)
        raw = int.from_bytes(self._buf[:used], "big")
        return raw >> (8 * used - self._len)

    def to_numeric(self, width: Optional[int] = None, truncate: bool = False) -> int:
        """Interpret the bits as an unsigned MSB-first integer.

        Leading zero bits never count against ``width``, so a buffer longer
        than ``width`` converts fine as long as its value fits.

        :param width: Result width in bits, ``config.numeric_width`` (64 by
            default) if omitted.
        :type width: int | None
        :param truncate: Keep only the low-order ``width`` bits instead of
            raising when the value does not fit.
        :type truncate: bool
        :returns: The unsigned value.
        :rtype: int
        :raises BitbufOverflowError: If the value needs more than ``width``
            bits and ``truncate`` is false.
        """
        if width is None:
            width = self.config.numeric_width
        value = self._as_int()
        if value >> width:
            if not truncate:
                raise BitbufOverflowError(
                    f"Value of {self._len}-bit buffer does not fit in {width} bits"
                )
            value &= (1 << width) - 1
        return value

    def to_bytes(self) -> bytes:
        """Return the packed bytes with bits past the length zeroed."""
        used = byte_count(self._len)
        out = bytearray(self._buf[:used])
        dirty = 8 * used - self._len
        if dirty:
            out[-1] = out[-1] >> dirty << dirty
        return bytes(out)

    @property
    def data(self) -> bytes:
        """Raw packed bytes as stored, including any dirty tail bits."""
        return bytes(self._buf[:byte_count(self._len)])

    def same_bits(self, other: "Bitbuf") -> bool:
        """Return True if both buffers hold the same bit sequence."""
        return self._len == other._len and self._as_int() == other._as_int()

    def __eq__(self, other):
        if not isinstance(other, Bitbuf):
            return NotImplemented
        return compare(self, other) == 0

    def __lt__(self, other):
        if not isinstance(other, Bitbuf):
            return NotImplemented
        return compare(self, other) < 0

    def __le__(self, other):
        if not isinstance(other, Bitbuf):
            return NotImplemented
        return compare(self, other) <= 0

    def __gt__(self, other):
        if not isinstance(other, Bitbuf):
            return NotImplemented
        return compare(self, other) > 0

    def __ge__(self, other):
        if not isinstance(other, Bitbuf):
            return NotImplemented
        return compare(self, other) >= 0

    # -- text -----------------------------------------------------------

    def dump(self, form: str = "hex") -> str:
        """Render the buffer in the text format accepted by :meth:`from_text`."""
        from bittext import dump

        return dump(self, form)

    def __str__(self):
        return self.dump()

    def __repr__(self):
        return f"Bitbuf({self.dump()!r})"


def compare(a: Bitbuf, b: Bitbuf) -> int:
    """Order two buffers by unsigned numeric value.

    The shorter buffer is treated as zero-extended on the left, so length
    alone never decides the result.

    :param a: Left operand.
    :type a: Bitbuf
    :param b: Right operand.
    :type b: Bitbuf
    :returns: -1, 0 or 1 for ``a < b``, ``a == b`` and ``a > b``.
    :rtype: int
    """
    x, y = a._as_int(), b._as_int()
    return (x > y) - (x < y)
