from typing import Optional, Union

from bitbuf import Bitbuf, byte_count


class BitWriter:
    """Bit-packing writer on top of a :class:`~bitbuf.Bitbuf`.

    :ivar bits: Buffer receiving the written bits.
    :type bits: Bitbuf
    """

    def __init__(self, bits: Optional[Bitbuf] = None):
        """Initialize a writer that appends to ``bits``.

        :param bits: Destination buffer; a fresh empty one if omitted.
        :type bits: Bitbuf | None
        :returns: None
        :rtype: None
        """
        self.bits = bits if bits is not None else Bitbuf()

    @property
    def bit_count(self) -> int:
        """Number of bits written past the last byte boundary (0-7)."""
        return len(self.bits) % 8

    def write_bits(self, value: int, nbits: int):
        """Write the lowest ``nbits`` of ``value`` to the buffer, MSB first.

        :param value: Integer whose bits will be written.
        :type value: int
        :param nbits: Number of bits from ``value`` to write.
        :type nbits: int
        :returns: None
        :rtype: None
        """
        self.bits.append_numeric(value & ((1 << nbits) - 1), nbits)

    def align(self):
        """Pad with zero bits up to the next byte boundary."""
        if self.bit_count:
            self.bits.append_zeros(8 - self.bit_count)

    def write_bytes(self, data: bytes):
        """Write raw bytes, aligning pending bits to the next byte boundary.

        :param data: Byte sequence to append to the output.
        :type data: bytes
        :returns: None
        :rtype: None
        """
        self.align()
        self.bits.append(Bitbuf.attach(data))

    def flush(self) -> bytes:
        """Pad the last partial byte with zeros and return all bytes written.

        :returns: The accumulated bytes written so far.
        :rtype: bytes
        """
        self.align()
        return self.bits.to_bytes()


class BitReader:
    """Sequential reader over a :class:`~bitbuf.Bitbuf`.

    :ivar bits: Source buffer.
    :type bits: Bitbuf
    :ivar pos: Index of the next bit to read.
    :type pos: int
    """

    def __init__(self, source: Union[Bitbuf, bytes, bytearray]):
        """Create a bit reader for ``source``.

        :param source: Buffer to read from; bytes-like input is wrapped
            as a buffer of ``8 * len(source)`` bits.
        :type source: Bitbuf | bytes | bytearray
        :returns: None
        :rtype: None
        """
        self.bits = source if isinstance(source, Bitbuf) else Bitbuf.attach(source)
        self.pos = 0

    @property
    def remaining(self) -> int:
        """Number of bits left to read."""
        return len(self.bits) - self.pos

    def read_bits(self, nbits: int) -> int:
        """Read ``nbits`` bits and return them as an integer, MSB first.

        :param nbits: Number of bits to read.
        :type nbits: int
        :returns: The integer value composed of the next ``nbits`` bits.
        :rtype: int
        :raises EOFError: If fewer than ``nbits`` bits remain. The cursor
            does not move in that case.
        :raises ValueError: If ``nbits`` is negative.
        """
        if nbits < 0:
            raise ValueError(f"Cannot read a negative number of bits: {nbits}")
        if nbits > self.remaining:
            raise EOFError("Unexpected end of data")
        result = 0
        for i in range(self.pos, self.pos + nbits):
            result = (result << 1) | self.bits.getbit_unsafe(i)
        self.pos += nbits
        return result

    def read_bytes(self, nbytes: int) -> bytes:
        """Read ``nbytes`` raw bytes.

        Skips to the next byte boundary first. The result is shorter than
        ``nbytes`` only if the source runs out.

        :param nbytes: Number of bytes to read.
        :type nbytes: int
        :returns: The next ``nbytes`` bytes.
        :rtype: bytes
        """
        self.pos = min(8 * byte_count(self.pos), len(self.bits))
        count = min(nbytes, self.remaining // 8)
        first = self.pos // 8
        out = bytes(self.bits.byte_at(first + i) for i in range(count))
        self.pos += 8 * count
        return out
