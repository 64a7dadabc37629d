import pytest

from bitbuf import Bitbuf
from bitops import BitWriter, BitReader


def test_bitwriter_write_bits_and_flush_basic():
    bw = BitWriter()
    bw.write_bits(0b1010, 4)
    bw.write_bits(0b11110000, 8)
    out = bw.flush()
    assert isinstance(out, bytes)
    assert len(out) == 2
    assert out[0] == 0b10101111
    assert out[1] == 0b00000000


def test_bitwriter_keeps_lowest_bits():
    bw = BitWriter()
    bw.write_bits(0x1F3, 4)
    assert bw.bits.dump("bin") == "0b0011"
    assert bw.bit_count == 4


def test_bitwriter_write_bytes_aligns():
    bw = BitWriter()
    bw.write_bits(0b1, 1)
    bw.write_bytes(b"AB")
    out = bw.flush()
    assert out[0] == 0b10000000
    assert out[1:] == b"AB"


def test_bitwriter_appends_to_given_buffer():
    target = Bitbuf.from_text("0b11")
    bw = BitWriter(target)
    bw.write_bits(0b01, 2)
    assert bw.bits is target
    assert target.dump("bin") == "0b1101"


def test_write_zero_bits_is_noop_and_flush_padding():
    bw = BitWriter()
    bw.write_bits(0xAA, 8)
    bw.write_bits(0, 0)
    out = bw.flush()
    assert out == bytes([0xAA])


def test_bitreader_read_bits_and_bytes_alignment():
    data = bytes([0b11001010, 0xFF, 0x00])
    br = BitReader(data)
    first3 = br.read_bits(3)
    assert first3 == 0b110
    next5 = br.read_bits(5)
    assert next5 == 0b01010
    b = br.read_bytes(2)
    assert b == bytes([0xFF, 0x00])
    assert br.remaining == 0


def test_bitreader_read_bytes_skips_to_boundary():
    br = BitReader(b"\xf0\x12\x34")
    assert br.read_bits(1) == 1
    assert br.read_bytes(5) == b"\x12\x34"
    assert br.pos == 24


def test_bitreader_over_bitbuf():
    br = BitReader(Bitbuf.from_text("0b10110"))
    assert br.read_bits(2) == 0b10
    assert br.remaining == 3
    assert br.read_bits(3) == 0b110


def test_bitreader_eoferror_on_insufficient_bits():
    br = BitReader(b"\xF0")
    with pytest.raises(EOFError):
        _ = br.read_bits(9)
    assert br.pos == 0


def test_writer_reader_share_layout():
    bw = BitWriter()
    fields = [(5, 3), (0, 1), (1023, 10), (0xABCD, 16), (1, 2)]
    for value, nbits in fields:
        bw.write_bits(value, nbits)
    br = BitReader(bw.bits)
    assert [br.read_bits(n) for _, n in fields] == [v for v, _ in fields]


def test_bitreader_rejects_negative_bit_count():
    br = BitReader(b"\xAA")
    with pytest.raises(ValueError):
        br.read_bits(-1)
    assert br.pos == 0
    assert br.read_bits(0) == 0
    assert br.pos == 0
