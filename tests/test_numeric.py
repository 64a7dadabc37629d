import pytest

from bitbuf import Bitbuf, BitbufConfig, BitbufOverflowError, compare


def test_to_numeric_msb_first():
    assert Bitbuf().to_numeric() == 0
    assert Bitbuf.from_text("0b1").to_numeric() == 1
    assert Bitbuf.from_text("0b100").to_numeric() == 4
    assert Bitbuf.from_text("0xdeadbeef").to_numeric() == 0xDEADBEEF


def test_to_numeric_ignores_dirty_tail():
    assert Bitbuf.attach(b"\xff", 3).to_numeric() == 7


def test_to_numeric_leading_zeros_do_not_overflow():
    b = Bitbuf.zeros(100)
    b.push_back(1)
    assert b.to_numeric() == 1


def test_to_numeric_overflow():
    b = Bitbuf.from_text("0b1")
    b.append_zeros(64)
    with pytest.raises(BitbufOverflowError):
        b.to_numeric()
    with pytest.raises(OverflowError):
        b.to_numeric(width=64)


def test_to_numeric_truncates_to_low_bits():
    b = Bitbuf.from_text("0x1 0xffffffffffffffff")
    assert b.to_numeric(truncate=True) == 0xFFFFFFFFFFFFFFFF
    assert b.to_numeric(width=8, truncate=True) == 0xFF
    assert b.to_numeric(width=68) == (1 << 64) | 0xFFFFFFFFFFFFFFFF


def test_numeric_width_from_config():
    b = Bitbuf.from_text("0x1ff", BitbufConfig(numeric_width=8))
    with pytest.raises(BitbufOverflowError):
        b.to_numeric()
    assert b.to_numeric(width=9) == 0x1FF


@pytest.mark.parametrize(
    "value, nbits, text",
    [
        (0, 0, ""),
        (1, 1, "0b1"),
        (5, 4, "0x5"),
        (0xABC, 12, "0xabc"),
        (0x1F5, 9, "0xfa 0b1"),
    ],
)
def test_append_numeric(value, nbits, text):
    b = Bitbuf()
    b.append_numeric(value, nbits)
    assert len(b) == nbits
    assert b.to_numeric() == value
    assert b.dump() == text


def test_append_numeric_unaligned():
    b = Bitbuf.from_text("0b11")
    b.append_numeric(0x0F0F, 16)
    assert b.dump("bin") == "0b110000111100001111"


@pytest.mark.parametrize("value, nbits", [(8, 3), (-1, 4), (1, 0)])
def test_append_numeric_rejects_values_that_do_not_fit(value, nbits):
    b = Bitbuf()
    with pytest.raises(BitbufOverflowError):
        b.append_numeric(value, nbits)
    assert len(b) == 0


@pytest.mark.parametrize(
    "a, b, expected",
    [
        ("0b1", "0b01", 0),
        ("0b0001", "", 1),
        ("0x0f", "0b10000", -1),
        ("0x80", "0b1 0x00", -1),
        ("0xff", "0xff", 0),
        ("0b0", "", 0),
    ],
)
def test_compare_numeric_order(a, b, expected):
    x, y = Bitbuf.from_text(a), Bitbuf.from_text(b)
    assert compare(x, y) == expected
    assert compare(y, x) == -expected


def test_comparison_operators():
    small = Bitbuf.from_text("0b0011")
    big = Bitbuf.from_text("0b100")
    assert small < big
    assert big > small
    assert small <= big
    assert big >= small
    assert small != big
    assert Bitbuf.from_text("0b000011") == small


def test_equality_is_numeric_not_bitwise():
    a = Bitbuf.from_text("0b01")
    b = Bitbuf.from_text("0b1")
    assert a == b
    assert not a.same_bits(b)
    assert a.same_bits(Bitbuf.from_text("01"))


def test_comparison_with_other_types():
    assert Bitbuf() != 0
    with pytest.raises(TypeError):
        _ = Bitbuf() < 1
