import sys
from pathlib import Path
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from bitbuf import Bitbuf  # noqa: E402


@pytest.fixture()
def stairs():
    """Buffer holding bytes F1 F2 F4 F8 (32 bits)."""
    b = Bitbuf()
    for u8 in (0xF1, 0xF2, 0xF4, 0xF8):
        b.append_byte(u8)
    return b


@pytest.fixture()
def deadbeef():
    """Buffer holding bytes DE AD BE EF (32 bits)."""
    return Bitbuf.attach(b"\xde\xad\xbe\xef")


def bits_of(b):
    """Return the bits of ``b`` as a plain string of 0/1 characters."""
    return "".join(str(bit) for bit in b)


@pytest.fixture()
def bits_of_fn():
    """Fixture that provides the bits_of helper without importing conftest."""
    return bits_of
