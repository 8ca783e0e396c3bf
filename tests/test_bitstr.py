# tests/test_bitstr.py
import pytest

from qregister.bitstr import BitStr, bit


def test_parse_leftmost_is_highest():
    b = bit("101100")
    assert int(b) == 44
    assert len(b) == 6
    assert b[2] == 1 and b[0] == 0 and b[5] == 1


def test_leading_zeros_are_kept():
    b = bit("0011")
    assert (b.value, b.length) == (3, 4)
    assert str(b) == "0011"
    assert repr(b) == 'bit"0011"'


def test_underscores_are_ignored():
    assert bit("10_01") == BitStr(9, 4)


def test_index_protocol():
    assert [0, 1, 2, 3][bit("11")] == 3


@pytest.mark.parametrize("text", ["102", "ab", "1 0"])
def test_invalid_literals(text):
    with pytest.raises(ValueError):
        bit(text)


def test_value_must_fit():
    with pytest.raises(ValueError):
        BitStr(4, 2)
    with pytest.raises(ValueError):
        BitStr(-1, 2)


def test_qubit_out_of_range():
    with pytest.raises(IndexError):
        bit("10")[2]
