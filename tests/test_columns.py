import pytest

from sheetwatch.extract.columns import index_to_letter, letter_to_index, ordered_columns


@pytest.mark.parametrize(
    "index, letter",
    [(0, "A"), (25, "Z"), (26, "AA"), (51, "AZ"), (52, "BA"), (701, "ZZ"), (702, "AAA"), (18277, "ZZZ"), (18278, "AAAA")],
)
def test_index_letter_boundaries(index, letter):
    assert index_to_letter(index) == letter
    assert letter_to_index(letter) == index


def test_lowercase_letters_are_accepted():
    assert letter_to_index("ab") == 27


def test_invalid_inputs_raise():
    with pytest.raises(ValueError):
        index_to_letter(-1)
    with pytest.raises(ValueError):
        letter_to_index("A1")
    with pytest.raises(ValueError):
        letter_to_index("")


def test_ordered_columns_uses_column_order_not_string_order():
    mapping = {"AA": "x", "B": "y", "A": "z"}
    assert list(ordered_columns(mapping)) == ["A", "B", "AA"]


def test_round_trip_over_a_wide_range():
    for index in range(0, 20000):
        assert letter_to_index(index_to_letter(index)) == index
