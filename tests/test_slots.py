import pytest

from mcoj_api.errors import InvalidPositionError, ValidationError
from mcoj_api.services.slots import next_free_position, validate_position


def test_empty_gallery_starts_at_one():
    assert next_free_position([]) == 1


def test_picks_lowest_gap():
    assert next_free_position([1, 2, 4, 5]) == 3
    assert next_free_position([2, 3]) == 1


def test_full_gallery_has_no_free_position():
    assert next_free_position(range(1, 9)) is None


def test_respects_custom_size():
    assert next_free_position([1, 2], size=2) is None
    assert next_free_position([1], size=2) == 2


@pytest.mark.parametrize("value, expected", [(1, 1), (8, 8), ("3", 3), (" 5 ", 5)])
def test_validate_position_accepts_slots(value, expected):
    assert validate_position(value) == expected


@pytest.mark.parametrize("value", [0, 9, -1, "0", "abc", "2.5", 2.0, None, True, False, [1]])
def test_validate_position_rejects_everything_else(value):
    with pytest.raises(InvalidPositionError) as excinfo:
        validate_position(value)
    assert "between 1 and 8" in excinfo.value.message


def test_invalid_position_is_a_validation_error():
    assert issubclass(InvalidPositionError, ValidationError)
    assert InvalidPositionError("x").status_code == 400
