import pytest

from retrostage.strings import find_string_token, str_comp


@pytest.mark.parametrize(
    "a, b",
    [
        ("abc", "abc"),
        ("abc", "ABC"),
        ("Global/Select.wav", "GLOBAL/SELECT.WAV"),
        ("", ""),
        ("PauseMenu", "pausemenu"),
    ],
)
def test_str_comp_matches_ignoring_case(a, b):
    assert str_comp(a, b) is True


@pytest.mark.parametrize(
    "a, b",
    [
        ("abc", "abd"),
        ("ab", "abc"),
        ("abc", "ab"),
        ("CREDITS", "CREDIT5"),
    ],
)
def test_str_comp_rejects_different(a, b):
    assert str_comp(a, b) is False


def test_str_comp_is_symmetric_for_letters():
    pairs = [("Hello", "hELLO"), ("x", "y"), ("Zone", "zone1")]
    for a, b in pairs:
        assert str_comp(a, b) == str_comp(b, a)


def test_find_first_occurrence_at_start():
    assert find_string_token("hello world hello", "hello", 1) == 0


def test_find_second_occurrence():
    text = "hello world hello"
    result = find_string_token(text, "hello", 2)
    assert result > 0
    assert text[result:result + len("hello")] == "hello"


def test_find_missing_occurrence_returns_minus_one():
    assert find_string_token("hello world hello", "hello", 3) == -1


def test_find_absent_token_returns_minus_one():
    assert find_string_token("abcdef", "xyz", 1) == -1


def test_find_stops_when_tail_too_short():
    # The tail "a" cannot hold "ab", so the search gives up there.
    assert find_string_token("xa", "ab", 1) == -1


def test_find_token_longer_than_string():
    assert find_string_token("ab", "abc", 1) == -1


def test_find_non_positive_stop_id_never_matches():
    assert find_string_token("aaaa", "a", 0) == -1


def test_find_overlapping_occurrences():
    first = find_string_token("aaa", "aa", 1)
    second = find_string_token("aaa", "aa", 2)
    assert second == first + 1