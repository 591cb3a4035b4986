import pytest

from strgeno.cstag import JUNCTION_WINDOW, parse_cs, split_cs
from strgeno.repeats import RepeatInterval

REPEAT = RepeatInterval("chr1", 1, 100)


def test_split_cs_example():
    assert split_cs(":32*nt*na:10-gga:5+aaa:10") == [
        ":32", "*nt", "*na", ":10", "-gga", ":5", "+aaa", ":10"
    ]


def test_split_cs_round_trip():
    cs = ":5+acgtac*ag-tt:7"
    assert "".join(split_cs(cs)) == cs


def test_split_cs_empty():
    assert split_cs("") == []


def test_insertion_at_junction():
    assert parse_cs(0, ":100+ACGTACGT:50", 5, 100, REPEAT) == "ACGTACGT"


def test_insertion_far_from_junction_ignored():
    assert parse_cs(0, ":50+ACGTACGT:50", 5, 100, REPEAT) is None


def test_short_insertion_ignored():
    assert parse_cs(0, ":100+ACG:5", 5, 100, REPEAT) is None


def test_insertion_of_exactly_minlen_ignored():
    assert parse_cs(0, ":100+ACGTA:5", 5, 100, REPEAT) is None


@pytest.mark.parametrize("offset, included", [(JUNCTION_WINDOW, True), (JUNCTION_WINDOW + 1, False),
                                              (-JUNCTION_WINDOW, True), (-JUNCTION_WINDOW - 1, False)])
def test_window_boundaries(offset, included):
    result = parse_cs(0, f":{100 + offset}+AAAAAAAA", 5, 100, REPEAT)
    assert (result == "AAAAAAAA") is included


def test_target_start_counts():
    assert parse_cs(40, ":60+AAAAAAAA", 5, 100, REPEAT) == "AAAAAAAA"
    assert parse_cs(0, ":60+AAAAAAAA", 5, 100, REPEAT) is None


def test_mismatch_advances_one_base():
    assert parse_cs(0, ":84*ac+AAAAAAAA", 5, 100, REPEAT) == "AAAAAAAA"
    assert parse_cs(0, ":84+AAAAAAAA", 5, 100, REPEAT) is None


def test_deletion_advances_its_length():
    assert parse_cs(0, ":80-ggggg+AAAAAAAA", 5, 100, REPEAT) == "AAAAAAAA"
    assert parse_cs(0, ":80-gggg+AAAAAAAA", 5, 100, REPEAT) is None


def test_multiple_insertions_are_joined():
    result = parse_cs(0, ":100+AAAAAA:2+CCCCCC", 5, 100, REPEAT)
    assert result == "AAAAAA" + "CCCCCC"