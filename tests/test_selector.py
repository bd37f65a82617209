from sheetwatch.extract.selector import find_candidates, matches_condition, select_row


def _rows(markers):
    return [["status", "value"]] + [[m, f"v{i}"] for i, m in enumerate(markers, start=2)]


def test_condition_accepts_numeric_and_text_spellings():
    assert matches_condition(1)
    assert matches_condition(1.0)
    assert matches_condition("1")
    assert matches_condition(" 1 ")
    assert matches_condition("1.0")
    assert not matches_condition(True)
    assert not matches_condition(None)
    assert not matches_condition("11")
    assert not matches_condition(11)
    assert not matches_condition("yes")


def test_custom_match_value():
    assert matches_condition("x", match_value="x")
    assert matches_condition(11, match_value="11")


def test_candidates_are_one_based():
    # rows 1 (header) .. 5
    rows = _rows([None, 1, 0, 1])
    assert find_candidates(rows) == [3, 5]


def test_first_scan_picks_first_candidate():
    rows = _rows([None, 1, None, None, None, 1])
    pick = select_row(rows, 0)
    assert pick.row_number == 3
    assert pick.reason == "new"


def test_forward_progress_picks_next_candidate():
    rows = _rows([None, 1, None, None, None, 1])  # candidates at 3 and 7
    pick = select_row(rows, 3)
    assert pick.row_number == 7
    assert not pick.is_recheck


def test_drift_recheck_returns_cursor_row():
    rows = _rows([None, 1])  # candidate at 3 only
    pick = select_row(rows, 3)
    assert pick.row_number == 3
    assert pick.is_recheck
    assert pick.row == [1, "v3"]


def test_no_pick_when_cursor_row_no_longer_matches():
    rows = _rows([None, 0, 1])  # candidate at 4, cursor at 5
    assert select_row(rows, 5) is None


def test_no_candidates_means_no_pick():
    assert select_row(_rows([0, None]), 0) is None
    assert select_row([], 0) is None
