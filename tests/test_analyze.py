import pytest

from analyze import (
    aggregate_slot,
    build_window,
    categorize_users,
    cell_key,
    enumerate_windows,
    find_best_windows,
    score_window,
    select_top_windows,
    slots_per_window,
    status_of,
    unlikely_threshold,
)

DATE = "2026-01-10"


def slots(*times):
    return [{"id": f"slot_{t[:2]}", "time": t} for t in times]


def vote(user_id, **cells):
    """vote("u1", h09="available") -> 2026-01-10T09:00 셀에 투표"""
    return {
        "user_id": user_id,
        "availability": {cell_key(DATE, f"{k[1:]}:00"): v for k, v in cells.items()},
    }


# -----------------------------------------------------------------------------
# 셀 주소 / 집계
# -----------------------------------------------------------------------------

def test_cell_key_concatenates_date_and_time():
    assert cell_key("2026-01-10", "09:00") == "2026-01-10T09:00"


def test_missing_cell_and_missing_map_are_unavailable():
    assert status_of({"user_id": "u1", "availability": {}}, DATE, "09:00") == "unavailable"
    assert status_of({"user_id": "u1", "availability": None}, DATE, "09:00") == "unavailable"
    assert status_of({"user_id": "u1"}, DATE, "09:00") == "unavailable"


def test_aggregate_counts_two_available_one_maybe():
    responses = [vote("u1", h09="available"), vote("u2", h09="available"), vote("u3", h09="maybe")]

    stats = aggregate_slot(DATE, slots("09:00")[0], responses)

    assert stats == {"available_count": 2, "maybe_count": 1, "unavailable_count": 0}


def test_aggregate_counts_always_sum_to_response_count():
    responses = [
        vote("u1", h09="available"),
        vote("u2", h10="maybe"),
        {"user_id": "u3", "availability": None},
        vote("u4", h09="unavailable"),
    ]

    for slot in slots("09:00", "10:00", "11:00"):
        stats = aggregate_slot(DATE, slot, responses)
        assert sum(stats.values()) == len(responses)


# -----------------------------------------------------------------------------
# 윈도우 나열
# -----------------------------------------------------------------------------

@pytest.mark.parametrize("duration, expected", [
    (None, 1), (0, 1), (-30, 1), (60, 1), (90, 2), (120, 2), (420, 7),
])
def test_slots_per_window_rounds_up(duration, expected):
    assert slots_per_window(duration) == expected


def test_two_hour_event_over_three_slots_gives_two_windows():
    windows = list(enumerate_windows([DATE], slots("09:00", "10:00", "11:00"), 120))

    assert [(d, i, [s["time"] for s in w]) for d, i, w in windows] == [
        (DATE, 0, ["09:00", "10:00"]),
        (DATE, 1, ["10:00", "11:00"]),
    ]


def test_windows_never_span_two_dates():
    dates = ["2026-01-10", "2026-01-11"]
    windows = list(enumerate_windows(dates, slots("09:00", "10:00", "11:00"), 180))

    assert [(d, i) for d, i, _ in windows] == [("2026-01-10", 0), ("2026-01-11", 0)]


def test_duration_longer_than_grid_yields_nothing():
    grid = slots("09:00", "10:00", "11:00", "12:00", "13:00")

    assert list(enumerate_windows([DATE, "2026-01-11"], grid, 420)) == []
    assert find_best_windows([DATE, "2026-01-11"], grid, [vote("u1", h09="available")], 420) == []


# -----------------------------------------------------------------------------
# 점수
# -----------------------------------------------------------------------------

def test_fallback_score_counts_maybe_as_half():
    stats = [{"available_count": 2, "maybe_count": 1, "unavailable_count": 0}]

    assert score_window(stats, None) == (2, 2, 1, 2.5)


def test_short_event_weights():
    stats = [
        {"available_count": 2, "maybe_count": 0, "unavailable_count": 0},
        {"available_count": 1, "maybe_count": 1, "unavailable_count": 0},
    ]

    min_available, avg_available, avg_maybe, composite = score_window(stats, 120)

    assert (min_available, avg_available, avg_maybe) == (1, 1.5, 0.5)
    assert composite == pytest.approx(0.50 * 1.5 + 0.35 * 1 + 0.15 * 0.5)


def test_long_event_weights_start_above_five_hours():
    stats = [
        {"available_count": 2, "maybe_count": 0, "unavailable_count": 0},
        {"available_count": 1, "maybe_count": 1, "unavailable_count": 0},
    ]

    assert score_window(stats, 360)[3] == pytest.approx(0.60 * 1.5 + 0.25 * 1 + 0.15 * 0.5)
    assert score_window(stats, 300)[3] == pytest.approx(0.50 * 1.5 + 0.35 * 1 + 0.15 * 0.5)


@pytest.mark.parametrize("duration", [None, 120, 480])
def test_more_available_never_lowers_score(duration):
    base = [
        {"available_count": 1, "maybe_count": 1, "unavailable_count": 1},
        {"available_count": 2, "maybe_count": 0, "unavailable_count": 1},
    ]
    if duration is None:
        base = base[:1]

    for index in range(len(base)):
        bumped = [dict(s) for s in base]
        bumped[index]["available_count"] += 1
        assert score_window(bumped, duration)[3] >= score_window(base, duration)[3]


# -----------------------------------------------------------------------------
# 참가자 분류
# -----------------------------------------------------------------------------

@pytest.mark.parametrize("length, expected", [
    (1, 1), (2, 1), (3, 1), (4, 1), (5, 1), (6, 1), (7, 2), (8, 2), (9, 3), (12, 3),
])
def test_unlikely_threshold_boundaries(length, expected):
    assert unlikely_threshold(length) == expected


def test_unavailable_for_single_hour_event_is_unlikely():
    window = build_window(DATE, 0, slots("09:00"), [vote("u1", h09="unavailable")], 60)

    assert window["unlikely_users"] == ["u1"]
    assert window["guaranteed_users"] == [] and window["likely_users"] == []


def test_short_window_with_one_maybe_is_unlikely():
    grid = slots("09:00", "10:00", "11:00", "12:00")
    responses = [vote("u1", h09="available", h10="available", h11="available", h12="maybe")]

    assert categorize_users(DATE, grid, responses)["unlikely"] == ["u1"]


def test_seven_hour_window_tolerates_one_missing_slot():
    grid = slots("09:00", "10:00", "11:00", "12:00", "13:00", "14:00", "15:00")
    all_day = {f"h{t[:2]}": "available" for t in ("09", "10", "11", "12", "13", "14", "15")}
    responses = [
        vote("full", **all_day),
        vote("one_maybe", **{**all_day, "h12": "maybe"}),
        vote("one_missing", **{**all_day, "h15": "unavailable"}),
        vote("two_missing", **{**all_day, "h09": "unavailable", "h10": "maybe"}),
    ]

    categories = categorize_users(DATE, grid, responses)

    assert categories == {
        "guaranteed": ["full"],
        "likely": ["one_maybe", "one_missing"],
        "unlikely": ["two_missing"],
    }


def test_categories_partition_every_respondent():
    grid = slots("09:00", "10:00", "11:00", "12:00")
    responses = [
        vote("u1", h09="available", h10="available", h11="available", h12="available"),
        vote("u2", h09="maybe", h10="available"),
        vote("u3"),
        {"user_id": "u4", "availability": None},
    ]

    for date, i, window_slots in enumerate_windows([DATE], grid, 120):
        window = build_window(date, i, window_slots, responses, 120)
        users = window["guaranteed_users"] + window["likely_users"] + window["unlikely_users"]
        assert sorted(users) == ["u1", "u2", "u3", "u4"]


# -----------------------------------------------------------------------------
# 상위 구간 선택 / 전체 흐름
# -----------------------------------------------------------------------------

def test_zero_responses_gives_empty_result():
    assert find_best_windows([DATE], slots("09:00", "10:00"), []) == []
    assert find_best_windows([DATE], slots("09:00", "10:00"), [], 120) == []


def test_top_three_are_cut_before_filtering_empty_windows():
    responses = [
        vote("u1", h09="maybe", h10="available", h11="available", h12="available"),
        vote("u2", h09="maybe", h10="available", h11="maybe"),
        vote("u3", h09="maybe"),
    ]

    best = find_best_windows([DATE], slots("09:00", "10:00", "11:00", "12:00"), responses)

    # 09:00 (1.5점, 가능 0명)이 3위 안에 들었다가 빠지고, 12:00 은 채워지지 않음
    assert [(w["start_time"], w["composite_score"]) for w in best] == [("10:00", 2.0), ("11:00", 1.5)]


def test_ties_keep_enumeration_order():
    windows = [
        {"date": "2026-01-10", "start_slot_index": 0, "composite_score": 1.0, "min_available": 1},
        {"date": "2026-01-10", "start_slot_index": 1, "composite_score": 2.0, "min_available": 1},
        {"date": "2026-01-11", "start_slot_index": 0, "composite_score": 1.0, "min_available": 1},
        {"date": "2026-01-11", "start_slot_index": 1, "composite_score": 1.0, "min_available": 1},
    ]

    best = select_top_windows(windows)

    assert [(w["date"], w["start_slot_index"]) for w in best] == [
        ("2026-01-10", 1), ("2026-01-10", 0), ("2026-01-11", 0),
    ]


def test_duration_mode_window_fields():
    grid = [
        {"id": "slot_9", "time": "09:00", "label": "9 AM"},
        {"id": "slot_10", "time": "10:00", "label": "10 AM"},
    ]
    responses = [
        vote("u1", h09="available", h10="available"),
        vote("u2", h09="available", h10="maybe"),
    ]

    [window] = find_best_windows([DATE], grid, responses, 120)

    assert window["start_time"] == "09:00"
    assert window["end_time"] == "11 AM"
    assert window["start_slot_index"] == 0
    assert window["min_available"] == 1
    assert window["composite_score"] == pytest.approx(1.175)
    assert window["guaranteed_users"] == ["u1"]
    assert window["unlikely_users"] == ["u2"]
    assert len(window["per_slot_breakdown"]) == 2


def test_same_input_gives_same_output():
    grid = slots("09:00", "10:00", "11:00")
    responses = [vote("u1", h09="available", h10="maybe"), vote("u2", h10="available", h11="available")]

    first = find_best_windows([DATE, "2026-01-11"], grid, responses, 120)
    second = find_best_windows([DATE, "2026-01-11"], grid, responses, 120)

    assert first == second
    assert repr(first) == repr(second)
