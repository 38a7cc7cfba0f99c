import logging
import math
import re
from datetime import datetime
from typing import Iterator, Optional

from schemas import (
    CellSummary,
    Clock,
    PollResponse,
    SlotAvailability,
    TimeSlot,
    WindowScore,
)

logger = logging.getLogger(__name__)

AVAILABLE = "available"
MAYBE = "maybe"
UNAVAILABLE = "unavailable"

SLOT_MINUTES = 60
LONG_EVENT_MINUTES = 300
TOP_WINDOW_LIMIT = 3

LONG_EVENT_WEIGHTS = {"avg": 0.60, "min": 0.25, "maybe": 0.15}
SHORT_EVENT_WEIGHTS = {"avg": 0.50, "min": 0.35, "maybe": 0.15}
MAYBE_WEIGHT = 0.5

# (최소 점수, 단계) - 높은 단계부터 검사
HEAT_LEVELS = [(0.9, 6), (0.75, 5), (0.6, 4), (0.45, 3), (0.3, 2)]


# =============================================================================
# 1. 셀 주소
# =============================================================================

def cell_key(date: str, time: str) -> str:
    """(날짜, 슬롯) 쌍을 조회용 키로 변환합니다. 예: "2026-01-10T09:00" """
    return f"{date}T{time}"


def status_of(response: PollResponse, date: str, time: str) -> str:
    """응답자의 셀 상태. 기록이 없으면 unavailable 로 취급합니다."""
    availability = response.get("availability") or {}
    status = availability.get(cell_key(date, time))
    if status in (AVAILABLE, MAYBE):
        return status
    return UNAVAILABLE


# =============================================================================
# 2. 슬롯별 집계
# =============================================================================

def aggregate_slot(date: str, slot: TimeSlot, responses: list[PollResponse]) -> SlotAvailability:
    """
    한 셀에 대한 가능/애매/불가 인원을 셉니다.
    세 값의 합은 항상 응답자 수와 같습니다.
    """
    counts = {AVAILABLE: 0, MAYBE: 0, UNAVAILABLE: 0}
    for response in responses:
        counts[status_of(response, date, slot["time"])] += 1

    return {
        "available_count": counts[AVAILABLE],
        "maybe_count": counts[MAYBE],
        "unavailable_count": counts[UNAVAILABLE],
    }


# =============================================================================
# 3. 윈도우 나열
# =============================================================================

def is_fallback_mode(duration_minutes: Optional[int]) -> bool:
    """이벤트 길이가 없거나 0 이하이면 단일 슬롯 모드입니다."""
    return not duration_minutes or duration_minutes <= 0


def slots_per_window(duration_minutes: Optional[int]) -> int:
    """이벤트 길이를 덮는 데 필요한 슬롯 수 (올림)."""
    if is_fallback_mode(duration_minutes):
        return 1
    return math.ceil(duration_minutes / SLOT_MINUTES)


def enumerate_windows(
    date_options: list[str],
    time_slots: list[TimeSlot],
    duration_minutes: Optional[int] = None,
) -> Iterator[tuple[str, int, list[TimeSlot]]]:
    """
    날짜별로 가능한 모든 연속 슬롯 구간을 만들어 냅니다.

    Yields:
        (날짜, 시작 슬롯 인덱스, 구간 슬롯 리스트)
        날짜 순, 같은 날짜 안에서는 시작 슬롯 순.
        필요한 슬롯 수가 전체 슬롯보다 많으면 아무것도 내보내지 않습니다.
    """
    size = slots_per_window(duration_minutes)
    for date in date_options:
        for i in range(len(time_slots) - size + 1):
            yield date, i, time_slots[i:i + size]


# =============================================================================
# 4. 점수 계산
# =============================================================================

def score_weights(duration_minutes: int) -> dict[str, float]:
    """5시간을 넘는 긴 일정은 평균 가능 인원을 더 중시합니다."""
    if duration_minutes > LONG_EVENT_MINUTES:
        return LONG_EVENT_WEIGHTS
    return SHORT_EVENT_WEIGHTS


def score_window(
    slot_stats: list[SlotAvailability],
    duration_minutes: Optional[int] = None,
) -> tuple[int, float, float, float]:
    """
    구간의 슬롯별 집계를 하나의 점수로 합칩니다.

    Returns:
        (최소 가능 인원, 평균 가능 인원, 평균 애매 인원, 종합 점수)
        종합 점수는 정규화하지 않은 인원 환산값입니다.
    """
    available_counts = [s["available_count"] for s in slot_stats]
    maybe_counts = [s["maybe_count"] for s in slot_stats]

    min_available = min(available_counts)
    avg_available = sum(available_counts) / len(available_counts)
    avg_maybe = sum(maybe_counts) / len(maybe_counts)

    if is_fallback_mode(duration_minutes):
        composite = available_counts[0] + MAYBE_WEIGHT * maybe_counts[0]
        return min_available, avg_available, avg_maybe, composite

    weights = score_weights(duration_minutes)
    composite = (
        weights["avg"] * avg_available
        + weights["min"] * min_available
        + weights["maybe"] * avg_maybe
    )
    return min_available, avg_available, avg_maybe, composite


# =============================================================================
# 5. 참가자 분류
# =============================================================================

def unlikely_threshold(length: int) -> int:
    """구간 길이(슬롯 수)에 따른 '참석 어려움' 기준 슬롯 수."""
    if length <= 3:
        return 1
    if length <= 6:
        return math.floor(length * 0.25)
    return math.ceil(length * 0.25)


def categorize_users(
    date: str,
    window_slots: list[TimeSlot],
    responses: list[PollResponse],
) -> dict[str, list[str]]:
    """
    구간에 대해 응답자를 확정 / 가능성 있음 / 어려움 으로 나눕니다.
    모든 응답자는 정확히 한 그룹에 들어갑니다.

    Returns:
        {"guaranteed": [...], "likely": [...], "unlikely": [...]}
    """
    length = len(window_slots)
    threshold = unlikely_threshold(length)
    categories: dict[str, list[str]] = {"guaranteed": [], "likely": [], "unlikely": []}

    for response in responses:
        statuses = [status_of(response, date, slot["time"]) for slot in window_slots]
        available_slots = statuses.count(AVAILABLE)
        maybe_slots = statuses.count(MAYBE)
        unavailable_slots = statuses.count(UNAVAILABLE)

        if available_slots == length:
            category = "guaranteed"
        elif unavailable_slots >= threshold or (unavailable_slots + maybe_slots) >= threshold:
            category = "unlikely"
        else:
            category = "likely"
        categories[category].append(response.get("user_id"))

    return categories


# =============================================================================
# 6. 상위 구간 선택
# =============================================================================

def select_top_windows(windows: list[WindowScore], limit: int = TOP_WINDOW_LIMIT) -> list[WindowScore]:
    """
    점수 내림차순으로 정렬해 상위 limit 개를 자른 뒤,
    가능 인원이 0명인 슬롯이 있는 구간을 제외합니다.
    (자른 다음 거르므로 limit 개보다 적게 나올 수 있습니다)
    """
    # sorted 는 안정 정렬이라 동점이면 나열 순서(날짜, 시작 슬롯)가 유지됩니다
    ranked = sorted(windows, key=lambda w: -w["composite_score"])
    return [w for w in ranked[:limit] if w["min_available"] > 0]


def build_window(
    date: str,
    start_index: int,
    window_slots: list[TimeSlot],
    responses: list[PollResponse],
    duration_minutes: Optional[int] = None,
) -> WindowScore:
    """구간 하나의 집계, 점수, 참가자 분류를 계산합니다."""
    slot_stats = [aggregate_slot(date, slot, responses) for slot in window_slots]
    min_available, avg_available, avg_maybe, composite = score_window(slot_stats, duration_minutes)
    users = categorize_users(date, window_slots, responses)

    last_slot = window_slots[-1]
    return {
        "date": date,
        "start_time": window_slots[0]["time"],
        "end_time": slot_end_time(last_slot.get("label") or last_slot["time"]),
        "start_slot_index": start_index,
        "min_available": min_available,
        "avg_available": avg_available,
        "avg_maybe": avg_maybe,
        "composite_score": composite,
        "per_slot_breakdown": slot_stats,
        "guaranteed_users": users["guaranteed"],
        "likely_users": users["likely"],
        "unlikely_users": users["unlikely"],
    }


def find_best_windows(
    date_options: list[str],
    time_slots: list[TimeSlot],
    responses: list[PollResponse],
    duration_minutes: Optional[int] = None,
) -> list[WindowScore]:
    """
    가용성 그리드에서 가장 좋은 모임 구간을 최대 3개 찾습니다.

    Args:
        date_options: 오름차순 날짜 리스트 ("YYYY-MM-DD")
        time_slots: 1시간 간격의 슬롯 리스트 (모든 날짜 공통)
        responses: 응답 리스트
        duration_minutes: 이벤트 길이 (분). 없으면 단일 슬롯 단위로 평가

    Returns:
        점수순 WindowScore 리스트. 응답이 없거나 가능한 구간이 없으면 빈 리스트
    """
    windows = [
        build_window(date, i, window_slots, responses, duration_minutes)
        for date, i, window_slots in enumerate_windows(date_options, time_slots, duration_minutes)
    ]
    best = select_top_windows(windows)
    logger.debug(
        "%d windows enumerated (%d slots each), %d kept",
        len(windows), slots_per_window(duration_minutes), len(best),
    )
    return best


def score_percentage(window: WindowScore, response_count: int) -> int:
    """종합 점수를 응답자 수 대비 백분율로 바꿉니다. (표시용)"""
    if response_count <= 0:
        return 0
    # 0.5 는 올림 (round 는 짝수 쪽으로 반올림)
    return math.floor(window["composite_score"] / response_count * 100 + 0.5)


# =============================================================================
# 7. 히트맵 / 셀 상세
# =============================================================================

def cell_heatmap(
    date_options: list[str],
    time_slots: list[TimeSlot],
    responses: list[PollResponse],
) -> dict[str, CellSummary]:
    """
    모든 셀의 집계와 가능 비율(가능 1.0, 애매 0.5)을 계산합니다.

    Returns:
        {cell_key: CellSummary, ...}
    """
    total = len(responses)
    heatmap = {}

    for date in date_options:
        for slot in time_slots:
            stats = aggregate_slot(date, slot, responses)
            percentage = 0.0
            if total > 0:
                percentage = (stats["available_count"] + stats["maybe_count"] * MAYBE_WEIGHT) / total * 100
            heatmap[cell_key(date, slot["time"])] = {
                **stats,
                "total_responses": total,
                "percentage": percentage,
            }

    return heatmap


def heat_level(summary: Optional[CellSummary]) -> int:
    """히트맵 색 단계 (0: 아무도 없음 ~ 6: 거의 전원)."""
    if not summary or summary["total_responses"] == 0:
        return 0

    score = summary["percentage"] / 100
    if score == 0:
        return 0
    for minimum, level in HEAT_LEVELS:
        if score >= minimum:
            return level
    return 1


def cell_breakdown(date: str, time: str, responses: list[PollResponse]) -> dict[str, list[str]]:
    """특정 셀에서 상태별 응답자 목록을 반환합니다."""
    breakdown: dict[str, list[str]] = {AVAILABLE: [], MAYBE: [], UNAVAILABLE: []}
    for response in responses:
        breakdown[status_of(response, date, time)].append(response.get("user_id"))
    return breakdown


# =============================================================================
# 8. 시간 표시
# =============================================================================

_CLOCK_24H = re.compile(r"^(\d{1,2}):(\d{2})$")
_CLOCK_12H = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(AM|PM)$", re.IGNORECASE)


def parse_clock(text: str) -> Optional[Clock]:
    """
    "17:00", "5:00 PM", "5 PM" 형태의 시각을 파싱합니다.
    형식이 맞지 않으면 None.
    """
    text = text.strip()

    match = _CLOCK_24H.match(text)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour < 24 and minute < 60:
            return {"kind": "24h", "hour": hour, "minute": minute}
        return None

    match = _CLOCK_12H.match(text)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2) or 0)
        if 1 <= hour <= 12 and minute < 60:
            return {"kind": "12h", "hour": hour, "minute": minute, "period": match.group(3).upper()}

    return None


def clock_minutes(clock: Clock) -> int:
    """자정 기준 분으로 변환합니다."""
    hour = clock["hour"]
    if clock["kind"] == "12h":
        hour = hour % 12
        if clock["period"] == "PM":
            hour += 12
    return hour * 60 + clock["minute"]


def format_clock_label(minutes: int) -> str:
    """자정 기준 분을 "9 AM" / "9:30 AM" 형태로 바꿉니다. 24시는 "12 AM"."""
    hours, minute = divmod(minutes % (24 * 60), 60)
    period = "PM" if hours >= 12 else "AM"
    display_hour = hours % 12 or 12

    if minute == 0:
        return f"{display_hour} {period}"
    return f"{display_hour}:{minute:02d} {period}"


def slot_end_time(time: str) -> str:
    """슬롯 시작 시각의 1시간 뒤 라벨. 파싱할 수 없으면 입력을 그대로 돌려줍니다."""
    clock = parse_clock(time)
    if clock is None:
        return time
    return format_clock_label(clock_minutes(clock) + SLOT_MINUTES)


def slot_range_label(time: str) -> str:
    """한 슬롯의 범위. 예: "9 AM - 10 AM", "11 PM - 12 AM" """
    clock = parse_clock(time)
    if clock is None:
        return time
    start = clock_minutes(clock)
    return f"{format_clock_label(start)} - {format_clock_label(start + SLOT_MINUTES)}"


def format_date_short(date: str) -> str:
    """"2026-01-10" -> "JAN 10" """
    day = datetime.strptime(date, "%Y-%m-%d")
    return f"{day.strftime('%b').upper()} {day.day}"


def window_display(window: WindowScore, time_slots: list[TimeSlot]) -> str:
    """예: "JAN 10 from 9 AM to 11 AM" """
    start_label = window["start_time"]
    for slot in time_slots:
        if slot["time"] == window["start_time"]:
            start_label = slot.get("label") or slot["time"]
            break

    return f"{format_date_short(window['date'])} from {start_label} to {window['end_time']}"
