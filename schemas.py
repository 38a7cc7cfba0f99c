from typing import TypedDict, List, Dict, Literal, Optional, Union

Status = Literal["available", "maybe", "unavailable"]


class TimeSlot(TypedDict, total=False):
    id: str
    time: str                                # "HH:MM" 24시간제
    label: str                               # 표시용 라벨 (예: "9 AM")


class PollResponse(TypedDict, total=False):
    user_id: str
    availability: Dict[str, Status]          # {cell_key: 상태}


class PollSnapshot(TypedDict):
    id: str
    title: str
    vote_type: str                           # 'availability_grid' | ...
    date_options: List[str]                  # ["2026-01-10", ...]
    time_slots: List[TimeSlot]               # 1시간 간격
    event_duration: Optional[int]            # 분 단위, 없으면 단일 슬롯 모드
    is_anonymous: bool
    responses: List[PollResponse]


class SlotAvailability(TypedDict):
    available_count: int
    maybe_count: int
    unavailable_count: int


class CellSummary(SlotAvailability):
    total_responses: int
    percentage: float


class WindowScore(TypedDict):
    date: str
    start_time: str
    end_time: str
    start_slot_index: int
    min_available: int
    avg_available: float
    avg_maybe: float
    composite_score: float
    per_slot_breakdown: List[SlotAvailability]
    guaranteed_users: List[str]
    likely_users: List[str]
    unlikely_users: List[str]


class Clock24(TypedDict):
    kind: Literal["24h"]
    hour: int
    minute: int


class Clock12(TypedDict):
    kind: Literal["12h"]
    hour: int
    minute: int
    period: Literal["AM", "PM"]


Clock = Union[Clock24, Clock12]
