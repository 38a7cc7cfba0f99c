"""
투표(Poll) 데이터 추출 모듈

웹 앱의 GET /api/poll/{id} 응답을 정규화된 PollSnapshot 으로 바꿉니다.
"""

import logging

import requests

from config import Config
from schemas import PollResponse, PollSnapshot, TimeSlot

logger = logging.getLogger(__name__)


def _get_api_url(url_or_id: str, base_url: str | None = None) -> str:
    """
    투표 링크/ID 에서 API URL 을 만듭니다.

    "…/api/poll/{id}" 는 그대로, "…/poll/{id}" 나 ID 만 주어지면 base_url 기준으로 만듭니다.
    """
    url_or_id = url_or_id.strip()
    if "/api/poll/" in url_or_id:
        return url_or_id

    poll_id = url_or_id.strip("/").split("/")[-1]
    base = (base_url or Config.POLL_API_BASE_URL).rstrip("/")
    return f"{base}/api/poll/{poll_id}"


def _fetch_data(api_url: str) -> dict:
    """API에서 JSON 데이터 가져오기"""
    headers = {"Accept": "application/json"}
    try:
        response = requests.get(api_url, headers=headers, timeout=Config.REQUEST_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException:
        logger.error("Failed to fetch poll from %s", api_url)
        raise
    return response.json()


def _parse_time_slots(raw_slots: list[dict] | None) -> list[TimeSlot]:
    """time_slots 배열을 시각 순으로 정렬된 TimeSlot 리스트로 변환합니다."""
    slots: list[TimeSlot] = []
    for raw in raw_slots or []:
        slot: TimeSlot = {"id": str(raw.get("id", raw["time"])), "time": raw["time"]}
        if raw.get("label"):
            slot["label"] = raw["label"]
        slots.append(slot)

    # "HH:MM" 은 두 자리로 맞춰져 있어 문자열 정렬이 곧 시각 정렬
    return sorted(slots, key=lambda s: s["time"])


def _parse_responses(raw_responses: list[dict] | None) -> list[PollResponse]:
    """
    응답 리스트를 정규화합니다.
    익명 투표는 user_id 가 빠져 있으므로 응답 id 를 대신 사용합니다.
    """
    responses: list[PollResponse] = []
    for raw in raw_responses or []:
        responses.append({
            "user_id": str(raw.get("user_id") or raw.get("id")),
            "availability": raw.get("availability") or {},
        })
    return responses


def _parse_duration(value) -> int | None:
    if value in (None, ""):
        return None
    return int(value)


def get_poll_data(url_or_id: str, base_url: str | None = None) -> PollSnapshot:
    """
    투표 링크 또는 ID 로 데이터를 가져와 정규화된 형태로 반환합니다.

    Args:
        url_or_id: 투표 페이지 URL, API URL 또는 투표 ID
        base_url: API 서버 주소 (기본값: Config.POLL_API_BASE_URL)

    Returns:
        PollSnapshot: 정규화된 데이터 딕셔너리

    Raises:
        requests.RequestException: 네트워크 / HTTP 오류
        ValueError: 응답에 poll 객체가 없을 때
    """
    api_url = _get_api_url(url_or_id, base_url)
    logger.info("Fetching poll data from %s", api_url)
    raw_data = _fetch_data(api_url)

    poll = raw_data.get("poll")
    if not poll:
        raise ValueError(f"Poll payload missing from {api_url}")

    return {
        "id": str(poll["id"]),
        "title": poll.get("title", "Untitled Poll"),
        "vote_type": poll.get("vote_type", ""),
        "date_options": sorted(set(poll.get("date_options") or [])),
        "time_slots": _parse_time_slots(poll.get("time_slots")),
        "event_duration": _parse_duration(poll.get("event_duration")),
        "is_anonymous": bool(raw_data.get("isAnonymous", poll.get("is_anonymous", False))),
        "responses": _parse_responses(raw_data.get("responses")),
    }
