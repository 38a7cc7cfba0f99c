import html
import logging

from analyze import (
    cell_heatmap,
    cell_key,
    find_best_windows,
    format_date_short,
    heat_level,
    score_percentage,
    window_display,
)
from config import Config
from schemas import PollSnapshot

logger = logging.getLogger(__name__)

# 히트맵 단계별 색 (0: 아무도 없음)
HEAT_COLORS = ["#e5e7eb", "#dbeafe", "#bfdbfe", "#93c5fd", "#60a5fa", "#3b82f6", "#1d4ed8"]

WRONG_VOTE_TYPE = "Error: This command only works with availability grid polls."
NO_RESPONSES = "No responses yet for this poll. Ask people to vote first!"
NO_WINDOWS = "Could not find any time slots where people are available."


def poll_url(poll_id: str) -> str:
    return f"{Config.WEB_APP_URL.rstrip('/')}/poll/{poll_id}"


def best_times_message(poll: PollSnapshot) -> str:
    """
    채팅 명령용 '최적 시간' 메시지를 만듭니다.
    웹 페이지와 같은 analyze.find_best_windows 결과를 사용합니다.
    """
    if poll["vote_type"] != "availability_grid":
        return WRONG_VOTE_TYPE

    responses = poll["responses"]
    if not responses:
        return NO_RESPONSES

    windows = find_best_windows(
        poll["date_options"],
        poll["time_slots"],
        responses,
        poll["event_duration"],
    )
    if not windows:
        logger.info("No feasible window for poll %s", poll["id"])
        return NO_WINDOWS

    count = len(responses)
    lines = []
    lines.append(f"Best Times: {poll['title']}")
    lines.append(f"Based on {count} response{'' if count == 1 else 's'}")
    lines.append("")

    for index, window in enumerate(windows, start=1):
        display = window_display(window, poll["time_slots"])
        lines.append(f"#{index} - {display} ({score_percentage(window, count)}% availability score)")

        user_info = []
        if window["guaranteed_users"]:
            user_info.append(f"{len(window['guaranteed_users'])} guaranteed")
        if window["likely_users"]:
            user_info.append(f"{len(window['likely_users'])} likely")
        if window["unlikely_users"]:
            user_info.append(f"{len(window['unlikely_users'])} unlikely")

        for info in user_info or ["No availability data"]:
            lines.append(f"   {info}")
        lines.append("")

    lines.append(f"View Full Poll: {poll_url(poll['id'])}")
    return "\n".join(lines)


def heatmap_html(poll: PollSnapshot) -> str:
    """
    날짜 x 슬롯 히트맵을 HTML 표로 그립니다.
    라벨은 투표 작성자가 넣은 값이므로 모두 escape 합니다.
    """
    heatmap = cell_heatmap(poll["date_options"], poll["time_slots"], poll["responses"])

    header = "".join(f"<th>{html.escape(format_date_short(d))}</th>" for d in poll["date_options"])
    rows = []
    for slot in poll["time_slots"]:
        cells = []
        for date in poll["date_options"]:
            summary = heatmap[cell_key(date, slot["time"])]
            color = HEAT_COLORS[heat_level(summary)]
            cells.append(
                f"<td title='{int(summary['percentage'] + 0.5)}%' "
                f"style='background:{color};width:56px;height:28px'></td>"
            )
        label = html.escape(slot.get("label") or slot["time"])
        rows.append(f"<tr><th>{label}</th>{''.join(cells)}</tr>")

    return f"<table><tr><th></th>{header}</tr>{''.join(rows)}</table>"
