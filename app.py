import streamlit as st
from config import Config, setup_logging
from get_data.poll_api import get_poll_data
from analyze import (
    cell_breakdown,
    find_best_windows,
    format_date_short,
    score_percentage,
    slot_range_label,
    window_display,
)
from report import best_times_message, heatmap_html

setup_logging()
st.set_page_config(page_title="Best Times", page_icon="📊", layout="wide")


# =============================================================================
# 캐싱된 데이터 로드 함수 (같은 URL은 캐시 사용, 불러오기를 누르면 새로 가져옴)
# =============================================================================
@st.cache_data(show_spinner=False, ttl=Config.CACHE_TTL)
def load_poll(url: str):
    return get_poll_data(url)


st.title("📊 Best Times")

# =============================================================================
# 상단: URL 입력
# =============================================================================
col1, col2 = st.columns([4, 1])
with col1:
    url = st.text_input(
        "🔗 Poll link",
        placeholder="Paste a poll link or poll ID",
        label_visibility="collapsed",
    )
with col2:
    load_button = st.button("Load", type="primary", use_container_width=True)

if "poll" not in st.session_state:
    st.session_state.poll = None

if load_button and url:
    with st.spinner("Loading poll..."):
        try:
            # 새 투표가 들어왔을 수 있으니 캐시를 비우고 다시 가져옴
            load_poll.clear()
            st.session_state.poll = load_poll(url)
            st.success(f"✅ Loaded '{st.session_state.poll['title']}'")
        except Exception as e:
            st.error(f"❌ Error: {e}")

# =============================================================================
# 메인 UI
# =============================================================================
if st.session_state.poll:
    poll = st.session_state.poll

    if poll["vote_type"] != "availability_grid":
        st.warning("This page only works with availability grid polls.")
        st.stop()

    responses = poll["responses"]
    st.caption(f"{len(responses)} response{'' if len(responses) == 1 else 's'}")

    left, right = st.columns([3, 2])

    with left:
        st.subheader("🗓️ Availability")
        st.markdown(heatmap_html(poll), unsafe_allow_html=True)

    with right:
        st.subheader("🏆 Best Times")
        windows = find_best_windows(
            poll["date_options"],
            poll["time_slots"],
            responses,
            poll["event_duration"],
        )

        if not windows:
            st.info("Not enough data yet. Waiting for responses...")

        for index, window in enumerate(windows, start=1):
            with st.container(border=True):
                st.markdown(f"**#{index}** {window_display(window, poll['time_slots'])}")
                st.metric("Availability score", f"{score_percentage(window, len(responses))}%")
                st.write(
                    f"✅ {len(window['guaranteed_users'])} guaranteed · "
                    f"⚠️ {len(window['likely_users'])} likely · "
                    f"❌ {len(window['unlikely_users'])} unlikely"
                )

    # =========================================================================
    # 셀 상세
    # =========================================================================
    st.divider()
    st.subheader("🔍 Slot details")

    c1, c2 = st.columns(2)
    with c1:
        date = st.selectbox("Date", poll["date_options"], format_func=format_date_short)
    with c2:
        slot = st.selectbox(
            "Time",
            poll["time_slots"],
            format_func=lambda s: slot_range_label(s["time"]),
        )

    if date and slot:
        breakdown = cell_breakdown(date, slot["time"], responses)
        columns = st.columns(3)
        for column, (title, status) in zip(
            columns,
            [("Available", "available"), ("If Necessary", "maybe"), ("Not Available", "unavailable")],
        ):
            with column:
                st.write(f"**{title} ({len(breakdown[status])})**")
                if not poll["is_anonymous"]:
                    for user_id in breakdown[status]:
                        st.write(f"User {user_id[:8]}...")

    # =========================================================================
    # 채팅 메시지 텍스트
    # =========================================================================
    st.divider()
    if st.button("📝 Show chat message", use_container_width=True):
        st.code(best_times_message(poll), language=None)

else:
    st.info("Paste a poll link and press Load.")
