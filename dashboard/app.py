"""Kart Pit Board Dashboard.

Interactive pit wall built with Streamlit and Plotly.  Shows the pit
rows coloured by kart score, handles team pit entries and manual
overrides, polls the live-timing page on demand or every poll
interval while live polling is on, and exports the board.

Launch with::

    streamlit run dashboard/app.py
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import replace

import plotly.graph_objects as go
import streamlit as st
from streamlit_autorefresh import st_autorefresh

from kart_engine.config import load_settings
from kart_engine.core.kart import MANUAL_COLORS
from kart_engine.core.session import RaceSession
from kart_engine.data_ingestion.demo import demo_observations, run_demo
from kart_engine.data_ingestion.feed_client import FeedClient
from kart_engine.data_ingestion.poller import (
    PollSchedule,
    PollState,
    PollStatus,
    poll_now,
)
from kart_engine.errors import KartEngineError
from kart_engine.export import build_export, karts_frame, live_timing_frame

_CSS_COLORS: dict[str, str] = {
    "purple": "#8e44ad",
    "green": "#27ae60",
    "yellow": "#f1c40f",
    "orange": "#e67e22",
    "red": "#c0392b",
    "blue": "#2980b9",
}

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _session() -> RaceSession:
    if "session" not in st.session_state:
        st.session_state["session"] = RaceSession(load_settings())
    return st.session_state["session"]


def _schedule(session: RaceSession) -> PollSchedule:
    """Poll pacing for this browser session, rebuilt when the interval changes."""
    schedule = st.session_state.get("poll_schedule")
    interval = session.settings.poll_interval_seconds
    if schedule is None or schedule.interval != interval:
        schedule = PollSchedule(interval)
        st.session_state["poll_schedule"] = schedule
    return schedule


def _show_status(status: PollStatus) -> None:
    if status.state is PollState.OK:
        st.sidebar.success(status.message)
    else:
        st.sidebar.warning(status.message)


def _report(action: Callable[..., object], *args: object) -> None:
    """Run a session operation and surface rejected input as a warning."""
    try:
        action(*args)
    except KartEngineError as exc:
        st.warning(str(exc))


def _kart_box(kart_id: str, label: str, score: float | None, color: str) -> str:
    score_text = "--" if score is None else f"{score:.0f}"
    return (
        f"<div style='background:{_CSS_COLORS.get(color, '#7f8c8d')};"
        "color:white;border-radius:6px;padding:6px;margin:2px;"
        "text-align:center;min-width:70px'>"
        f"<b>#{label or '?'}</b><br/>{kart_id}<br/>{score_text}</div>"
    )


# ---------------------------------------------------------------------------
# Streamlit app
# ---------------------------------------------------------------------------


def main() -> None:  # noqa: C901
    """Entry point for the Streamlit dashboard."""
    st.set_page_config(page_title="Kart Pit Board", layout="wide")
    st.title("Kart Pit Board")

    session = _session()

    # ── Sidebar ──────────────────────────────────────────────────────────
    st.sidebar.header("Pit Lane Setup")
    rows: int = st.sidebar.number_input("Pit rows", 1, 8, session.settings.row_count)
    per_row: int = st.sidebar.number_input(
        "Karts per row", 0, 20, session.settings.karts_per_row
    )
    settling: int = st.sidebar.slider(
        "Settling laps", 0, 10, session.settings.settling_laps
    )
    if st.sidebar.button("Reset pit rows"):
        try:
            new_settings = replace(
                session.settings,
                row_count=int(rows),
                karts_per_row=int(per_row),
                settling_laps=int(settling),
            )
        except ValueError as exc:
            st.sidebar.error(str(exc))
        else:
            session.setup_rows(new_settings)

    st.sidebar.markdown("---")
    st.sidebar.header("Live Timing")
    url: str = st.sidebar.text_input("Timing page URL")
    live: bool = st.sidebar.toggle("Live polling", value=False, disabled=not url)
    client = FeedClient(timeout=session.settings.fetch_timeout_seconds)
    schedule = _schedule(session)
    if live and url:
        # re-run twice per interval; the schedule decides whether a fetch
        # is due and never starts two at once
        st_autorefresh(interval=int(schedule.interval * 500), key="live_tick")
        schedule.poll(session, client, url)
    if st.sidebar.button("Fetch now", disabled=not url):
        schedule.last_status = poll_now(session, client, url)
    if schedule.last_status is not None:
        _show_status(schedule.last_status)

    if st.sidebar.button("Load test data"):
        session.ingest(demo_observations())
    if st.sidebar.button("Run demo race"):
        run_demo(session)

    # ── Section 1: Pit rows ──────────────────────────────────────────────
    st.header("1 -- Pit Rows")

    for idx in range(len(session.pit_lane.rows)):
        col_row, col_form = st.columns([4, 1])
        with col_row:
            boxes = "".join(
                _kart_box(k.kart_id, k.label, k.score, k.color)
                for k in session.karts_in_row(idx)
            )
            st.markdown(
                f"<div style='display:flex;flex-wrap:wrap'><b>Row {idx + 1}</b>"
                f"&nbsp;{boxes or '<i>empty</i>'}</div>",
                unsafe_allow_html=True,
            )
        with col_form:
            with st.form(f"pit_entry_{idx}", clear_on_submit=True):
                team_number = st.text_input("Team entering", key=f"team_{idx}")
                if st.form_submit_button("Pit in"):
                    _report(session.pit_entry, idx, team_number)
            if st.button("+ Add kart", key=f"add_{idx}"):
                session.add_kart(idx)

    # ── Section 2: Manual overrides ──────────────────────────────────────
    st.header("2 -- Kart Overrides")

    kart_ids = [k.kart_id for k in session.registry]
    if kart_ids:
        col_k, col_s, col_c, col_l = st.columns(4)
        kart_id = col_k.selectbox("Kart", kart_ids)
        score_text = col_s.text_input("Manual score (blank clears)")
        if col_s.button("Set score"):
            _report(session.set_manual_score, kart_id, score_text)
        color = col_c.selectbox("Colour", ["", *sorted(MANUAL_COLORS)])
        if col_c.button("Set colour"):
            _report(session.set_manual_color, kart_id, color)
        label = col_l.text_input("Label")
        if col_l.button("Relabel"):
            _report(session.relabel_kart, kart_id, label)
        if st.button("Restore automatic score and colour"):
            _report(session.clear_manual_override, kart_id)

    # ── Section 3: Kart scores ───────────────────────────────────────────
    st.header("3 -- Kart Scores")

    frame = karts_frame(session)
    scored = frame.dropna(subset=["score"]) if not frame.empty else frame
    if scored.empty:
        st.info("No karts scored yet.")
    else:
        fig = go.Figure(
            go.Bar(
                x=scored["score"],
                y=scored["kart_id"],
                orientation="h",
                marker_color=[_CSS_COLORS.get(c, "#7f8c8d") for c in scored["color"]],
            )
        )
        fig.update_layout(
            title="Kart score (0-1000)",
            xaxis_title="Score",
            yaxis=dict(autorange="reversed"),
            height=max(300, 24 * len(scored)),
        )
        st.plotly_chart(fig, use_container_width=True)
        st.dataframe(frame, use_container_width=True)

    # ── Section 4: Teams and live timing ─────────────────────────────────
    st.header("4 -- Teams & Live Timing")

    col_t, col_lt = st.columns(2)
    with col_t:
        for number, team in sorted(session.teams.items()):
            flag = " (excluded)" if team.excluded else ""
            st.write(
                f"**#{number}** on {team.current_kart_id or '-'} "
                f"(prev {team.previous_kart_id or '-'}), "
                f"{len(team.stints)} stints{flag}"
            )
    with col_lt:
        st.dataframe(live_timing_frame(session), use_container_width=True)

    # ── Footer ───────────────────────────────────────────────────────────
    st.markdown("---")
    st.download_button(
        "Export board (JSON)",
        data=json.dumps(build_export(session), indent=2),
        file_name="race_data.json",
        mime="application/json",
    )


if __name__ == "__main__":
    main()
