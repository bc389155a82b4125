import logging

import pandas as pd
import streamlit as st
import streamlit.components.v1 as components

from shiptrack.config import portal_url
from shiptrack.errors import ConfigurationError
from shiptrack.services.status import MILESTONES, infer_milestone_index
from shiptrack.ui.api_client import ApiError, SessionExpired, TrackingApiClient
from shiptrack.ui.render import md_text, milestone_html, right_aligned_html, status_badge_html
from shiptrack.ui.session import (
    FRAGMENT_FORWARDER,
    clear_session,
    complete_sign_in,
    load_session,
    make_auth_client,
    request_sign_in_code,
    store_session,
    verify_sign_in_code,
)
from shiptrack.ui.table import (
    ASC,
    TableState,
    reference_of,
    status_of,
    toggle_sort,
    visible_rows,
    with_query,
)

logger = logging.getLogger(__name__)

st.set_page_config(page_title="Shipment Tracking", layout="wide", initial_sidebar_state="collapsed")

st.markdown("""
    <style>
    .status-badge { border-radius: 999px; padding: 2px 10px; font-size: 12px; font-weight: 600; }
    .milestone { text-align: center; font-size: 11px; color: #6b7280; }
    .milestone-current { font-weight: 700; color: #1d4ed8; }
    </style>
    """, unsafe_allow_html=True)

STATUS_COLORS = {
    "Delivered": "#15803d",
    "Customs Released": "#b45309",
    "Discharged": "#7e22ce",
    "Pre-Departure": "#334155",
    "In Transit": "#1d4ed8",
}

SORT_LABELS = {
    "reference": "Reference",
    "route": "Route",
    "status": "Status",
    "eta_updated": "ETA",
    "last_event_time": "Last Update",
}

api = TrackingApiClient()


def fmt_datetime(value) -> str:
    if not value:
        return "—"
    ts = pd.to_datetime(value, errors="coerce", utc=True)
    return value if pd.isna(ts) else ts.strftime("%Y-%m-%d %H:%M")


def fmt_date(value) -> str:
    if not value:
        return "—"
    ts = pd.to_datetime(value, errors="coerce", utc=True)
    return value if pd.isna(ts) else ts.strftime("%Y-%m-%d")


def go_to_login():
    clear_session(st.session_state)
    st.session_state.pop("rows", None)
    st.query_params.clear()
    st.rerun()


# --- SIGN-IN ---
def render_login():
    st.title("Track Shipments")
    st.caption("Sign in with your work email to view your shipments.")
    try:
        auth = make_auth_client().auth
    except ConfigurationError as e:
        st.error(e.message)
        return

    email = st.text_input("Email", key="login_email")
    if st.button("Send sign-in code", disabled=not email):
        try:
            request_sign_in_code(auth, email.strip(), f"{portal_url()}/?callback=1")
            st.session_state["code_sent_to"] = email.strip()
            st.success("Check your inbox for a sign-in link or code.")
        except Exception as e:
            logger.error("Sign-in request failed: %s", e)
            st.error("Could not send a sign-in code. Try again shortly.")

    sent_to = st.session_state.get("code_sent_to")
    if sent_to:
        code = st.text_input("One-time code", key="login_code")
        if st.button("Verify", disabled=not code):
            session = verify_sign_in_code(auth, sent_to, code.strip())
            if session:
                store_session(st.session_state, session)
                st.session_state.pop("code_sent_to", None)
                st.rerun()
            st.error("That code is invalid or has expired.")


def handle_callback(params: dict):
    st.info("Signing you in…")
    components.html(FRAGMENT_FORWARDER, height=0)
    if not any(k in params for k in ("code", "access_token", "error")):
        # The fragment forwarder reloads the page if tokens arrived in the hash
        if st.button("Back to sign in"):
            go_to_login()
        return
    try:
        auth = make_auth_client().auth
    except ConfigurationError as e:
        st.error(e.message)
        return
    session = complete_sign_in(params, auth, existing=load_session(st.session_state))
    if session is None:
        go_to_login()
    store_session(st.session_state, session)
    st.query_params.clear()
    st.rerun()


# --- LIST VIEW ---
def render_sort_bar(state: TableState) -> TableState:
    cols = st.columns(len(SORT_LABELS))
    for col, (key, label) in zip(cols, SORT_LABELS.items()):
        arrow = ("▲" if state.sort_dir == ASC else "▼") if key == state.sort_key else ""
        if col.button(f"{label} {arrow}".strip(), key=f"sort_{key}", use_container_width=True):
            st.session_state["table_state"] = toggle_sort(state, key)
            st.rerun()
    return state


def render_list(session):
    if "rows" not in st.session_state or st.session_state.get("refresh"):
        st.session_state.pop("refresh", None)
        try:
            with st.spinner("Loading shipments…"):
                rows, email = api.list_shipments(session)
        except SessionExpired:
            go_to_login()
        except ApiError as e:
            st.session_state.pop("rows", None)
            st.error(e.message)
            return
        st.session_state["rows"] = rows
        st.session_state["email"] = email

    rows = st.session_state["rows"]
    state: TableState = st.session_state.get("table_state", TableState())

    head, actions = st.columns([3, 2])
    with head:
        st.title("Track Shipments")
        st.caption("Search by HAWB, MAWB, PO, reference, or shipment ID")
        if st.session_state.get("email"):
            st.caption(f"Signed in as {md_text(st.session_state['email'])}")
    with actions:
        query = st.text_input("Search", key="search_query", placeholder="Search…")
        state = with_query(state, query)
        a1, a2 = st.columns(2)
        if a1.button("Refresh", use_container_width=True):
            st.session_state["refresh"] = True
            st.rerun()
        if a2.button("Sign out", use_container_width=True):
            go_to_login()

    state = render_sort_bar(state)
    st.session_state["table_state"] = state
    shown = visible_rows(rows, state)

    if not shown:
        st.info("No shipments found.")
    else:
        table = pd.DataFrame([
            {
                "Reference": reference_of(s),
                "Route": f"{s.get('origin') or '—'} → {s.get('destination') or '—'}",
                "Status": status_of(s),
                "ETA": fmt_date(s.get("eta_updated")),
                "Last Update": fmt_datetime(s.get("last_event_time")),
                "ID": s.get("shipment_id"),
            }
            for s in shown
        ])
        st.dataframe(
            table.style.map(lambda v: f"color: {STATUS_COLORS.get(v, '')}; font-weight: 600", subset=["Status"]),
            use_container_width=True,
            hide_index=True,
        )

        pick = st.selectbox(
            "Open shipment",
            [s["shipment_id"] for s in shown],
            format_func=lambda sid: next(reference_of(s) for s in shown if s["shipment_id"] == sid),
        )
        if st.button("View timeline", type="primary"):
            st.query_params["shipment"] = pick
            st.rerun()

    st.caption(f"Showing {len(shown)} of {len(rows)} shipments")


# --- DETAIL VIEW ---
def render_progress(origin: str, destination: str, current: int):
    left, right = st.columns(2)
    left.markdown(f"**{md_text(origin)}**")
    right.markdown(right_aligned_html(destination), unsafe_allow_html=True)
    st.progress((current + 1) / len(MILESTONES))
    cols = st.columns(len(MILESTONES))
    for idx, (col, m) in enumerate(zip(cols, MILESTONES)):
        col.markdown(milestone_html(m.label, idx <= current, idx == current), unsafe_allow_html=True)


def render_detail(session, shipment_id: str):
    if st.button("← Back to shipments"):
        del st.query_params["shipment"]
        st.rerun()

    try:
        with st.spinner("Loading shipment…"):
            shipment, events = api.get_shipment(session, shipment_id)
    except SessionExpired:
        go_to_login()
    except ApiError as e:
        st.error(e.message or "Unable to load shipment")
        return

    render_progress(
        shipment.get("origin") or "Origin",
        shipment.get("destination") or "Destination",
        infer_milestone_index(events),
    )
    st.divider()

    c1, c2 = st.columns([3, 2])
    with c1:
        st.header(md_text(reference_of(shipment) or shipment_id))
        st.caption(f"{md_text(shipment.get('origin') or '—')} → {md_text(shipment.get('destination') or '—')}")
        st.caption(f"Shipment ID: {md_text(shipment.get('shipment_id'))}")
    with c2:
        st.markdown(status_badge_html(shipment.get("current_status") or "In progress"), unsafe_allow_html=True)
        st.caption(f"Updated: {fmt_datetime(shipment.get('last_event_time'))}")
        st.caption(f"ETA: {fmt_date(shipment.get('eta_updated'))}")

    f1, f2, f3, f4 = st.columns(4)
    f1.metric("HAWB", shipment.get("hawb") or "—")
    f2.metric("MAWB", shipment.get("mawb") or "—")
    f3.metric("PO Number", shipment.get("po_number") or "—")
    f4.metric("Customer Reference", shipment.get("customer_reference") or "—")

    st.subheader("Tracking Timeline")
    st.caption("Latest events first")
    if not events:
        st.info("No events found.")
        return
    for e in events:
        t, body = st.columns([1, 4])
        t.caption(fmt_datetime(e.get("event_time")))
        code = f"{md_text(e['event_code'])} · " if e.get("event_code") else ""
        body.markdown(f"{code}**{md_text(e.get('notes') or 'Event')}**")
        source = f" • {md_text(e['source_column'])}" if e.get("source_column") else ""
        body.caption(f"{md_text(e.get('location') or '—')}{source}")


# --- ROUTING ---
params = st.query_params.to_dict()

if params.get("callback") or any(k in params for k in ("code", "access_token", "error")):
    handle_callback(params)
else:
    session = load_session(st.session_state)
    if session is None:
        render_login()
    elif params.get("shipment"):
        render_detail(session, params["shipment"])
    else:
        render_list(session)
