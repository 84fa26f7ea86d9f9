import pandas as pd
import streamlit as st
from contextlib import contextmanager
from typing import Optional

from incidents.aggregate import incident_detail, manufacturer_totals, peak_years, phase_share, severity_totals
from incidents.charts import phase_breakdown_chart, time_series_chart
from incidents.config import ALL_PHASES, MANUFACTURERS, PHASES, SEVERITIES, YEAR_MAX, YEAR_MIN
from incidents.controller import SelectionController
from incidents.data import load_dataset
from incidents.filters import FilterState


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(state: FilterState) -> str:
    years_chip = f"Years: {state.year_min}–{state.year_max}"
    mfr_chip = (
        "Manufacturers: All"
        if len(state.selected_manufacturers) == len(MANUFACTURERS)
        else f"Manufacturers: {', '.join(state.selected_manufacturers)}"
    )
    phase_chip = "Phase: All" if state.selected_phase == ALL_PHASES else f"Phase: {state.selected_phase}"
    sev_chip = (
        "Severity: All"
        if len(state.selected_severities) == len(SEVERITIES)
        else f"Severity: {', '.join(state.selected_severities)}"
    )
    return "".join([f"<span class='chip'>{txt}</span>" for txt in [years_chip, mfr_chip, phase_chip, sev_chip]])


# ---------- UI setup ----------
st.set_page_config(page_title="Aviation Incidents Dashboard", layout="wide")
inject_base_styles()
st.title("Aviation Incidents 1995–2016")
st.caption("Incidents by year and manufacturer, and by flight phase and injury severity.")

dataset = load_dataset()
if not dataset.ok:
    st.error(f"Could not load the incident data. {dataset.error}")
    st.stop()
if not dataset.records:
    st.error("The incident data file contains no usable rows.")
    st.stop()

if "controller" not in st.session_state:
    st.session_state["controller"] = SelectionController(dataset.frame)
controller: SelectionController = st.session_state["controller"]


# ---------- Widget callbacks (all mutation goes through the controller) ----------
def _sync_year_slider():
    st.session_state["years"] = controller.filter_state.year_range


def _on_years():
    lo, hi = st.session_state["years"]
    controller.set_year_range(lo, hi)


def _on_preset(name: str):
    controller.apply_preset(name)
    _sync_year_slider()


def _on_manufacturer(name: str):
    result = controller.toggle_manufacturer(name)
    if not result.accepted:
        st.session_state[f"mfr-{name}"] = True
        st.session_state["_notice"] = "At least one manufacturer must stay selected."


def _on_severity(category: str):
    result = controller.toggle_severity(category)
    if not result.accepted:
        st.session_state[f"sev-{category}"] = True
        st.session_state["_notice"] = "At least one severity must stay selected."


def _on_phase():
    controller.set_phase(st.session_state["phase"])


def _on_focus(phase: str):
    controller.focus_phase(phase)
    st.session_state["phase"] = phase


def _on_reset():
    controller.reset()
    _sync_year_slider()
    st.session_state["phase"] = ALL_PHASES
    for m in MANUFACTURERS:
        st.session_state[f"mfr-{m}"] = True
    for s in SEVERITIES:
        st.session_state[f"sev-{s}"] = True


state = controller.filter_state

# Widget keys are seeded once; afterwards only the callbacks write them.
st.session_state.setdefault("years", state.year_range)
st.session_state.setdefault("phase", state.selected_phase)
for m in controller.manufacturers:
    st.session_state.setdefault(f"mfr-{m}", m in state.selected_manufacturers)
for s in SEVERITIES:
    st.session_state.setdefault(f"sev-{s}", s in state.selected_severities)

# ----- Sidebar: filters -----
with st.sidebar:
    st.markdown("### Year range")
    st.slider("Years", min_value=YEAR_MIN, max_value=YEAR_MAX, key="years", on_change=_on_years)
    preset_cols = st.columns(3)
    preset_cols[0].button("All years", on_click=_on_preset, args=("full",))
    preset_cols[1].button("First 5", on_click=_on_preset, args=("first5",))
    preset_cols[2].button("Last 5", on_click=_on_preset, args=("last5",))

    st.markdown("---")
    st.markdown("### Manufacturers")
    for m in controller.manufacturers:
        st.checkbox(m, key=f"mfr-{m}", on_change=_on_manufacturer, args=(m,))

    st.markdown("### Injury severity")
    for s in SEVERITIES:
        st.checkbox(s, key=f"sev-{s}", on_change=_on_severity, args=(s,))

    st.markdown("### Flight phase")
    st.selectbox(
        "Flight phase",
        options=[ALL_PHASES] + PHASES,
        key="phase",
        on_change=_on_phase,
        format_func=lambda p: "All phases" if p == ALL_PHASES else p,
    )
    st.markdown("---")
    st.button("Reset filters", on_click=_on_reset)

notice: Optional[str] = st.session_state.pop("_notice", None)
if notice:
    st.warning(notice)

state = controller.filter_state
view = controller.derived_view()
st.markdown(f"<div class='chip-row'>{format_filter_summary(state)}</div>", unsafe_allow_html=True)

cols = st.columns(4)
sev = severity_totals(view)
cols[0].metric("Qualifying incidents", f"{view.qualifying_count:,}")
cols[1].metric("Fatal", f"{sev['FATAL']:,}")
cols[2].metric("Non-fatal", f"{sev['NON-FATAL']:,}")
cols[3].metric("Records loaded", f"{controller.record_count:,}", help=f"{dataset.dropped_rows:,} rows dropped during load.")

left, right = st.columns(2)
with left:
    with card("Incidents over time by manufacturer"):
        st.altair_chart(time_series_chart(view), use_container_width=True)
        totals = manufacturer_totals(view)
        peaks = pd.DataFrame(peak_years(view))
        if not peaks.empty:
            peaks["total"] = peaks["manufacturer"].map(totals)
            st.dataframe(peaks, hide_index=True, use_container_width=True)

with right:
    with card("Incidents by flight phase and injury severity"):
        if not view.phase_breakdown:
            st.info("No data available for the selected filters.")
        else:
            st.altair_chart(phase_breakdown_chart(view, state.selected_severities), use_container_width=True)
            st.caption("Drill into a phase:")
            focus_cols = st.columns(min(4, len(view.phase_breakdown)))
            for i, row in enumerate(view.phase_breakdown[:4]):
                focus_cols[i].button(f"{row.phase} ({row.total})", key=f"focus-{row.phase}", on_click=_on_focus, args=(row.phase,))

with st.expander("Incident detail"):
    c1, c2, c3 = st.columns(3)
    detail_mfr = c1.selectbox("Manufacturer", options=list(state.selected_manufacturers))
    detail_year = c2.selectbox("Year", options=state.years)
    detail = incident_detail(dataset.frame, state, detail_mfr, detail_year)
    c3.metric(f"{detail_mfr} in {detail_year}", f"{detail['total']} incidents")
    st.write(f"Fatal incidents: **{detail['fatal']}** · Non-fatal incidents: **{detail['non_fatal']}**")
    if view.phase_breakdown:
        share_phase = st.selectbox("Phase", options=[b.phase for b in view.phase_breakdown])
        share_sev = st.selectbox("Severity", options=list(state.selected_severities))
        share = phase_share(view, share_phase, share_sev)
        if share is not None:
            st.write(f"{share['count']} incidents ({share['percent']}% of {share_phase})")
