"""Tests for chart frames and specs in charts.py"""

from incidents.aggregate import aggregate
from incidents.charts import (
    phase_breakdown_chart,
    phase_breakdown_frame,
    time_series_chart,
    time_series_frame,
    to_vega_spec,
)
from incidents.filters import FilterState
from incidents.records import IncidentRecord

RECORDS = [
    IncidentRecord(year=2000, manufacturer="Boeing", phase="CRUISE", severity="FATAL"),
    IncidentRecord(year=2000, manufacturer="Airbus", phase="LANDING", severity="INCIDENT"),
    IncidentRecord(year=2001, manufacturer="Boeing", phase="LANDING", severity="INCIDENT"),
]


def _view(**changes):
    state = FilterState(year_range=(2000, 2001)).with_changes(**changes)
    return aggregate(RECORDS, state)


def test_time_series_frame_is_long_format():
    df = time_series_frame(_view(selected_manufacturers=("Boeing", "Airbus")))
    assert list(df.columns) == ["year", "manufacturer", "incidents"]
    assert len(df) == 4
    boeing = df[df["manufacturer"] == "Boeing"]
    assert boeing["incidents"].tolist() == [1, 1]


def test_phase_frame_keeps_only_active_severities():
    view = _view(selected_severities=("INCIDENT",))
    df = phase_breakdown_frame(view, ("INCIDENT",))
    assert df["severity"].unique().tolist() == ["INCIDENT"]
    assert df["phase"].tolist() == ["LANDING"]
    assert df["phase_total"].tolist() == [2]


def test_phase_frame_empty_view():
    df = phase_breakdown_frame(_view(selected_phase="TAXI"))
    assert df.empty
    assert "phase_total" in df.columns


def test_specs_are_dicts():
    view = _view()
    for chart in (time_series_chart(view), phase_breakdown_chart(view)):
        spec = to_vega_spec(chart)
        assert isinstance(spec, dict)
        assert "encoding" in spec


def test_phase_bars_follow_breakdown_order():
    spec = to_vega_spec(phase_breakdown_chart(_view()))
    assert spec["encoding"]["x"]["sort"] == ["LANDING", "CRUISE"]
