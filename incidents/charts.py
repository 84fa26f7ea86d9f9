from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

import altair as alt
import pandas as pd

from incidents.aggregate import DerivedView
from incidents.config import MANUFACTURER_COLORS, MANUFACTURERS, SEVERITIES, SEVERITY_COLORS

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def time_series_frame(view: DerivedView) -> pd.DataFrame:
    rows = [
        {"year": p.year, "manufacturer": m, "incidents": n}
        for p in view.time_series
        for m, n in p.counts.items()
    ]
    return pd.DataFrame(rows, columns=["year", "manufacturer", "incidents"])


def phase_breakdown_frame(view: DerivedView, severities: Optional[Sequence[str]] = None) -> pd.DataFrame:
    active = [s for s in SEVERITIES if severities is None or s in severities]
    rows = [
        {"phase": b.phase, "severity": s, "incidents": b.counts[s], "phase_total": b.total}
        for b in view.phase_breakdown
        for s in active
    ]
    return pd.DataFrame(rows, columns=["phase", "severity", "incidents", "phase_total"])


def time_series_chart(view: DerivedView) -> alt.Chart:
    df = time_series_frame(view)
    hover = alt.selection_point(fields=["manufacturer"], on="mouseover", empty="all")
    return (
        alt.Chart(df)
        .mark_line(point={"filled": True, "size": 60})
        .encode(
            x=alt.X("year:O", title="Year", axis=alt.Axis(labelAngle=-45, grid=False)),
            y=alt.Y("incidents:Q", title="Number of Incidents", axis=alt.Axis(gridDash=[2, 2], domain=False, ticks=False)),
            color=alt.Color(
                "manufacturer:N",
                title="Manufacturer",
                scale=alt.Scale(domain=MANUFACTURERS, range=MANUFACTURER_COLORS),
            ),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.2)),
            tooltip=["manufacturer", "year", alt.Tooltip("incidents:Q", title="Incidents")],
        )
        .add_params(hover)
        .properties(height=320)
    )


def phase_breakdown_chart(view: DerivedView, severities: Optional[Sequence[str]] = None) -> alt.Chart:
    df = phase_breakdown_frame(view, severities)
    # Bars keep the breakdown's own ordering (total descending).
    phase_order = [b.phase for b in view.phase_breakdown]
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("phase:N", title="Flight Phase", sort=phase_order, axis=alt.Axis(labelAngle=-45)),
            y=alt.Y("sum(incidents):Q", title="Number of Incidents", stack="zero"),
            color=alt.Color(
                "severity:N",
                title="Injury Severity",
                scale=alt.Scale(domain=SEVERITIES, range=SEVERITY_COLORS),
                sort=SEVERITIES,
            ),
            order=alt.Order("severity_rank:Q"),
            tooltip=[
                "phase",
                "severity",
                alt.Tooltip("incidents:Q", title="Incidents"),
                alt.Tooltip("phase_total:Q", title="Phase total"),
            ],
        )
        .transform_calculate(severity_rank=f"indexof({list(SEVERITIES)!r}, datum.severity)")
        .properties(height=320)
    )
