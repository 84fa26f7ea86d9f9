"""Tests for raw row normalization in records.py"""

import pandas as pd
import pytest

from incidents.records import (
    COUNT_MAX,
    IncidentRecord,
    manufacturer_universe,
    normalize,
    normalize_manufacturer,
    normalize_phase,
    normalize_severity,
    records_frame,
)


def _row(**overrides):
    row = {
        "Event_Date": "1999-06-12",
        "Event_Year": "1999",
        "Make": "Boeing",
        "Broad_Phase_of_Flight": "CRUISE",
        "Injury_Severity": "FATAL",
        "Total_Fatal_Injuries": "2",
    }
    row.update(overrides)
    return row


class TestYearResolution:
    """Tests for how normalize() resolves and bounds the event year."""

    def test_prefers_event_date_over_year_field(self):
        """The event date's year wins when both are present."""
        records = normalize([_row(Event_Date="2001-05-03", Event_Year="1999")])
        assert [r.year for r in records] == [2001]

    def test_falls_back_to_year_field(self):
        """A blank or unparseable date falls back to the explicit year."""
        records = normalize([_row(Event_Date="", Event_Year="2003"), _row(Event_Date="not a date", Event_Year="2004")])
        assert [r.year for r in records] == [2003, 2004]

    def test_accepts_us_style_dates(self):
        records = normalize([_row(Event_Date="12/13/2015", Event_Year="")])
        assert records[0].year == 2015

    def test_drops_unparseable_year(self):
        """A row with neither a date nor a numeric year is dropped."""
        records = normalize([_row(Event_Date="", Event_Year="n/a"), _row()])
        assert len(records) == 1
        assert records[0].year == 1999

    def test_drops_non_integral_year(self):
        records = normalize([_row(Event_Date=None, Event_Year="1999.5")])
        assert records == []

    def test_drops_years_outside_bound(self):
        """Only 1995..2016 survive."""
        rows = [
            _row(Event_Date=None, Event_Year="1994"),
            _row(Event_Date=None, Event_Year="1995"),
            _row(Event_Date=None, Event_Year="2016"),
            _row(Event_Date=None, Event_Year="2017"),
        ]
        assert sorted(r.year for r in normalize(rows)) == [1995, 2016]

    def test_offset_dates_keep_local_year(self):
        """A UTC offset does not move an event into the next year."""
        records = normalize([{"Event_Date": "2016-12-31T23:30:00-05:00", "Make": "Boeing"}])
        assert [r.year for r in records] == [2016]

    def test_mixed_offsets(self):
        records = normalize(
            [
                {"Event_Date": "1995-01-01T00:30:00+09:00", "Make": "Boeing"},
                {"Event_Date": "2003-07-04", "Make": "Airbus"},
            ]
        )
        assert [r.year for r in records] == [1995, 2003]

    def test_numeric_year_values(self):
        """Years already parsed as numbers are accepted."""
        records = normalize([_row(Event_Date=None, Event_Year=2010), _row(Event_Date=None, Event_Year=2011.0)])
        assert [r.year for r in records] == [2010, 2011]


class TestFieldNormalization:
    """Tests for severity, manufacturer and phase mapping."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("FATAL", "FATAL"),
            ("Fatal(2)", "FATAL"),
            ("Non-Fatal", "NON-FATAL"),
            ("incident", "INCIDENT"),
            ("Unavailable", "UNAVAILABLE"),
            ("", "UNAVAILABLE"),
            (None, "UNAVAILABLE"),
            ("SERIOUS", "UNAVAILABLE"),
        ],
    )
    def test_severity(self, raw, expected):
        assert normalize_severity(raw) == expected

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Boeing", "Boeing"),
            ("BOEING", "Boeing"),
            ("MCDONNELL DOUGLAS", "McDonnell Douglas"),
            ("  airbus  ", "Airbus"),
            ("Airbus Industrie", "Airbus"),
            ("Cessna", "Unknown"),
            ("", "Unknown"),
            (None, "Unknown"),
        ],
    )
    def test_manufacturer(self, raw, expected):
        assert normalize_manufacturer(raw) == expected

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("CRUISE", "CRUISE"),
            ("landing", "LANDING"),
            ("go around", "GO-AROUND"),
            ("", "UNKNOWN"),
            ("HOVER", "UNKNOWN"),
        ],
    )
    def test_phase(self, raw, expected):
        assert normalize_phase(raw) == expected

    def test_missing_columns_get_defaults(self):
        """Only a year is required; everything else has a default."""
        records = normalize([{"year": "2000"}])
        assert records == [IncidentRecord(year=2000, manufacturer="Unknown", phase="UNKNOWN", severity="UNAVAILABLE")]

    def test_passthrough_counts(self):
        """Injury counts are carried through as non-negative ints."""
        records = normalize([_row(Total_Fatal_Injuries="3", Total_Uninjured="-1", Total_Serious_Injuries="")])
        r = records[0]
        assert r.fatal_injuries == 3
        assert r.uninjured == 0
        assert r.serious_injuries == 0

    def test_non_finite_counts_become_zero(self):
        """An unusable injury count affects only that field, not the load."""
        records = normalize(
            [
                _row(Total_Fatal_Injuries="inf"),
                _row(Total_Fatal_Injuries="1e400", Total_Minor_Injuries="-inf"),
                _row(Total_Fatal_Injuries="4"),
            ]
        )
        assert [r.fatal_injuries for r in records] == [0, 0, 4]
        assert records[1].minor_injuries == 0

    def test_huge_counts_are_capped(self):
        records = normalize([_row(Total_Fatal_Injuries="1e300")])
        assert records[0].fatal_injuries == COUNT_MAX

    def test_column_aliases(self):
        """Column names match regardless of case, spaces and underscores."""
        records = normalize([{"event date": "2002-01-01", "MAKE": "Embraer", "broad phase of flight": "TAXI", "injury severity": "INCIDENT"}])
        assert records == [IncidentRecord(year=2002, manufacturer="Embraer", phase="TAXI", severity="INCIDENT")]


class TestNormalizeInputs:
    """Tests for the accepted input shapes and failure behavior."""

    def test_accepts_dataframe(self):
        df = pd.DataFrame([_row(), _row(Make="Airbus")])
        records = normalize(df)
        assert [r.manufacturer for r in records] == ["Boeing", "Airbus"]

    def test_does_not_mutate_dataframe(self):
        df = pd.DataFrame([_row()])
        before = df.copy()
        normalize(df)
        pd.testing.assert_frame_equal(df, before)

    def test_empty_input(self):
        assert normalize([]) == []

    def test_garbage_input_yields_empty_list(self):
        """Nothing parseable is an empty record set, not an exception."""
        assert normalize([None, "row", 42, {}]) == []
        assert normalize([{"Make": "Boeing"}, {"Event_Year": "abc"}]) == []

    def test_records_are_immutable(self):
        record = normalize([_row()])[0]
        with pytest.raises(Exception):
            record.year = 2000  # type: ignore[misc]


class TestHelpers:
    def test_manufacturer_universe_excludes_unknown(self):
        """Universe is the recognized manufacturers present, in canonical order."""
        records = normalize([_row(Make="Airbus"), _row(Make="Cessna"), _row(Make="Boeing"), _row(Make="Airbus")])
        assert manufacturer_universe(records) == ["Boeing", "Airbus"]

    def test_records_frame_columns(self):
        df = records_frame(normalize([_row()]))
        assert list(df.columns[:4]) == ["year", "manufacturer", "phase", "severity"]
        assert df["year"].tolist() == [1999]

    def test_records_frame_empty(self):
        df = records_frame([])
        assert df.empty
        assert "severity" in df.columns
