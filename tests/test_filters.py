"""Tests for FilterState and normalize_filters in filters.py"""

from incidents.config import MANUFACTURERS, SEVERITIES
from incidents.filters import FilterState, clamp_year, normalize_filters, ordered_subset


class TestFilterState:
    def test_default_selects_everything(self):
        state = FilterState.default()
        assert state.year_range == (1995, 2016)
        assert state.selected_manufacturers == tuple(MANUFACTURERS)
        assert state.selected_phase == "all"
        assert state.selected_severities == tuple(SEVERITIES)

    def test_years_inclusive(self):
        state = FilterState(year_range=(2000, 2003))
        assert state.years == [2000, 2001, 2002, 2003]

    def test_fingerprint_tracks_content(self):
        """Equal states share a fingerprint; any change produces a new one."""
        a = FilterState.default()
        b = FilterState.default()
        assert a.fingerprint() == b.fingerprint()
        assert a.with_changes(selected_phase="CRUISE").fingerprint() != a.fingerprint()

    def test_with_changes_leaves_original(self):
        a = FilterState.default()
        b = a.with_changes(year_range=(2000, 2001))
        assert a.year_range == (1995, 2016)
        assert b.year_range == (2000, 2001)


class TestHelpers:
    def test_clamp_year(self):
        assert clamp_year(1980) == 1995
        assert clamp_year(2030) == 2016
        assert clamp_year(2005) == 2005

    def test_ordered_subset_uses_universe_order(self):
        """Unknown values vanish and the universe order is restored."""
        assert ordered_subset(["Airbus", "Cessna", "Boeing"], MANUFACTURERS) == ("Boeing", "Airbus")


class TestNormalizeFilters:
    """Tests for coercing untrusted payloads into a valid FilterState."""

    def test_empty_payload_is_default(self):
        assert normalize_filters({}) == FilterState.default()

    def test_keeps_valid_selection(self):
        state = normalize_filters(
            {
                "year_range": [2000, 2005],
                "selected_manufacturers": ["Airbus", "Boeing"],
                "selected_phase": "CRUISE",
                "selected_severities": ["INCIDENT", "FATAL"],
            }
        )
        assert state.year_range == (2000, 2005)
        assert state.selected_manufacturers == ("Boeing", "Airbus")
        assert state.selected_phase == "CRUISE"
        assert state.selected_severities == ("FATAL", "INCIDENT")

    def test_empty_sets_fall_back_to_all(self):
        """An empty or all-unknown selection never yields an empty set."""
        state = normalize_filters({"selected_manufacturers": ["Cessna"], "selected_severities": []})
        assert state.selected_manufacturers == tuple(MANUFACTURERS)
        assert state.selected_severities == tuple(SEVERITIES)

    def test_years_clamped_and_ordered(self):
        state = normalize_filters({"year_range": [2030, 1980]})
        assert state.year_range == (1995, 2016)

    def test_bad_year_values_fall_back(self):
        state = normalize_filters({"year_range": ["abc", None]})
        assert state.year_range == (1995, 2016)

    def test_wrong_year_shape_falls_back(self):
        state = normalize_filters({"year_range": [2001]})
        assert state.year_range == (1995, 2016)

    def test_phase_case_insensitive(self):
        assert normalize_filters({"selected_phase": "landing"}).selected_phase == "LANDING"

    def test_unknown_phase_is_all(self):
        assert normalize_filters({"selected_phase": "HOVER"}).selected_phase == "all"

    def test_custom_manufacturer_universe(self):
        state = normalize_filters({}, manufacturers=["Boeing", "Airbus"])
        assert state.selected_manufacturers == ("Boeing", "Airbus")
