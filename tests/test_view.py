"""Tests for dashboard/view.py."""

from rich.console import Console

from dashboard.state import DashboardState
from dashboard.view import (
    clamp_percent,
    format_datetime,
    format_timestamp,
    render_dashboard,
    sparkline,
    split_list,
    usage_bar,
)
from factories import make_inspect, make_listing, make_summary
from services.payload import build_container_detail

ID_A = "a" * 64


def _render(state: DashboardState) -> str:
    console = Console(record=True, width=200)
    console.print(render_dashboard(state))
    return console.export_text()


class TestHelpers:
    """Tests for the small formatting helpers."""

    def test_clamp_percent(self) -> None:
        """Test bar clamping."""
        assert clamp_percent(150) == 100
        assert clamp_percent(-5) == 0
        assert clamp_percent(float("nan")) == 0

    def test_usage_bar(self) -> None:
        """Test bar width and label."""
        text = usage_bar(50, "50.0%", width=10).plain
        assert text == "▓▓▓▓▓░░░░░ 50.0%"

    def test_sparkline_scales_to_peak(self) -> None:
        """Test min/max glyphs."""
        assert sparkline([0, 50, 100], peak=100) == "▁▅█"
        assert sparkline([]) == "▁"
        assert sparkline([float("inf"), 2]) == "▁█"

    def test_split_list(self) -> None:
        """Test comma-joined values."""
        assert split_list("a, b") == ["a", "b"]
        assert split_list("-") == ["-"]

    def test_timestamps(self) -> None:
        """Test missing and never-set timestamps."""
        assert format_timestamp(None) == "-"
        assert format_datetime("0001-01-01T00:00:00Z") == "-"
        assert format_datetime("2024-05-01T10:00:00Z") != "-"


class TestRenderDashboard:
    """Smoke tests for the full render."""

    def test_loading(self) -> None:
        """Test the placeholder before the first listing."""
        state = DashboardState()
        state.begin_fetch()
        assert "Loading containers" in _render(state)

    def test_table_banner_and_detail(self) -> None:
        """Test a populated dashboard with an error and an open detail."""
        state = DashboardState()
        state.apply_listing(make_listing(make_summary(ID_A, name="api")))
        state.fail_fetch("Unable to fetch container data")
        state.toggle_select(ID_A)
        state.apply_detail(ID_A, build_container_detail(make_inspect(ID_A, name="api")))

        output = _render(state)

        assert "Containers: 1" in output
        assert "Running: 1" in output
        assert "Unable to fetch container data" in output
        assert "api" in output
        assert "bridge:172.17.0.2" in output
        assert "NGINX_VERSION" in output
        assert "nginx:1.25" in output

    def test_filter_with_no_match(self) -> None:
        """Test the empty-filter message."""
        state = DashboardState(filter_query="nothing-matches")
        state.apply_listing(make_listing(make_summary(ID_A)))
        assert "No containers match" in _render(state)
