"""Tests for services/payload.py."""

import pytest
from docker.errors import APIError

from factories import FakeEngine, GatedEngine, make_entry, make_inspect, make_stats
from services.payload import (
    build_container_detail,
    build_container_payload,
    container_state,
    format_networks,
    format_ports,
    format_ports_from_inspect,
    parse_env,
    summarize_container,
)

CID = "3f4e5d6c7b8a9f0e1d2c3b4a5f6e7d8c9b0a1f2e3d4c5b6a7f8e9d0c1b2a3f4e"


class TestContainerState:
    """Tests for container_state."""

    @pytest.mark.parametrize(
        "flags,expected",
        [
            ({"Running": True, "Paused": True, "Restarting": True}, "paused"),
            ({"Running": True, "Restarting": True}, "restarting"),
            ({"Running": True}, "running"),
            ({"Running": False}, "stopped"),
        ],
    )
    def test_precedence(self, flags, expected) -> None:
        """Test paused > restarting > running > stopped."""
        assert container_state({"State": flags}) == expected

    def test_unknown_without_inspect(self) -> None:
        """Test the fallback when inspect data is missing."""
        assert container_state(None) == "unknown"
        assert container_state({"Id": CID}) == "unknown"


class TestFormatPorts:
    """Tests for listing-style port rendering."""

    def test_published_and_exposed(self) -> None:
        """Test host mappings and bare container ports."""
        ports = [
            {"IP": "0.0.0.0", "PrivatePort": 80, "PublicPort": 8080, "Type": "tcp"},
            {"IP": "127.0.0.1", "PrivatePort": 53, "PublicPort": 5353, "Type": "UDP"},
            {"PrivatePort": 443, "Type": "tcp"},
        ]
        assert format_ports(ports) == "0.0.0.0:8080 -> 80/tcp, 127.0.0.1:5353 -> 53/udp, 443/tcp"

    def test_missing_ip_and_type(self) -> None:
        """Test defaults for host IP and protocol."""
        assert format_ports([{"PrivatePort": 80, "PublicPort": 80}]) == "0.0.0.0:80 -> 80/tcp"

    def test_none(self) -> None:
        """Test containers without ports."""
        assert format_ports([]) == "-"
        assert format_ports(None) == "-"


class TestFormatPortsFromInspect:
    """Tests for inspect-style port rendering."""

    def test_one_row_per_binding(self) -> None:
        """Test that each host binding gets its own entry."""
        port_map = {
            "80/tcp": [{"HostIp": "", "HostPort": "8080"}, {"HostIp": "::", "HostPort": "8080"}],
            "443/tcp": None,
        }
        assert format_ports_from_inspect(port_map) == "0.0.0.0:8080 -> 80/tcp, :::8080 -> 80/tcp, 443/tcp"

    def test_empty(self) -> None:
        """Test an empty port map."""
        assert format_ports_from_inspect({}) == "-"
        assert format_ports_from_inspect(None) == "-"


class TestFormatNetworks:
    """Tests for format_networks."""

    def test_name_and_ip(self) -> None:
        """Test `name:ip` entries with the 0.0.0.0 fallback."""
        settings = {"Networks": {"bridge": {"IPAddress": "172.17.0.2"}, "host": {"IPAddress": ""}}}
        assert format_networks(settings) == "bridge:172.17.0.2, host:0.0.0.0"

    def test_none(self) -> None:
        """Test missing network settings."""
        assert format_networks({"Networks": {}}) == "-"
        assert format_networks(None) == "-"


class TestParseEnv:
    """Tests for parse_env."""

    def test_key_value(self) -> None:
        """Test a regular KEY=value entry."""
        [var] = parse_env(["KEY=value"])
        assert (var.key, var.value) == ("KEY", "value")

    def test_no_equals(self) -> None:
        """Test an entry without '='."""
        [var] = parse_env(["NOEQUALS"])
        assert (var.key, var.value) == ("NOEQUALS", "")

    def test_splits_on_first_equals_and_keeps_order(self) -> None:
        """Test values containing '=' and ordering."""
        parsed = parse_env(["B=1", "OPTS=a=b=c", "A="])
        assert [(v.key, v.value) for v in parsed] == [("B", "1"), ("OPTS", "a=b=c"), ("A", "")]

    def test_not_a_list(self) -> None:
        """Test a missing Env block."""
        assert parse_env(None) == []


class TestSummarizeContainer:
    """Tests for the pure summary mapping."""

    def test_full_data(self) -> None:
        """Test a running container with inspect and stats."""
        summary = summarize_container(
            make_entry(CID, "web", ports=[{"PrivatePort": 80, "PublicPort": 8080, "Type": "tcp"}]),
            make_inspect(CID),
            make_stats(),
        )

        assert summary.id == CID
        assert summary.name == "web"
        assert summary.state == "running"
        assert summary.ports == "0.0.0.0:8080 -> 80/tcp"
        assert summary.networks == "bridge:172.17.0.2"
        assert summary.cpu == 40.0
        assert summary.memory.usage == "40M"
        assert summary.memory.limit == "1G"
        assert summary.memory.percent == 3.9
        assert summary.net_io_bytes.rx == 1536
        assert summary.net_io.rx == "1.5K"
        assert summary.block_io_bytes.write == 8192
        assert summary.block_io.read == "4K"
        assert summary.pids == 3
        assert summary.uptime == "1m30s"
        assert summary.raw.short_id == CID[:12]

    def test_name_falls_back_to_short_id(self) -> None:
        """Test a listing entry without names."""
        summary = summarize_container(make_entry(CID), None, None)
        assert summary.name == CID[:12]

    def test_nothing_but_the_listing(self) -> None:
        """Test that every field has a fallback."""
        summary = summarize_container(make_entry(CID, "db"), None, None)

        assert summary.state == "unknown"
        assert summary.uptime == "-"
        assert summary.networks == "-"
        assert summary.ports == "-"
        assert summary.cpu == 0
        assert summary.memory.usage == "0B"
        assert summary.memory.percent == 0
        assert summary.net_io.tx == "0B"
        assert summary.block_io_bytes.read == 0
        assert summary.pids == 0

    def test_wire_keys(self) -> None:
        """Test that the JSON uses the dashboard's camelCase keys."""
        data = summarize_container(make_entry(CID, "web"), make_inspect(CID), make_stats()).model_dump(by_alias=True)
        assert set(data) == {
            "id", "name", "state", "ports", "networks", "cpu", "memory", "netIO",
            "netIOBytes", "blockIO", "blockIOBytes", "pids", "uptime", "raw",
        }
        assert data["raw"] == {"shortId": CID[:12]}


class TestBuildContainerPayload:
    """Tests for the fault-tolerant payload builder."""

    async def test_success_queries_both(self) -> None:
        """Test that inspect and stats are each queried once."""
        engine = FakeEngine(inspects={CID: make_inspect(CID)}, stats={CID: make_stats()})

        summary = await build_container_payload(engine, make_entry(CID, "web"))

        assert summary.cpu == 40.0
        assert engine.inspect_calls == [CID]
        assert engine.stats_calls == [CID]

    async def test_inspect_and_stats_run_concurrently(self) -> None:
        """Test that both queries are in flight at the same time."""
        engine = GatedEngine(
            waits_for={f"inspect:{CID}": f"stats:{CID}", f"stats:{CID}": f"inspect:{CID}"},
            inspects={CID: make_inspect(CID)},
            stats={CID: make_stats()},
        )

        summary = await build_container_payload(engine, make_entry(CID, "web"))

        assert summary.cpu == 40.0
        assert summary.state == "running"
        assert engine.inspect_calls == [CID]

    async def test_stats_failure_keeps_inspect_fields(self) -> None:
        """Test that a stats-only failure still yields name, state, uptime and networks."""
        engine = FakeEngine(
            inspects={CID: make_inspect(CID, paused=True)},
            stats={CID: APIError("stats unavailable")},
        )

        summary = await build_container_payload(engine, make_entry(CID, "web"))

        assert summary.name == "web"
        assert summary.state == "paused"
        assert summary.uptime == "1m30s"
        assert summary.networks == "bridge:172.17.0.2"
        assert summary.cpu == 0
        assert summary.memory.percent == 0
        assert summary.net_io_bytes.rx == 0
        assert summary.pids == 4242  # main pid from inspect
        assert engine.inspect_calls == [CID, CID]

    async def test_inspect_retry_succeeds(self) -> None:
        """Test that a failed first inspect is retried once."""
        engine = FakeEngine(
            inspects={CID: [APIError("busy"), make_inspect(CID)]},
            stats={CID: make_stats()},
        )

        summary = await build_container_payload(engine, make_entry(CID, "web"))

        assert summary.state == "running"
        assert summary.cpu == 0  # the pair failed, stats are not used
        assert engine.inspect_calls == [CID, CID]

    async def test_everything_fails(self) -> None:
        """Test that total failure degrades instead of raising."""
        engine = FakeEngine(
            inspects={CID: APIError("gone")},
            stats={CID: APIError("gone")},
        )

        summary = await build_container_payload(engine, make_entry(CID, "web"))

        assert summary.name == "web"
        assert summary.state == "unknown"
        assert summary.uptime == "-"
        assert summary.networks == "-"
        assert engine.inspect_calls == [CID, CID]


class TestBuildContainerDetail:
    """Tests for build_container_detail."""

    def test_maps_inspect(self) -> None:
        """Test the full detail mapping."""
        inspect = make_inspect(CID, name="web")
        inspect["RestartCount"] = 2
        inspect["State"]["Health"] = {"Status": "healthy"}
        inspect["Config"]["Env"].append("EMPTY")
        inspect["NetworkSettings"]["Networks"]["backend"] = {"IPAddress": "10.0.0.5"}

        detail = build_container_detail(inspect)

        assert detail.id == CID
        assert detail.name == "web"
        assert detail.image == "nginx:1.25"
        assert detail.state == "running"
        assert detail.status == "running"
        assert detail.health == "healthy"
        assert detail.restart_count == 2
        assert detail.pid == 4242
        assert detail.ports == "0.0.0.0:8080 -> 80/tcp"
        assert detail.networks == "bridge:172.17.0.2, backend:10.0.0.5"
        assert detail.ip_addresses == ["172.17.0.2", "10.0.0.5"]
        assert detail.command == "nginx -g daemon off;"
        assert detail.entrypoint == "/docker-entrypoint.sh"
        assert detail.working_dir == "-"
        assert detail.user == "-"
        assert [(v.key, v.value) for v in detail.env][-1] == ("EMPTY", "")
        assert detail.labels == {"maintainer": "NGINX Docker Maintainers"}
        assert detail.created == "2024-05-01T09:00:00.000000000Z"

    def test_sparse_inspect(self) -> None:
        """Test fallbacks for a minimal document."""
        detail = build_container_detail({"Id": CID})

        assert detail.name == CID[:12]
        assert detail.image == "-"
        assert detail.state == "unknown"
        assert detail.status == "unknown"
        assert detail.health == "-"
        assert detail.started_at is None
        assert detail.ports == "-"
        assert detail.ip_addresses == []
        assert detail.command == "-"
        assert detail.env == []
        assert detail.labels == {}
