"""Tests for the connectivity monitor and route probe."""

from __future__ import annotations

import logging
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from offline_sync.core.events import EventBus, WentOffline, WentOnline
from offline_sync.sync.connectivity import (
    ConnectivityMonitor,
    ConnectivityState,
    always_offline,
    has_network_route,
    make_route_probe,
)

NOW = datetime(2026, 1, 15, 10, 0, 0)


def _sequence_probe(*answers: bool):
    values = iter(answers)
    return lambda: next(values)


# ─────────── has_network_route ───────────


class TestHasNetworkRoute:
    """The probe asks the kernel for a route without sending traffic."""

    def _mock_socket(self, local_addr: str) -> MagicMock:
        sock = MagicMock()
        sock.__enter__.return_value = sock
        sock.getsockname.return_value = (local_addr, 40000)
        return sock

    def test_route_available(self) -> None:
        sock = self._mock_socket("192.168.1.20")
        with patch("offline_sync.sync.connectivity.socket.socket", return_value=sock):
            assert has_network_route("8.8.8.8", 53) is True
        sock.connect.assert_called_once_with(("8.8.8.8", 53))
        sock.send.assert_not_called()

    def test_connect_failure_means_offline(self) -> None:
        sock = self._mock_socket("0.0.0.0")
        sock.connect.side_effect = OSError("Network is unreachable")
        with patch("offline_sync.sync.connectivity.socket.socket", return_value=sock):
            assert has_network_route() is False

    def test_unspecified_local_address_means_offline(self) -> None:
        sock = self._mock_socket("0.0.0.0")
        with patch("offline_sync.sync.connectivity.socket.socket", return_value=sock):
            assert has_network_route() is False

    def test_ipv6_host_uses_inet6(self) -> None:
        import socket

        sock = self._mock_socket("2001:db8::1")
        with patch(
            "offline_sync.sync.connectivity.socket.socket", return_value=sock
        ) as mock_cls:
            assert has_network_route("2001:4860:4860::8888", 53) is True
        assert mock_cls.call_args.args[0] == socket.AF_INET6

    def test_make_route_probe_binds_target(self) -> None:
        with patch(
            "offline_sync.sync.connectivity.has_network_route", return_value=True
        ) as mock_route:
            probe = make_route_probe("1.1.1.1", 443)
            assert probe() is True
        mock_route.assert_called_once_with("1.1.1.1", 443)

    def test_make_route_probe_rejects_hostname(self) -> None:
        with patch("socket.getaddrinfo") as mock_lookup:
            with pytest.raises(ValueError):
                make_route_probe("sync-probe.example.invalid", 53)
        mock_lookup.assert_not_called()

    def test_make_route_probe_accepts_ipv6_literal(self) -> None:
        assert callable(make_route_probe("2001:4860:4860::8888", 53))

    def test_always_offline(self) -> None:
        assert always_offline() is False


# ─────────── ConnectivityMonitor ───────────


class TestConnectivityMonitor:
    """Edge-triggered transitions."""

    def test_initial_state_online(self) -> None:
        assert ConnectivityMonitor(lambda: True).state == ConnectivityState.ONLINE

    def test_is_online_queries_probe(self) -> None:
        monitor = ConnectivityMonitor(lambda: False)
        assert monitor.is_online() is False
        # Sampling alone does not update the observed state
        assert monitor.state == ConnectivityState.ONLINE

    def test_only_transitions_are_published(self, bus: EventBus, recorded) -> None:
        online = recorded(WentOnline)
        offline = recorded(WentOffline)
        monitor = ConnectivityMonitor(
            _sequence_probe(True, True, False, False, True), bus=bus, clock=lambda: NOW
        )

        states = [monitor.check() for _ in range(5)]

        assert states == [
            ConnectivityState.ONLINE,
            ConnectivityState.ONLINE,
            ConnectivityState.OFFLINE,
            ConnectivityState.OFFLINE,
            ConnectivityState.ONLINE,
        ]
        assert offline == [WentOffline(at=NOW)]
        assert online == [WentOnline(at=NOW)]

    def test_events_in_order(self, bus: EventBus) -> None:
        signals: list[str] = []
        bus.subscribe(WentOnline, lambda e: signals.append(e.signal))
        bus.subscribe(WentOffline, lambda e: signals.append(e.signal))
        monitor = ConnectivityMonitor(_sequence_probe(False, True, False), bus=bus)

        for _ in range(3):
            monitor.check()

        assert signals == ["went-offline", "went-online", "went-offline"]

    def test_state_updated_before_handlers_run(self, bus: EventBus) -> None:
        seen: list[ConnectivityState] = []
        monitor = ConnectivityMonitor(lambda: False, bus=bus)
        bus.subscribe(WentOffline, lambda e: seen.append(monitor.state))

        monitor.check()

        assert seen == [ConnectivityState.OFFLINE]

    def test_failing_probe_counts_as_offline(
        self, bus: EventBus, recorded, caplog: pytest.LogCaptureFixture
    ) -> None:
        offline = recorded(WentOffline)

        def _broken() -> bool:
            raise RuntimeError("probe exploded")

        monitor = ConnectivityMonitor(_broken, bus=bus)
        with caplog.at_level(logging.WARNING, logger="offline_sync.sync.connectivity"):
            state = monitor.check()

        assert state == ConnectivityState.OFFLINE
        assert len(offline) == 1
        assert "assuming offline" in caplog.text

    def test_without_bus_only_tracks_state(self) -> None:
        monitor = ConnectivityMonitor(lambda: False)
        assert monitor.check() == ConnectivityState.OFFLINE
        assert monitor.state == ConnectivityState.OFFLINE

    def test_attach_bus(self, bus: EventBus, recorded) -> None:
        offline = recorded(WentOffline)
        monitor = ConnectivityMonitor(lambda: False)
        monitor.attach_bus(bus)
        monitor.check()
        assert len(offline) == 1
        assert monitor.bus is bus
