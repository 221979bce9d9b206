"""Connectivity monitor: local reachability signal with edge-triggered transitions.

The monitor never probes the remote service. ``has_network_route`` only
asks the kernel whether a route to the outside exists: connecting a UDP
socket selects a route and source address without sending a datagram.
It reflects interface-level connectivity, not server reachability.
"""

from __future__ import annotations

import ipaddress
import logging
import socket
from collections.abc import Callable
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from offline_sync.core.events import WentOffline, WentOnline
from offline_sync.utils.timeutils import utcnow

if TYPE_CHECKING:
    from offline_sync.core.events import EventBus

logger = logging.getLogger(__name__)

DEFAULT_PROBE_HOST = "8.8.8.8"
DEFAULT_PROBE_PORT = 53

Probe = Callable[[], bool]


class ConnectivityState(StrEnum):
    """Last observed reachability."""

    ONLINE = "online"
    OFFLINE = "offline"


def has_network_route(host: str = DEFAULT_PROBE_HOST, port: int = DEFAULT_PROBE_PORT) -> bool:
    """Return True if the host has a route to ``host``.

    ``host`` is an IP literal; no name resolution happens here. No packet
    leaves the machine; an unplugged cable, disabled Wi-Fi or
    missing default route makes ``connect`` fail with ``OSError``.
    """
    try:
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        with socket.socket(family, socket.SOCK_DGRAM) as sock:
            sock.connect((host, port))
            local_addr = sock.getsockname()[0]
    except OSError:
        return False
    return local_addr not in ("0.0.0.0", "::")


def make_route_probe(host: str = DEFAULT_PROBE_HOST, port: int = DEFAULT_PROBE_PORT) -> Probe:
    """Build a probe bound to a specific routing target.

    The probe runs on the event loop, so ``host`` must be an IP literal:
    a hostname would make every sample a blocking DNS lookup.

    Raises:
        ValueError: If ``host`` is not an IP address
    """
    ipaddress.ip_address(host)

    def _probe() -> bool:
        return has_network_route(host, port)

    return _probe


def always_offline() -> bool:
    """Probe used when the configuration forces offline mode."""
    return False


class ConnectivityMonitor:
    """
    Samples a reachability probe and publishes state transitions.

    Only changes are published: sampling ``online, online, offline,
    offline, online`` yields exactly ``WentOffline`` then ``WentOnline``.
    The initial state is ``online`` until a sample proves otherwise.
    """

    def __init__(
        self,
        probe: Probe = has_network_route,
        *,
        bus: EventBus | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._probe = probe
        self._bus = bus
        self._clock = clock
        self._state = ConnectivityState.ONLINE

    @property
    def state(self) -> ConnectivityState:
        """Last observed state."""
        return self._state

    @property
    def bus(self) -> EventBus | None:
        return self._bus

    def attach_bus(self, bus: EventBus) -> None:
        self._bus = bus

    def is_online(self) -> bool:
        """Query the probe now. A failing probe counts as offline."""
        try:
            return bool(self._probe())
        except Exception:
            logger.warning("Connectivity probe failed, assuming offline", exc_info=True)
            return False

    def check(self) -> ConnectivityState:
        """Sample the probe, publish a transition if the state changed.

        Returns:
            The newly observed state
        """
        current = ConnectivityState.ONLINE if self.is_online() else ConnectivityState.OFFLINE
        if current != self._state:
            self._state = current
            logger.info("Connectivity changed: %s", current.value)
            if self._bus is not None:
                at = self._clock()
                if current == ConnectivityState.ONLINE:
                    self._bus.publish(WentOnline(at=at))
                else:
                    self._bus.publish(WentOffline(at=at))
        return current
