"""Request replay: collation, connectivity, transport and the sync engine."""

from offline_sync.sync.collation import collate_queue, collate_requests
from offline_sync.sync.connectivity import (
    ConnectivityMonitor,
    ConnectivityState,
    always_offline,
    has_network_route,
    make_route_probe,
)
from offline_sync.sync.helpers import mark_object_writable, record_write, synchronized_fetch
from offline_sync.sync.single_flight import SingleFlight
from offline_sync.sync.sync_engine import SyncEngine, SyncSettings
from offline_sync.sync.transport import HttpTransport, Transport

__all__ = [
    "ConnectivityMonitor",
    "ConnectivityState",
    "HttpTransport",
    "SingleFlight",
    "SyncEngine",
    "SyncSettings",
    "Transport",
    "always_offline",
    "collate_queue",
    "collate_requests",
    "has_network_route",
    "make_route_probe",
    "mark_object_writable",
    "record_write",
    "synchronized_fetch",
]
