"""offline-sync CLI.

Command-line interface for inspecting and replaying the request queue.

Usage:
    osync status                Connectivity and queue size
    osync enqueue <target>      Queue a request
    osync queue                 Show collated queue
    osync sync                  Push queued changes if online
    osync run                   Background sync until interrupted
"""

from offline_sync.cli.main import app, main

__all__ = ["app", "main"]
