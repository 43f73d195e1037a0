"""
Per-run state shared by the relay, the sink and the driver.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from s3sync.config.loader import SyncConfig


@dataclass
class SyncContext:
    """
    State for one invocation.

    ``seen_uris`` collects every S3 URI observed in the storage CLI output
    during this run. It only grows and is discarded with the context.
    """

    config: SyncConfig
    seen_uris: set[str] = field(default_factory=set)

    def mark_seen(self, uri: str) -> bool:
        """Record ``uri``; return True only the first time it is seen."""
        if uri in self.seen_uris:
            return False
        self.seen_uris.add(uri)
        return True

    def has_seen(self, uri: str) -> bool:
        return uri in self.seen_uris
