"""Sweep event reporters.

The engine narrates a sweep as a stream of flat event dicts
({'event': ..., 'reconciler': ..., ...}). Reporters decide how to render it:
operator text, NDJSON for log ingestion, or a list for tests.
"""

from __future__ import annotations

import json
import sys
import threading
from typing import Any, Dict, List, Mapping, Optional, Protocol, TextIO


class Reporter(Protocol):
    def emit(self, event: Mapping[str, Any]) -> None: ...


class MemoryReporter:
    """Keeps every event in memory."""

    def __init__(self) -> None:
        self.events: List[Dict[str, Any]] = []

    def emit(self, event: Mapping[str, Any]) -> None:
        self.events.append(dict(event))

    def of_type(self, name: str) -> List[Dict[str, Any]]:
        return [event for event in self.events if event.get('event') == name]


class JsonLinesReporter:
    """Write each event as one compact JSON line."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream or sys.stdout # The stream to write to
        self._lock = threading.Lock()

    def emit(self, event: Mapping[str, Any]) -> None:
        line = json.dumps(dict(event), separators=(",", ":"), sort_keys=True, default=str)

        with self._lock:
            self._stream.write(line + "\n")
            self._stream.flush()


_SUMMARY_ROWS = (
    ('parentsChecked', 'Parents checked'),
    ('membersChecked', 'Members checked'),
    ('parentsAffected', 'Parents affected'),
    ('orphansFound', 'Orphans found'),
    ('orphansRemoved', 'Orphans removed'),
    ('orphanRemovalFailures', 'Removal failures'),
    ('countersMismatched', 'Counter mismatches'),
    ('countersCorrected', 'Counters corrected'),
    ('counterCorrectionFailures', 'Counter failures'),
    ('parentsFailed', 'Parents failed'),
)


class TextReporter:
    """Human-readable progress log with a closing summary block."""

    def __init__(self, stream: Optional[TextIO] = None, *, verbose: bool = False) -> None:
        self._stream = stream or sys.stdout # The stream to write to
        self._verbose = verbose # Also print parents with nothing to report
        self._lock = threading.Lock()

    def _write(self, *lines: str) -> None:
        with self._lock:
            for line in lines:
                self._stream.write(line + "\n")
            self._stream.flush()

    def emit(self, event: Mapping[str, Any]) -> None:
        kind = event.get('event')
        handler = getattr(self, f"_on_{kind}", None)
        if handler is not None:
            handler(event)

    def _on_sweep_started(self, event: Mapping[str, Any]) -> None:
        mode = "DRY RUN, no changes will be made" if event.get('dryRun') else "APPLY, changes will be written"
        self._write(f"Starting {event.get('reconciler')} sweep over {event.get('collection')} ({event.get('source')}): {mode}")

    def _on_parents_listed(self, event: Mapping[str, Any]) -> None:
        self._write(f"Found {event.get('parents')} documents in {event.get('collection')}")

    def _on_sweep_aborted(self, event: Mapping[str, Any]) -> None:
        self._write(f"Sweep aborted: {event.get('error')}")

    def _on_parent_checked(self, event: Mapping[str, Any]) -> None:
        orphans = event.get('orphans') or []
        mismatched = event.get('counterMismatched', False)

        if not orphans and not mismatched:
            if self._verbose:
                self._write(f"{event.get('label')}: all {event.get('membersChecked')} references valid")
            return

        lines = [f"{event.get('label')}:", f"  - references: {event.get('membersChecked')}"]
        if orphans:
            lines.append(f"  - orphaned: {len(orphans)} ({', '.join(orphans)})")
            if not event.get('dryRun'):
                lines.append(f"  - removed: {len(event.get('removed') or [])}")
        if mismatched:
            counter = event.get('counterField')
            lines.append(f"  - {counter} mismatch: stored {event.get('storedCount')!r}, actual {event.get('actualCount')}")
            if event.get('counterCorrected'):
                lines.append(f"  - {counter} updated to {event.get('actualCount')}")

        self._write(*lines)

    def _on_repair_failed(self, event: Mapping[str, Any]) -> None:
        self._write(f"  ! failed to remove {event.get('memberId')} from {event.get('label')}")

    def _on_counter_failed(self, event: Mapping[str, Any]) -> None:
        self._write(f"  ! failed to update {event.get('counterField')} on {event.get('label')}: {event.get('error')}")

    def _on_parent_failed(self, event: Mapping[str, Any]) -> None:
        self._write(f"  ! skipped {event.get('label')}: {event.get('error')}")

    def _on_sweep_finished(self, event: Mapping[str, Any]) -> None:
        summary = event.get('summary') or {}
        title = "DRY RUN SUMMARY" if summary.get('dryRun') else "CLEANUP SUMMARY"

        lines = ["", "=" * 60, title, "=" * 60]
        for key, caption in _SUMMARY_ROWS:
            lines.append(f"{caption + ':':<28}{summary.get(key, 0)}")
        lines.append("=" * 60)

        if summary.get('dryRun') and (summary.get('orphansFound') or summary.get('countersMismatched')):
            lines.append("Run again without --dry-run to apply these changes.")

        self._write(*lines)
