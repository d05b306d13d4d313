from __future__ import annotations

import sys
import threading
from typing import Iterable, List, Optional, TextIO

from ripsim.core.logging import JsonlLogger
from ripsim.model.routing import TableRow

HEADER = (
    "<time>\t<node IP>\t<destination IP>\t<destination subnet mask>"
    "\t<next hop>\t<metric>\t<timeout duration>"
)


def format_row(row: TableRow) -> str:
    return "\t".join(
        [
            str(row.tick),
            row.router,
            row.destination,
            row.subnet_mask,
            row.next_hop,
            row.metric_label,
            str(row.age),
        ]
    )


class ReportSink:
    """Console sink shared by every router thread.

    One lock guards the stream so a router's whole snapshot is written
    without another router's lines in between. Records are mirrored to a
    ``JsonlLogger`` when one is attached.
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        event_log: Optional[JsonlLogger] = None,
        quiet: bool = False,
    ) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._event_log = event_log
        self._quiet = quiet
        self._lock = threading.Lock()

    @property
    def event_log(self) -> Optional[JsonlLogger]:
        return self._event_log

    def attach(self, event_log: Optional[JsonlLogger]) -> None:
        with self._lock:
            self._event_log = event_log

    def emit_table(self, router: str, rows: Iterable[TableRow]) -> None:
        rows = list(rows)
        lines: List[str] = ["", HEADER]
        lines.extend(format_row(row) for row in rows)
        with self._lock:
            self._write(lines)
            if self._event_log is not None:
                tick = rows[0].tick if rows else None
                self._event_log.log(
                    "table",
                    router=router,
                    tick=tick,
                    rows=[row.to_dict() for row in rows],
                )

    def emit_failed(self, router: str, tick: int) -> None:
        with self._lock:
            self._write(["", f"{router} has failed!"])
            if self._event_log is not None:
                self._event_log.log("failed", router=router, tick=int(tick))

    def emit_line(self, text: str) -> None:
        with self._lock:
            self._write([text])

    def _write(self, lines: List[str]) -> None:
        if self._quiet:
            return
        self._stream.write("\n".join(lines) + "\n")
        self._stream.flush()
