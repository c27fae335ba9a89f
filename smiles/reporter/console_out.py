# Smiles — Local Privilege-Escalation Quick-Check
# Copyright (C) 2026 Smiles Project Contributors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.

"""Rich terminal output for scan verdicts, with an optional plain-text copy.

Potential findings print in red, section titles in yellow, header and
recommendations in green. When a report file is requested every line
is mirrored there with the colour stripped.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import IO, Iterable, Optional, Protocol

from rich.console import Console
from rich.text import Text

from smiles.models.findings import (
    Category,
    ScanReport,
    Severity,
    UserContext,
    Verdict,
    printable,
)

logger = logging.getLogger(__name__)


def _make_console() -> Console:
    """Console with soft wrap so long paths are never folded."""
    return Console(soft_wrap=True, highlight=False)


console = _make_console()

STYLE_POTENTIAL = "red"
STYLE_INFO = "yellow"
STYLE_TITLE = "yellow"
STYLE_BANNER = "green"

# Label for a normal verdict, per category. Top-level directories and
# sudo lines print bare, as the operator reads them as a listing.
_NORMAL_LABELS: dict[Category, str] = {
    Category.WORLD_WRITABLE_DIR: "normal",
    Category.REACHABLE_EXECUTABLE: "excluded",
    Category.SUID: "ok",
    Category.SGID: "ok",
}


class ReportWriteError(Exception):
    """The report file could not be created or written."""


class FindingSink(Protocol):
    """Receives verdicts in emission order, grouped by category."""

    def begin_category(self, category: Category, title: str) -> None: ...

    def emit(self, verdict: Verdict) -> None: ...

    def end_category(self, category: Category) -> None: ...

    def recommendations(self, lines: Iterable[str]) -> None: ...


def format_verdict(verdict: Verdict) -> str:
    """Plain-text line for one verdict."""
    if verdict.category == Category.PRIVILEGE_CONTEXT_ENTRY:
        body = verdict.detail
    elif verdict.detail:
        body = f"{verdict.path} -> {verdict.detail}"
    else:
        body = verdict.path

    if verdict.severity == Severity.POTENTIAL:
        return f"POTENTIAL: {body}"
    if verdict.severity == Severity.INFO:
        return f"    info: {body}"
    label = _NORMAL_LABELS.get(verdict.category)
    if label:
        return f"    {label}: {body}"
    return f"    {body}"


def report_filename(user: UserContext, started: datetime) -> str:
    """Unique per user and start second."""
    return f"pentest_check_{user.name}_{int(started.timestamp())}.txt"


class NullSink:
    """Sink that renders nothing (JSON mode collects the report instead)."""

    def begin_category(self, category: Category, title: str) -> None:
        pass

    def emit(self, verdict: Verdict) -> None:
        pass

    def end_category(self, category: Category) -> None:
        pass

    def recommendations(self, lines: Iterable[str]) -> None:
        pass


class ConsoleSink:
    """Print verdicts to the terminal and optionally append them to a report file.

    The report file is opened up front so that an unwritable location
    fails before any scanning happens.
    """

    def __init__(
        self,
        out: Optional[Console] = None,
        *,
        verbose: bool = False,
        report_path: Optional[Path] = None,
    ) -> None:
        self.out = out if out is not None else console
        self.verbose = verbose
        self.report_path = report_path
        self._fh: Optional[IO[str]] = None
        self._file_console: Optional[Console] = None
        self._first_section = True
        if report_path is not None:
            self._open_report(report_path)

    def _open_report(self, path: Path) -> None:
        try:
            self._fh = open(path, "a", encoding="utf-8")
        except OSError as e:
            raise ReportWriteError(f"Cannot create report file {path}: {e}") from e
        self._file_console = Console(
            file=self._fh,
            color_system=None,
            force_terminal=False,
            highlight=False,
            soft_wrap=True,
            emoji=False,
        )
        logger.debug("Mirroring report to %s", path)

    def line(self, text: str = "", style: Optional[str] = None) -> None:
        text = printable(text)
        self.out.print(Text(text, style=style or ""))
        if self._file_console is not None:
            try:
                self._file_console.print(Text(text))
            except OSError as e:
                raise ReportWriteError(
                    f"Cannot write report file {self.report_path}: {e}"
                ) from e

    def header(self, user: UserContext, started: datetime) -> None:
        stamp = started.strftime("%a %b %d %H:%M:%S %Y")
        self.line(
            f"Pentest quick-check for: {user.name} on host: {user.host} - {stamp}",
            STYLE_BANNER,
        )
        self.line()

    def begin_category(self, category: Category, title: str) -> None:
        if not self._first_section:
            self.line()
        self._first_section = False
        self.line(title, STYLE_TITLE)

    def emit(self, verdict: Verdict) -> None:
        if verdict.suppressed and not self.verbose:
            return
        if verdict.severity == Severity.POTENTIAL:
            style = STYLE_POTENTIAL
        elif verdict.severity == Severity.INFO:
            style = STYLE_INFO
        else:
            style = None
        self.line(format_verdict(verdict), style)

    def end_category(self, category: Category) -> None:
        pass

    def recommendations(self, lines: Iterable[str]) -> None:
        self.line()
        self.line("Recommendations:", STYLE_BANNER)
        for item in lines:
            self.line(f"- {item}")

    def footer(self, report: ScanReport, report_path: Path, saved: bool) -> None:
        self.line()
        summary = f"Summary: {report.potential_count()} potential finding(s)"
        if report.skipped_entries:
            summary += f"; {report.skipped_entries} unreadable entries skipped"
        self.line(summary)
        self.line()
        if saved:
            self.line(f"Saved report: {report_path}", STYLE_BANNER)
        else:
            self.line(f"Use --save to write the report to {report_path}")

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError as e:
                raise ReportWriteError(
                    f"Cannot write report file {self.report_path}: {e}"
                ) from e
            self._fh = None
            self._file_console = None
