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

"""Scan engine: runs every check in fixed order and feeds the sink.

Order: top-level dirs, world-writable dirs, reachable executables, SUID,
SGID, sudo rights, root-owned writable files, then recommendations. Each
category streams to completion before the next begins, so the report is
grouped by category and reproducible.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from smiles.models.findings import Category, ScanReport, UserContext, Verdict, printable
from smiles.models.rules import ScanRules
from smiles.reporter.console_out import FindingSink
from smiles.scanner.executables import scan_executables
from smiles.scanner.fs_provider import WalkStats
from smiles.scanner.root_writable import scan_root_writable
from smiles.scanner.setid import scan_sgid, scan_suid
from smiles.scanner.sudo_probe import classify_sudo_output, query_sudo, skipped_verdicts
from smiles.scanner.top_level import scan_top_level
from smiles.scanner.world_writable import scan_world_writable

logger = logging.getLogger(__name__)

SudoQuery = Callable[[float], Optional[str]]

CATEGORY_ORDER = (
    Category.UNUSUAL_TOP_LEVEL_DIR,
    Category.WORLD_WRITABLE_DIR,
    Category.REACHABLE_EXECUTABLE,
    Category.SUID,
    Category.SGID,
    Category.PRIVILEGE_CONTEXT_ENTRY,
    Category.ROOT_OWNED_WRITABLE,
)


def section_titles(user: UserContext, root: str = "/") -> dict[Category, str]:
    shown = printable(root)
    return {
        Category.UNUSUAL_TOP_LEVEL_DIR: f"1) Unusual top-level directories in {shown}",
        Category.WORLD_WRITABLE_DIR: (
            f"2) World-writable directories (without sticky bit) under {shown} "
            "(note: some are normal like /tmp):"
        ),
        Category.REACHABLE_EXECUTABLE: (
            f"3) Executable files that {user.name} can run outside standard "
            "system paths (potentially interesting):"
        ),
        Category.SUID: "4) SUID (setuid) files (may run with elevated privileges)",
        Category.SGID: "5) SGID files (may grant group privileges)",
        Category.PRIVILEGE_CONTEXT_ENTRY: (
            f"6) Commands {user.name} may run with sudo (sudo -n -l)"
        ),
        Category.ROOT_OWNED_WRITABLE: (
            "7) Files owned by root but writable by the current user (dangerous)"
        ),
    }


def run_scan(
    rules: ScanRules,
    user: UserContext,
    sink: FindingSink,
    *,
    root: str = "/",
    one_device: bool = True,
    check_sudo: bool = True,
    sudo_query: SudoQuery = query_sudo,
    started: Optional[datetime] = None,
) -> ScanReport:
    """Run all checks against ``root`` and return what was emitted.

    Every verdict goes to ``sink`` as soon as it is produced and is also
    collected in the returned report. ``started`` stamps the report so it
    agrees with the header and the report file name.
    """
    stats = WalkStats()

    def sudo_verdicts() -> list[Verdict]:
        if not check_sudo:
            return skipped_verdicts()
        return classify_sudo_output(
            sudo_query(rules.sudo_timeout), rules.sudo_risk_patterns
        )

    producers: dict[Category, Callable[[], Iterable[Verdict]]] = {
        Category.UNUSUAL_TOP_LEVEL_DIR: lambda: scan_top_level(root, rules),
        Category.WORLD_WRITABLE_DIR: lambda: scan_world_writable(
            root, rules, one_device=one_device, stats=stats
        ),
        Category.REACHABLE_EXECUTABLE: lambda: scan_executables(
            root, rules, user, one_device=one_device, stats=stats
        ),
        Category.SUID: lambda: scan_suid(
            root, rules, one_device=one_device, stats=stats
        ),
        Category.SGID: lambda: scan_sgid(
            root, rules, one_device=one_device, stats=stats
        ),
        Category.PRIVILEGE_CONTEXT_ENTRY: sudo_verdicts,
        Category.ROOT_OWNED_WRITABLE: lambda: scan_root_writable(
            root, user, one_device=one_device, stats=stats
        ),
    }
    titles = section_titles(user, root)
    report = ScanReport(user=user.name, host=user.host, root=root)
    if started is not None:
        report.scan_timestamp = started.astimezone(timezone.utc).isoformat()
    most_skipped = 0

    for category in CATEGORY_ORDER:
        logger.debug("Running check %s", category.value)
        skipped_before = stats.skipped
        visited_before = stats.visited
        sink.begin_category(category, titles[category])
        for verdict in producers[category]():
            report.verdicts.append(verdict)
            sink.emit(verdict)
        sink.end_category(category)

        visited = stats.visited - visited_before
        if visited:
            logger.debug("%s: examined %d entries", category.value, visited)
        skipped = stats.skipped - skipped_before
        most_skipped = max(most_skipped, skipped)
        if skipped:
            logger.info(
                "%s: skipped %d unreadable entries", category.value, skipped
            )

    # The traversals overlap, so the largest single count is the coverage gap.
    report.skipped_entries = most_skipped
    sink.recommendations(rules.recommendations)
    return report
