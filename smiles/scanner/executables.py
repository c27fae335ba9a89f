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

"""Reachable executables outside trusted system paths.

Executables under trusted prefixes belong to the base system. Among the
rest, files owned by root:root are almost always package-manager output
and are suppressed. What remains was placed by some other actor.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from smiles.models.findings import (
    Category,
    FilesystemEntry,
    Severity,
    UserContext,
    Verdict,
)
from smiles.models.rules import PathRule, ScanRules
from smiles.policy.path_policy import logical_path, match_rule
from smiles.scanner.fs_provider import (
    WalkStats,
    long_listing,
    stat_summary,
    user_can_execute,
    walk_entries,
)

logger = logging.getLogger(__name__)


def classify_executable(
    entry: FilesystemEntry,
    trusted: list[PathRule],
    root: str = "/",
) -> Verdict:
    path = logical_path(entry.path, root)

    rule = match_rule(path, trusted)
    if rule is not None:
        return Verdict(
            category=Category.REACHABLE_EXECUTABLE,
            path=path,
            detail=f"under trusted prefix {rule.value}",
            severity=Severity.NORMAL,
            suppressed=True,
        )

    if entry.uid == 0 and entry.gid == 0:
        return Verdict(
            category=Category.REACHABLE_EXECUTABLE,
            path=path,
            detail="owned by root:root",
            severity=Severity.NORMAL,
            suppressed=True,
        )

    return Verdict(
        category=Category.REACHABLE_EXECUTABLE,
        path=path,
        detail=long_listing(entry.path) or stat_summary(entry),
        severity=Severity.POTENTIAL,
    )


def scan_executables(
    root: str,
    rules: ScanRules,
    user: UserContext,
    *,
    one_device: bool = True,
    stats: Optional[WalkStats] = None,
) -> Iterator[Verdict]:
    """Classify regular files the user can execute."""
    trusted = rules.trusted_rules()
    for entry in walk_entries(root, one_device=one_device, stats=stats):
        if entry.is_file and user_can_execute(entry, user):
            yield classify_executable(entry, trusted, root)
