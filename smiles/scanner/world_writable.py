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

"""World-writable directory check.

Sticky-bit directories are the standard safe pattern for shared space,
so they leave the reported pool (they still get a suppressed normal
verdict). Of the rest, the well-known temp directories are normal and
everything else is potential.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from smiles.models.findings import Category, FilesystemEntry, Severity, Verdict
from smiles.models.rules import PathRule, ScanRules
from smiles.policy.path_policy import logical_path, match_rule
from smiles.scanner.fs_provider import (
    WalkStats,
    has_sticky_bit,
    is_world_writable,
    stat_summary,
    walk_entries,
)

logger = logging.getLogger(__name__)


def classify_world_writable(
    entry: FilesystemEntry,
    temp: list[PathRule],
    root: str = "/",
) -> Verdict:
    path = logical_path(entry.path, root)
    detail = stat_summary(entry)

    if has_sticky_bit(entry):
        return Verdict(
            category=Category.WORLD_WRITABLE_DIR,
            path=path,
            detail=detail,
            severity=Severity.NORMAL,
            suppressed=True,
        )

    if match_rule(path, temp) is not None:
        severity = Severity.NORMAL
    else:
        severity = Severity.POTENTIAL
    return Verdict(
        category=Category.WORLD_WRITABLE_DIR,
        path=path,
        detail=detail,
        severity=severity,
    )


def scan_world_writable(
    root: str,
    rules: ScanRules,
    *,
    one_device: bool = True,
    stats: Optional[WalkStats] = None,
) -> Iterator[Verdict]:
    """Classify every directory with the "others" write bit set."""
    temp = rules.temp_rules()
    for entry in walk_entries(root, one_device=one_device, stats=stats):
        if entry.is_directory and is_world_writable(entry):
            yield classify_world_writable(entry, temp, root)
