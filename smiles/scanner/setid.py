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

"""SUID and SGID binaries.

Each bit has its own traversal and its own exact-path whitelist, so a
file carrying both bits shows up in both sections. Whitelisting is by
full path only: a copy of ``passwd`` in ``/opt`` is not ``/usr/bin/passwd``.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator, Optional

from smiles.models.findings import Category, FilesystemEntry, Severity, Verdict
from smiles.models.rules import PathRule, ScanRules
from smiles.policy.path_policy import logical_path, match_rule
from smiles.scanner.fs_provider import (
    WalkStats,
    is_setgid,
    is_setuid,
    long_listing,
    stat_summary,
    walk_entries,
)

logger = logging.getLogger(__name__)


def classify_setid(
    entry: FilesystemEntry,
    category: Category,
    whitelist: list[PathRule],
    root: str = "/",
) -> Verdict:
    path = logical_path(entry.path, root)
    if match_rule(path, whitelist) is not None:
        severity = Severity.NORMAL
    else:
        severity = Severity.POTENTIAL
    return Verdict(
        category=category,
        path=path,
        detail=long_listing(entry.path) or stat_summary(entry),
        severity=severity,
    )


def _scan_bit(
    root: str,
    bit_set: Callable[[FilesystemEntry], bool],
    category: Category,
    whitelist: list[PathRule],
    one_device: bool,
    stats: Optional[WalkStats],
) -> Iterator[Verdict]:
    for entry in walk_entries(root, one_device=one_device, stats=stats):
        if entry.is_file and bit_set(entry):
            yield classify_setid(entry, category, whitelist, root)


def scan_suid(
    root: str,
    rules: ScanRules,
    *,
    one_device: bool = True,
    stats: Optional[WalkStats] = None,
) -> Iterator[Verdict]:
    return _scan_bit(
        root, is_setuid, Category.SUID, rules.suid_rules(), one_device, stats
    )


def scan_sgid(
    root: str,
    rules: ScanRules,
    *,
    one_device: bool = True,
    stats: Optional[WalkStats] = None,
) -> Iterator[Verdict]:
    return _scan_bit(
        root, is_setgid, Category.SGID, rules.sgid_rules(), one_device, stats
    )
