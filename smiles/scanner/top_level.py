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

"""Unusual top-level directory check.

Compares the root's directory children against the conventional Unix
layout. Anything outside that layout is worth a look: hand-made
top-level directories often hold cron payloads, dropped binaries, or
credentials.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable, Iterator

from smiles.models.findings import Category, Severity, Verdict
from smiles.models.rules import ScanRules
from smiles.scanner.fs_provider import list_top_level, long_listing

logger = logging.getLogger(__name__)


def classify_top_level_dir(name: str, root: str, standard: Iterable[str]) -> Verdict:
    """Classify one top-level directory name.

    The detail is the ``ls -ld`` line; an entry that disappeared between
    listing and inspection gets an empty detail.
    """
    detail = long_listing(os.path.join(root, name)) or ""
    severity = Severity.NORMAL if name in set(standard) else Severity.POTENTIAL
    return Verdict(
        category=Category.UNUSUAL_TOP_LEVEL_DIR,
        path="/" + name,
        detail=detail,
        severity=severity,
    )


def scan_top_level(root: str, rules: ScanRules) -> Iterator[Verdict]:
    """One verdict per directory directly under ``root``."""
    standard = frozenset(rules.standard_top_level_dirs)
    for name in list_top_level(root):
        yield classify_top_level_dir(name, root, standard)
