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

"""Root-owned files the current user can write.

No whitelist: a non-root actor able to overwrite content that root runs
or trusts is dangerous wherever it sits.
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
from smiles.policy.path_policy import logical_path
from smiles.scanner.fs_provider import (
    WalkStats,
    long_listing,
    stat_summary,
    user_can_write,
    walk_entries,
)

logger = logging.getLogger(__name__)


def classify_root_writable(entry: FilesystemEntry, root: str = "/") -> Verdict:
    return Verdict(
        category=Category.ROOT_OWNED_WRITABLE,
        path=logical_path(entry.path, root),
        detail=long_listing(entry.path) or stat_summary(entry),
        severity=Severity.POTENTIAL,
    )


def scan_root_writable(
    root: str,
    user: UserContext,
    *,
    one_device: bool = True,
    stats: Optional[WalkStats] = None,
) -> Iterator[Verdict]:
    """Regular files owned by uid 0 that ``user`` can write."""
    for entry in walk_entries(root, one_device=one_device, stats=stats):
        if entry.is_file and entry.uid == 0 and user_can_write(entry, user):
            yield classify_root_writable(entry, root)
