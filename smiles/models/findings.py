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

"""Pydantic models for filesystem facts, verdicts, and the scan report."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from smiles import __version__


def printable(value: str) -> str:
    """Make a filesystem or subprocess string safe to print and serialise.

    Undecodable bytes smuggled in as surrogates (``os.scandir`` on a
    non-UTF-8 name) come back as ``\\xNN`` escapes.
    """
    try:
        raw = value.encode("utf-8", "surrogateescape")
    except UnicodeEncodeError:
        return value.encode("utf-8", "backslashreplace").decode("utf-8")
    return raw.decode("utf-8", "backslashreplace")


class Category(str, Enum):
    """Check categories, in report order."""

    UNUSUAL_TOP_LEVEL_DIR = "unusual_top_level_dir"
    WORLD_WRITABLE_DIR = "world_writable_dir"
    REACHABLE_EXECUTABLE = "reachable_executable"
    SUID = "suid"
    SGID = "sgid"
    PRIVILEGE_CONTEXT_ENTRY = "privilege_context_entry"
    ROOT_OWNED_WRITABLE = "root_owned_writable"


class Severity(str, Enum):
    """Verdict severity."""

    POTENTIAL = "potential"
    NORMAL = "normal"
    INFO = "info"


class FilesystemEntry(BaseModel):
    """Point-in-time snapshot of one filesystem entry (taken with lstat).

    ``mode`` is the full ``st_mode``; permission bits, file type and the
    setuid/setgid/sticky bits are all read from it.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    is_directory: bool
    is_file: bool = False
    is_symlink: bool = False
    mode: int
    uid: int
    gid: int
    owner: str
    group: str
    device_id: int


class Verdict(BaseModel):
    """Classification of one entry within one category.

    ``suppressed`` marks a normal verdict that the default console
    report leaves out (sticky-bit directories, trusted executables).
    """

    model_config = ConfigDict(frozen=True)

    category: Category
    path: str
    detail: str = ""
    severity: Severity
    suppressed: bool = False

    @field_validator("path", "detail")
    @classmethod
    def _printable_text(cls, value: str) -> str:
        return printable(value)

    @property
    def is_potential(self) -> bool:
        return self.severity == Severity.POTENTIAL


class UserContext(BaseModel):
    """Identity of the invoking user, captured once at start."""

    model_config = ConfigDict(frozen=True)

    name: str
    uid: int
    gids: frozenset[int] = Field(default_factory=frozenset)
    host: str = ""


class ScanReport(BaseModel):
    """Everything one scan produced, in emission order."""

    smiles_version: str = __version__
    user: str = ""
    host: str = ""
    root: str = "/"
    scan_timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    skipped_entries: int = 0
    verdicts: list[Verdict] = Field(default_factory=list)

    @field_validator("root")
    @classmethod
    def _printable_root(cls, value: str) -> str:
        return printable(value)

    def potential_count(self) -> int:
        return sum(1 for v in self.verdicts if v.is_potential)

    def by_category(self, category: Category) -> list[Verdict]:
        return [v for v in self.verdicts if v.category == category]
