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

"""Pydantic models for path rules and the static scan rule set."""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field


class RuleKind(str, Enum):
    """How a path rule compares against a path."""

    TRUSTED_PREFIX = "trusted_prefix"
    EXACT_ALLOW = "exact_allow"


class PathRule(BaseModel):
    """A single trusted-prefix or exact-allow rule.

    Prefix rules are a plain string prefix test, not path-segment aware:
    ``/usr`` also matches ``/usrX/tool``.
    """

    model_config = ConfigDict(frozen=True)

    kind: RuleKind
    value: str

    def matches(self, path: str) -> bool:
        if self.kind == RuleKind.TRUSTED_PREFIX:
            return path.startswith(self.value)
        return path == self.value


def prefix_rules(paths: Iterable[str]) -> list[PathRule]:
    return [PathRule(kind=RuleKind.TRUSTED_PREFIX, value=p) for p in paths]


def exact_allow_rules(paths: Iterable[str]) -> list[PathRule]:
    return [PathRule(kind=RuleKind.EXACT_ALLOW, value=p) for p in paths]


class ScanRules(BaseModel):
    """Static rule set, loaded once at start and never mutated."""

    model_config = ConfigDict(frozen=True)

    standard_top_level_dirs: list[str] = Field(default_factory=list)
    temp_dirs: list[str] = Field(default_factory=list)
    trusted_prefixes: list[str] = Field(default_factory=list)
    suid_whitelist: list[str] = Field(default_factory=list)
    sgid_whitelist: list[str] = Field(default_factory=list)
    sudo_risk_patterns: list[str] = Field(default_factory=list)
    sudo_timeout: float = 5.0
    recommendations: list[str] = Field(default_factory=list)

    def trusted_rules(self) -> list[PathRule]:
        return prefix_rules(self.trusted_prefixes)

    def suid_rules(self) -> list[PathRule]:
        return exact_allow_rules(self.suid_whitelist)

    def sgid_rules(self) -> list[PathRule]:
        return exact_allow_rules(self.sgid_whitelist)

    def temp_rules(self) -> list[PathRule]:
        return exact_allow_rules(self.temp_dirs)
