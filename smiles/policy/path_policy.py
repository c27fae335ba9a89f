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

"""Path policy: trusted-prefix and exact-allow matching, rule loading.

All decisions are pure functions of the static rule set and the path
string. They never look at the filesystem and never depend on traversal
order.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Optional

import yaml
from pydantic import ValidationError

from smiles.models.rules import PathRule, ScanRules, exact_allow_rules, prefix_rules

logger = logging.getLogger(__name__)

DEFAULT_RULES_PATH = Path(__file__).parent.parent / "rules" / "default_rules.yaml"

_LIST_FIELDS = (
    "standard_top_level_dirs",
    "temp_dirs",
    "trusted_prefixes",
    "suid_whitelist",
    "sgid_whitelist",
    "sudo_risk_patterns",
    "recommendations",
)


class RulesError(Exception):
    """A rules file could not be read or does not validate."""


def match_rule(path: str, rules: Iterable[PathRule]) -> Optional[PathRule]:
    """Return the first rule matching ``path``, or None."""
    for rule in rules:
        if rule.matches(path):
            return rule
    return None


def is_trusted(path: str, trusted_prefixes: Iterable[str]) -> bool:
    """Return True if ``path`` starts with any trusted prefix.

    Plain string prefix test: ``/usrX`` matches ``/usr``. Kept that way
    for compatibility with the shell checks this tool replaces.
    """
    return match_rule(path, prefix_rules(trusted_prefixes)) is not None


def is_whitelisted(path: str, exact_allow: Iterable[str]) -> bool:
    """Return True if ``path`` equals an allow-list entry verbatim."""
    return match_rule(path, exact_allow_rules(exact_allow)) is not None


def logical_path(path: str, root: str) -> str:
    """Map a real path under ``root`` to the absolute path seen from root.

    With root ``/`` this is the identity. With root ``/mnt/img`` the path
    ``/mnt/img/usr/bin/su`` becomes ``/usr/bin/su`` so that rules written
    for a live system apply to a mounted image.
    """
    root = os.path.normpath(root)
    if root == "/":
        return path
    rel = os.path.relpath(path, root)
    if rel == ".":
        return "/"
    return "/" + rel


def _read_yaml(path: Path) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise RulesError(f"Cannot read rules file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise RulesError(f"Invalid YAML in rules file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RulesError(f"Rules file {path} must contain a mapping")
    return data


def _merge(base: dict, override: dict) -> dict:
    """Apply an operator override on top of the defaults.

    A plain key replaces the default value; ``extend_<list>`` appends.
    """
    merged = dict(base)
    for key, value in override.items():
        if key.startswith("extend_"):
            name = key[len("extend_"):]
            if name not in _LIST_FIELDS:
                raise RulesError(f"Cannot extend unknown list '{name}'")
            if not isinstance(value, list):
                raise RulesError(f"'{key}' must be a list")
            merged[name] = list(merged.get(name, [])) + value
        else:
            merged[key] = value
    return merged


def load_rules(override_path: str | Path | None = None) -> ScanRules:
    """Load the bundled default rules, optionally merged with an override file."""
    data = _read_yaml(DEFAULT_RULES_PATH)
    if override_path is not None:
        logger.info("Loading rule overrides from %s", override_path)
        data = _merge(data, _read_yaml(Path(override_path)))

    try:
        return ScanRules(**data)
    except (ValidationError, TypeError) as e:
        raise RulesError(f"Invalid rule set: {e}") from e
