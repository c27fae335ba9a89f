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

"""Privilege context probe: what may this user run through sudo?

``query_sudo`` is the only part that touches the outside world. It runs
``sudo -n -l`` with stdin closed so that a missing credential cache
makes sudo fail instead of prompting. ``classify_sudo_output`` is pure
and classifies each returned line.
"""

from __future__ import annotations

import logging
import re
import subprocess
from typing import Iterable, Optional

from smiles.models.findings import Category, Severity, Verdict

logger = logging.getLogger(__name__)

SUDO_COMMAND = ["sudo", "-n", "-l"]
SUDO_SOURCE = "sudo -l"

UNDETERMINED_DETAIL = (
    "Could not determine sudo rights non-interactively "
    "(password required or sudo unavailable). Run 'sudo -l' manually."
)
SKIPPED_DETAIL = "sudo check skipped. Run 'sudo -l' manually."


def query_sudo(timeout: float = 5.0) -> Optional[str]:
    """Return the output of ``sudo -n -l``, or None if it is not available.

    Never prompts and never blocks longer than ``timeout`` seconds. Bytes
    that are not UTF-8 come back as ``\\xNN`` escapes.
    """
    try:
        result = subprocess.run(
            SUDO_COMMAND,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            encoding="utf-8",
            errors="backslashreplace",
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError:
        logger.info("sudo not found in PATH")
        return None
    except subprocess.TimeoutExpired:
        logger.warning("sudo -n -l timed out after %.1fs", timeout)
        return None
    except OSError as e:
        logger.info("sudo -n -l could not be started: %s", e)
        return None

    if result.returncode != 0:
        logger.info(
            "sudo -n -l exited with %d: %s",
            result.returncode,
            result.stderr.strip(),
        )
        return None
    return result.stdout


def compile_patterns(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


def classify_sudo_line(line: str, patterns: list[re.Pattern[str]]) -> Verdict:
    """Potential if the line grants NOPASSWD or an ALL (any user / any command) rule."""
    risky = any(p.search(line) for p in patterns)
    return Verdict(
        category=Category.PRIVILEGE_CONTEXT_ENTRY,
        path=SUDO_SOURCE,
        detail=line,
        severity=Severity.POTENTIAL if risky else Severity.NORMAL,
    )


def _info(detail: str) -> Verdict:
    return Verdict(
        category=Category.PRIVILEGE_CONTEXT_ENTRY,
        path=SUDO_SOURCE,
        detail=detail,
        severity=Severity.INFO,
    )


def classify_sudo_output(
    output: Optional[str],
    risk_patterns: Iterable[str],
) -> list[Verdict]:
    """One verdict per non-blank line of ``sudo -l`` output.

    ``None`` (query failed) yields a single informational verdict.
    """
    if output is None:
        return [_info(UNDETERMINED_DETAIL)]

    patterns = compile_patterns(risk_patterns)
    verdicts = [
        classify_sudo_line(line.strip(), patterns)
        for line in output.splitlines()
        if line.strip()
    ]
    if not verdicts:
        return [_info("sudo -l listed no entries.")]
    return verdicts


def skipped_verdicts() -> list[Verdict]:
    return [_info(SKIPPED_DETAIL)]
