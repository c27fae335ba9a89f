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

"""Smiles CLI: typer entry point.

    smiles [--save] [--root PATH] [--rules FILE] [--json] [-v | -q]

Runs every check once and prints a colour-coded report. Unknown
arguments are ignored, matching the shell script this tool grew out of.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape

from smiles import __version__
from smiles.models.findings import printable
from smiles.policy.path_policy import RulesError, load_rules
from smiles.reporter.console_out import (
    ConsoleSink,
    NullSink,
    ReportWriteError,
    console,
    report_filename,
)
from smiles.reporter.json_out import to_canonical_json, write_report
from smiles.scanner.engine import run_scan
from smiles.scanner.fs_provider import current_user

app = typer.Typer(
    name="smiles",
    help=(
        "Smiles: local privilege-escalation quick-check. "
        "Best run as a normal user; running with sudo reveals more (e.g. /root)."
    ),
    add_completion=False,
)

logger = logging.getLogger("smiles")

CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "--help"],
    "allow_extra_args": True,
    "ignore_unknown_options": True,
}


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"smiles v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool, quiet: bool) -> None:
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.INFO)


@app.command(context_settings=CONTEXT_SETTINGS)
def scan(
    ctx: typer.Context,
    save: bool = typer.Option(False, "--save", help="Also save the report to a file in --report-dir"),
    root: str = typer.Option("/", "--root", help="Filesystem root to inspect (e.g. a mounted image)"),
    rules_file: Optional[str] = typer.Option(None, "--rules", help="YAML file overriding or extending the default rules"),
    report_dir: str = typer.Option("/tmp", "--report-dir", help="Directory for the --save report file"),
    output_json: bool = typer.Option(False, "--json", help="Print the report as canonical JSON instead"),
    no_sudo: bool = typer.Option(False, "--no-sudo", help="Skip the sudo -n -l query"),
    cross_devices: bool = typer.Option(False, "--cross-devices", help="Descend into other mounted filesystems"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show excluded/normal entries and debug logs"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit"
    ),
) -> None:
    """Look for common privilege-escalation footholds on this host.

    Checks unusual top-level directories, world-writable directories
    without the sticky bit, executables outside system paths, SUID/SGID
    binaries, sudo rights, and root-owned files you can write.
    """
    _configure_logging(verbose, quiet)
    if ctx.args:
        logger.debug("Ignoring unrecognised arguments: %s", " ".join(ctx.args))

    try:
        rules = load_rules(rules_file)
    except RulesError as e:
        console.print(f"[red]Error: {escape(printable(str(e)))}[/red]")
        raise typer.Exit(code=1)

    # The walk lstat()s its root, so a symlinked --root must be resolved here.
    root = os.path.realpath(root)
    if not os.path.isdir(root):
        console.print(f"[red]Error: Not a directory: {escape(printable(root))}[/red]")
        raise typer.Exit(code=1)

    user = current_user()
    started = datetime.now()
    report_path = Path(report_dir) / report_filename(user, started)

    scan_kwargs = dict(
        root=root,
        one_device=not cross_devices,
        check_sudo=not no_sudo,
        started=started,
    )

    if output_json:
        report = run_scan(rules, user, NullSink(), **scan_kwargs)
        print(to_canonical_json(report), end="")
        if save:
            try:
                write_report(report, report_path.with_suffix(".json"))
            except ReportWriteError as e:
                console.print(f"[red]Error: {escape(printable(str(e)))}[/red]")
                raise typer.Exit(code=1)
        return

    try:
        sink = ConsoleSink(console, verbose=verbose, report_path=report_path if save else None)
        try:
            sink.header(user, started)
            report = run_scan(rules, user, sink, **scan_kwargs)
            sink.footer(report, report_path, saved=save)
        finally:
            sink.close()
    except ReportWriteError as e:
        console.print(f"[red]Error: {escape(printable(str(e)))}[/red]")
        raise typer.Exit(code=1)

    if save:
        logger.info("Saved report to %s", report_path)


if __name__ == "__main__":
    app()
