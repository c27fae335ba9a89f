"""Integration tests for the Smiles CLI.

Every scan runs against a small fake root under tmp_path with the sudo
query disabled, so results do not depend on the host.
"""

import json
import os
from datetime import datetime
from pathlib import Path

import pytest
from typer.testing import CliRunner

from smiles import __version__
from smiles.cli import app

runner = CliRunner()


@pytest.fixture
def fake_root(tmp_path: Path) -> Path:
    root = tmp_path / "root"
    for name in ("bin", "etc", "home", "usr", "secretstuff"):
        (root / name).mkdir(parents=True)
    for path in [root, *root.iterdir()]:
        path.chmod(0o755)
    return root


def _scan(root: Path, *args: str):
    return runner.invoke(app, ["--no-sudo", "--root", str(root), *args])


@pytest.fixture
def latin1_root(fake_root: Path) -> Path:
    """Fake root holding a directory whose name is not valid UTF-8."""
    name = os.fsencode(fake_root) + b"/caf\xe9"
    try:
        os.mkdir(name)
    except OSError as e:
        pytest.skip(f"filesystem rejects non-UTF-8 names: {e}")
    os.chmod(name, 0o755)
    return fake_root


class TestConsoleReport:
    """Default coloured report on stdout."""

    def test_scan_exits_zero(self, fake_root):
        result = _scan(fake_root)
        assert result.exit_code == 0

    def test_report_sections_and_findings(self, fake_root):
        result = _scan(fake_root)
        assert "Pentest quick-check for:" in result.stdout
        assert "1) Unusual top-level directories" in result.stdout
        assert "7) Files owned by root" in result.stdout
        assert "POTENTIAL: /secretstuff" in result.stdout
        assert "POTENTIAL: /home" not in result.stdout
        assert "Recommendations:" in result.stdout

    def test_sudo_skipped_is_info(self, fake_root):
        result = _scan(fake_root)
        assert "info: sudo check skipped" in result.stdout

    def test_no_report_without_save(self, fake_root, tmp_path: Path):
        result = _scan(fake_root, "--report-dir", str(tmp_path))
        assert result.exit_code == 0
        assert list(tmp_path.glob("pentest_check_*")) == []
        assert "Use --save" in result.stdout


class TestSave:
    """--save writes a plain-text copy of the report."""

    def test_save_writes_report_file(self, fake_root, tmp_path: Path):
        out_dir = tmp_path / "reports"
        out_dir.mkdir()
        result = _scan(fake_root, "--save", "--report-dir", str(out_dir))
        assert result.exit_code == 0

        files = list(out_dir.glob("pentest_check_*.txt"))
        assert len(files) == 1
        text = files[0].read_text(encoding="utf-8")
        assert "POTENTIAL: /secretstuff" in text
        assert "\x1b[" not in text
        assert f"Saved report: {files[0]}" in result.stdout

    def test_unwritable_report_dir_exits_one(self, fake_root, tmp_path: Path):
        result = _scan(fake_root, "--save", "--report-dir", str(tmp_path / "missing"))
        assert result.exit_code == 1
        assert "Error" in result.stdout

    def test_json_save_writes_json_file(self, fake_root, tmp_path: Path):
        out_dir = tmp_path / "reports"
        out_dir.mkdir()
        result = _scan(fake_root, "--json", "--save", "--report-dir", str(out_dir), "-q")
        assert result.exit_code == 0
        files = list(out_dir.glob("pentest_check_*.json"))
        assert len(files) == 1
        data = json.loads(files[0].read_text())
        assert data["root"] == os.path.realpath(fake_root)
        stamp = datetime.fromisoformat(data["scan_timestamp"])
        assert files[0].name == f"pentest_check_{data['user']}_{int(stamp.timestamp())}.json"


class TestJsonOutput:
    def test_json_parses(self, fake_root):
        result = _scan(fake_root, "--json", "-q")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["smiles_version"] == __version__
        potential = [v["path"] for v in data["verdicts"] if v["severity"] == "potential"]
        assert "/secretstuff" in potential

    def test_json_lists_sudo_skip(self, fake_root):
        data = json.loads(_scan(fake_root, "--json", "-q").stdout)
        sudo = [v for v in data["verdicts"] if v["category"] == "privilege_context_entry"]
        assert [v["severity"] for v in sudo] == ["info"]


class TestArguments:
    """Option parsing and error exits."""

    @pytest.mark.parametrize("flag", ["--help", "-h"])
    def test_help(self, flag):
        result = runner.invoke(app, [flag])
        assert result.exit_code == 0
        assert "--save" in result.stdout

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_unknown_arguments_are_ignored(self, fake_root):
        result = _scan(fake_root, "--bogus", "extra")
        assert result.exit_code == 0
        assert "POTENTIAL: /secretstuff" in result.stdout

    def test_missing_root_exits_one(self, tmp_path: Path):
        result = _scan(tmp_path / "nope")
        assert result.exit_code == 1

    def test_invalid_rules_exits_one(self, fake_root, tmp_path: Path):
        bad = tmp_path / "rules.yaml"
        bad.write_text("trusted_prefixes: [unclosed\n")
        result = _scan(fake_root, "--rules", str(bad))
        assert result.exit_code == 1
        assert "Error" in result.stdout

    def test_rules_extend_standard_dirs(self, fake_root, tmp_path: Path):
        extra = tmp_path / "rules.yaml"
        extra.write_text("extend_standard_top_level_dirs:\n  - secretstuff\n")
        result = _scan(fake_root, "--rules", str(extra))
        assert result.exit_code == 0
        assert "POTENTIAL: /secretstuff" not in result.stdout

    def test_symlinked_root_is_resolved(self, tmp_path: Path):
        real = tmp_path / "real"
        (real / "opt").mkdir(parents=True)
        for path in (real, real / "opt"):
            path.chmod(0o755)
        evil = real / "opt" / "evil"
        evil.write_text("binary")
        evil.chmod(0o4755)
        link = tmp_path / "link"
        link.symlink_to(real)

        result = _scan(link, "--json", "-q")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        suid = [v["path"] for v in data["verdicts"] if v["category"] == "suid"]
        assert suid == ["/opt/evil"]
        assert data["root"] == os.path.realpath(real)


class TestUndecodableNames:
    """Names that are not valid UTF-8 are escaped, never fatal."""

    def test_console_and_saved_report(self, latin1_root, tmp_path: Path):
        out_dir = tmp_path / "reports"
        out_dir.mkdir()
        result = _scan(latin1_root, "--save", "--report-dir", str(out_dir))
        assert result.exit_code == 0, result.output
        assert "POTENTIAL: /caf\\xe9" in result.stdout

        files = list(out_dir.glob("pentest_check_*.txt"))
        assert len(files) == 1
        text = files[0].read_text(encoding="utf-8")
        assert "POTENTIAL: /caf\\xe9" in text
        assert "Summary:" in text

    def test_json(self, latin1_root):
        result = _scan(latin1_root, "--json", "-q")
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        top = [v["path"] for v in data["verdicts"] if v["category"] == "unusual_top_level_dir"]
        assert "/caf\\xe9" in top
