"""Tests for the scan engine: order, completeness, idempotence."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from smiles.models.findings import Category, Severity, UserContext
from smiles.reporter.json_out import to_canonical_json
from smiles.scanner.engine import CATEGORY_ORDER, run_scan, section_titles

SUDO_OUTPUT = "User alice may run the following commands on host:\n    (ALL : ALL) NOPASSWD: ALL\n"


@pytest.fixture
def fake_root(tmp_path: Path) -> Path:
    root = tmp_path / "root"
    for name in ("bin", "etc", "usr", "secretstuff"):
        (root / name).mkdir(parents=True)
    (root / "opt" / "shared").mkdir(parents=True)
    (root / "usr" / "bin").mkdir()
    for path in [root, *root.rglob("*")]:
        path.chmod(0o755)
    (root / "opt" / "shared").chmod(0o777)
    (root / "usr" / "bin" / "passwd").write_text("binary")
    (root / "usr" / "bin" / "passwd").chmod(0o4755)
    return root


def _scan(root: Path, rules, user, sink, **kwargs):
    kwargs.setdefault("sudo_query", lambda timeout: SUDO_OUTPUT)
    return run_scan(rules, user, sink, root=str(root), **kwargs)


class TestRunScan:
    """Driver behaviour."""

    def test_categories_in_fixed_order(self, fake_root, rules, user, sink):
        _scan(fake_root, rules, user, sink)
        begun = [c for kind, c in sink.events if kind == "begin"]
        assert begun == list(CATEGORY_ORDER)
        assert sink.events[-1][0] == "recommendations"

    def test_verdicts_grouped_by_category(self, fake_root, rules, user, sink):
        _scan(fake_root, rules, user, sink)
        current = None
        for kind, value in sink.events:
            if kind == "begin":
                current = value
            elif kind == "emit":
                assert value == current
            elif kind == "end":
                assert value == current
                current = None

    def test_report_matches_emitted_verdicts(self, fake_root, rules, user, sink):
        report = _scan(fake_root, rules, user, sink)
        assert report.verdicts == sink.verdicts
        assert report.user == "alice"
        assert report.root == str(fake_root)

    def test_expected_findings(self, fake_root, rules, user, sink):
        report = _scan(fake_root, rules, user, sink)

        top = report.by_category(Category.UNUSUAL_TOP_LEVEL_DIR)
        assert [v.path for v in top if v.is_potential] == ["/secretstuff"]

        ww = report.by_category(Category.WORLD_WRITABLE_DIR)
        assert [v.path for v in ww if v.is_potential] == ["/opt/shared"]

        suid = report.by_category(Category.SUID)
        assert [(v.path, v.severity) for v in suid] == [("/usr/bin/passwd", Severity.NORMAL)]

        sudo = report.by_category(Category.PRIVILEGE_CONTEXT_ENTRY)
        assert [v.severity for v in sudo] == [Severity.NORMAL, Severity.POTENTIAL]

    def test_sudo_query_gets_configured_timeout(self, fake_root, rules, user, sink):
        seen = []

        def query(timeout):
            seen.append(timeout)
            return None

        report = _scan(fake_root, rules, user, sink, sudo_query=query)
        assert seen == [rules.sudo_timeout]
        sudo = report.by_category(Category.PRIVILEGE_CONTEXT_ENTRY)
        assert [v.severity for v in sudo] == [Severity.INFO]

    def test_sudo_check_can_be_skipped(self, fake_root, rules, user, sink):
        def query(timeout):
            raise AssertionError("sudo must not be queried")

        report = _scan(fake_root, rules, user, sink, sudo_query=query, check_sudo=False)
        sudo = report.by_category(Category.PRIVILEGE_CONTEXT_ENTRY)
        assert len(sudo) == 1
        assert sudo[0].severity == Severity.INFO

    def test_recommendations_come_from_rules(self, fake_root, rules, user, sink):
        _scan(fake_root, rules, user, sink)
        assert sink.events[-1] == ("recommendations", rules.recommendations)

    def test_report_stamped_with_start_time(self, fake_root, rules, user, sink):
        started = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)
        report = _scan(fake_root, rules, user, sink, started=started)
        assert report.scan_timestamp == "2026-10-17T12:00:00+00:00"

    def test_idempotent_over_unchanged_tree(self, fake_root, rules, user, sink):
        first = _scan(fake_root, rules, user, sink)
        second = _scan(fake_root, rules, user, sink)
        assert to_canonical_json(first.verdicts) == to_canonical_json(second.verdicts)


class TestSectionTitles:
    def test_every_category_has_a_title(self, user):
        titles = section_titles(user)
        assert set(titles) == set(CATEGORY_ORDER)

    def test_titles_name_the_user(self):
        bob = UserContext(name="bob", uid=1001)
        titles = section_titles(bob)
        assert "bob" in titles[Category.REACHABLE_EXECUTABLE]
        assert "bob" in titles[Category.PRIVILEGE_CONTEXT_ENTRY]

    def test_undecodable_root_is_escaped(self, user):
        titles = section_titles(user, "/mnt/caf\udce9")
        assert titles[Category.UNUSUAL_TOP_LEVEL_DIR].endswith("/mnt/caf\\xe9")
