"""Shared test fixtures for smiles tests."""

from __future__ import annotations

import stat
from typing import Callable, Iterable

import pytest

from smiles.models.findings import Category, FilesystemEntry, UserContext, Verdict
from smiles.models.rules import ScanRules
from smiles.policy.path_policy import load_rules


class RecordingSink:
    """Sink that records every call, in order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, object]] = []
        self.verdicts: list[Verdict] = []

    def begin_category(self, category: Category, title: str) -> None:
        self.events.append(("begin", category))

    def emit(self, verdict: Verdict) -> None:
        self.events.append(("emit", verdict.category))
        self.verdicts.append(verdict)

    def end_category(self, category: Category) -> None:
        self.events.append(("end", category))

    def recommendations(self, lines: Iterable[str]) -> None:
        self.events.append(("recommendations", list(lines)))


@pytest.fixture
def rules() -> ScanRules:
    return load_rules()


@pytest.fixture
def user() -> UserContext:
    """An unprivileged user in the sudo group (gid 27)."""
    return UserContext(name="alice", uid=1000, gids=frozenset({1000, 27}), host="testhost")


@pytest.fixture
def make_entry() -> Callable[..., FilesystemEntry]:
    """Build a synthetic FilesystemEntry from a full st_mode."""

    def _make(
        path: str,
        mode: int,
        uid: int = 1000,
        gid: int = 1000,
        owner: str | None = None,
        group: str | None = None,
        device_id: int = 1,
    ) -> FilesystemEntry:
        return FilesystemEntry(
            path=path,
            is_directory=stat.S_ISDIR(mode),
            is_file=stat.S_ISREG(mode),
            is_symlink=stat.S_ISLNK(mode),
            mode=mode,
            uid=uid,
            gid=gid,
            owner=owner or ("root" if uid == 0 else str(uid)),
            group=group or ("root" if gid == 0 else str(gid)),
            device_id=device_id,
        )

    return _make


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
