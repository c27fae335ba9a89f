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

"""Filesystem fact provider: lstat-based traversal without judgment.

Produces ``FilesystemEntry`` snapshots for every entry reachable from a
root. Entries that cannot be read (permission denied, vanished mid-scan)
are skipped and counted, never raised: one inaccessible path must not
abort a scan.
"""

from __future__ import annotations

import grp
import logging
import os
import pwd
import socket
import stat
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Iterator, Optional

from smiles.models.findings import FilesystemEntry, UserContext

logger = logging.getLogger(__name__)

_ANY_EXEC = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


@dataclass
class WalkStats:
    """Counters collected during one traversal."""

    visited: int = 0
    skipped: int = 0


@lru_cache(maxsize=None)
def _user_name(uid: int) -> str:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return str(uid)


@lru_cache(maxsize=None)
def _group_name(gid: int) -> str:
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return str(gid)


def current_user() -> UserContext:
    """Capture the effective user's identity and group memberships."""
    uid = os.geteuid()
    gids = {os.getegid()}
    try:
        gids.update(os.getgroups())
    except OSError as e:
        logger.debug("getgroups failed: %s", e)
    return UserContext(
        name=_user_name(uid),
        uid=uid,
        gids=frozenset(gids),
        host=socket.gethostname(),
    )


def read_entry(path: str) -> Optional[FilesystemEntry]:
    """Snapshot one path with lstat. Returns None if it cannot be read."""
    try:
        st = os.lstat(path)
    except OSError as e:
        logger.debug("Cannot stat %s: %s", path, e)
        return None

    return FilesystemEntry(
        path=path,
        is_directory=stat.S_ISDIR(st.st_mode),
        is_file=stat.S_ISREG(st.st_mode),
        is_symlink=stat.S_ISLNK(st.st_mode),
        mode=st.st_mode,
        uid=st.st_uid,
        gid=st.st_gid,
        owner=_user_name(st.st_uid),
        group=_group_name(st.st_gid),
        device_id=st.st_dev,
    )


def _sorted_children(directory: str, stats: WalkStats) -> list[str]:
    try:
        with os.scandir(directory) as it:
            names = sorted(e.name for e in it)
    except OSError as e:
        stats.skipped += 1
        logger.debug("Cannot list %s: %s", directory, e)
        return []
    return [os.path.join(directory, name) for name in names]


def walk_entries(
    root: str,
    *,
    one_device: bool = True,
    stats: Optional[WalkStats] = None,
) -> Iterator[FilesystemEntry]:
    """Yield every entry under ``root`` in pre-order, lexical within a directory.

    The root itself comes first. Symlinks are reported, never followed.
    With ``one_device`` a directory living on another device (a mount
    point) is yielded but not descended, like ``find -xdev``.
    """
    if stats is None:
        stats = WalkStats()

    top = read_entry(root)
    if top is None:
        stats.skipped += 1
        return
    stats.visited += 1
    yield top
    if not top.is_directory:
        return

    stack = [iter(_sorted_children(root, stats))]
    while stack:
        child = next(stack[-1], None)
        if child is None:
            stack.pop()
            continue

        entry = read_entry(child)
        if entry is None:
            stats.skipped += 1
            continue
        stats.visited += 1
        yield entry

        if entry.is_directory:
            if one_device and entry.device_id != top.device_id:
                logger.debug("Not crossing into other device at %s", child)
                continue
            stack.append(iter(_sorted_children(child, stats)))


def list_top_level(root: str) -> list[str]:
    """Sorted names of the root's children that are directories.

    Symlinks pointing at directories count (``/bin -> usr/bin``).
    """
    try:
        names = sorted(os.listdir(root))
    except OSError as e:
        logger.warning("Cannot list %s: %s", root, e)
        return []
    return [n for n in names if os.path.isdir(os.path.join(root, n))]


def long_listing(path: str) -> Optional[str]:
    """Return an ``ls -ld --time-style=long-iso`` style line, or None if gone."""
    try:
        st = os.lstat(path)
    except OSError:
        return None

    mtime = datetime.fromtimestamp(st.st_mtime).strftime("%Y-%m-%d %H:%M")
    line = (
        f"{stat.filemode(st.st_mode)} {st.st_nlink} "
        f"{_user_name(st.st_uid)} {_group_name(st.st_gid)} "
        f"{st.st_size} {mtime} {path}"
    )
    if stat.S_ISLNK(st.st_mode):
        try:
            line += f" -> {os.readlink(path)}"
        except OSError:
            pass
    return line


def stat_summary(entry: FilesystemEntry) -> str:
    """``stat -c "%A %U %G %n"`` equivalent."""
    return f"{stat.filemode(entry.mode)} {entry.owner} {entry.group} {entry.path}"


# Mode-bit predicates. Pure functions of the snapshot.

def is_world_writable(entry: FilesystemEntry) -> bool:
    return bool(entry.mode & stat.S_IWOTH)


def has_sticky_bit(entry: FilesystemEntry) -> bool:
    return bool(entry.mode & stat.S_ISVTX)


def has_exec_bit(entry: FilesystemEntry) -> bool:
    return bool(entry.mode & _ANY_EXEC)


def is_setuid(entry: FilesystemEntry) -> bool:
    return bool(entry.mode & stat.S_ISUID)


def is_setgid(entry: FilesystemEntry) -> bool:
    return bool(entry.mode & stat.S_ISGID)


def _permission_class_allows(
    entry: FilesystemEntry,
    user: UserContext,
    owner_bit: int,
    group_bit: int,
    other_bit: int,
) -> bool:
    # The first matching class decides, as in the kernel: an owner
    # without the owner bit is denied even if "other" allows it.
    if entry.uid == user.uid:
        return bool(entry.mode & owner_bit)
    if entry.gid in user.gids:
        return bool(entry.mode & group_bit)
    return bool(entry.mode & other_bit)


def user_can_write(entry: FilesystemEntry, user: UserContext) -> bool:
    """Whether ``user`` may write ``entry`` going by its mode bits (ACLs ignored)."""
    if user.uid == 0:
        return True
    return _permission_class_allows(
        entry, user, stat.S_IWUSR, stat.S_IWGRP, stat.S_IWOTH
    )


def user_can_execute(entry: FilesystemEntry, user: UserContext) -> bool:
    """Whether ``user`` may execute ``entry``; root needs any execute bit."""
    if user.uid == 0:
        return has_exec_bit(entry)
    return _permission_class_allows(
        entry, user, stat.S_IXUSR, stat.S_IXGRP, stat.S_IXOTH
    )
