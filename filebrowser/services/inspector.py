from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path

from ..schemas import BrowseResult, FileSystemEntry
from .paths import RootContext


def to_entry(ctx: RootContext, absolute_path: Path) -> FileSystemEntry:
    if absolute_path.is_symlink() and not ctx.is_within_root(absolute_path.resolve(strict=False)):
        # Links leaving the root are described by the link itself.
        stat = absolute_path.lstat()
        is_dir = False
    else:
        try:
            stat = absolute_path.stat()
        except FileNotFoundError:
            # Dangling symlink: describe the link itself.
            stat = absolute_path.lstat()
        is_dir = absolute_path.is_dir()
    return FileSystemEntry(
        name=absolute_path.name,
        path=ctx.relative(absolute_path),
        is_dir=is_dir,
        size=0 if is_dir else stat.st_size,
        modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
    )


def _sort_key(entry: FileSystemEntry) -> tuple[bool, str, str]:
    return (not entry.is_dir, entry.name.lower(), entry.name)


def list_children(ctx: RootContext, directory: Path) -> list[FileSystemEntry]:
    with os.scandir(directory) as it:
        entries = [to_entry(ctx, Path(item.path)) for item in it]
    entries.sort(key=_sort_key)
    return entries


def compute_totals(entries: list[FileSystemEntry]) -> tuple[int, int, int]:
    total_bytes = 0
    file_count = 0
    directory_count = 0
    for entry in entries:
        if entry.is_dir:
            directory_count += 1
        else:
            file_count += 1
            total_bytes += entry.size
    return total_bytes, file_count, directory_count


def browse(ctx: RootContext, relative_path: str | None) -> BrowseResult:
    directory = ctx.resolve_directory(relative_path)
    entries = list_children(ctx, directory)
    total_bytes, file_count, directory_count = compute_totals(entries)
    return BrowseResult(
        current_path=ctx.relative(directory),
        entries=entries,
        total_bytes=total_bytes,
        file_count=file_count,
        directory_count=directory_count,
    )
