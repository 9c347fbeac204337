"""Recursive name search below a directory of the root."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

from ..errors import OperationCancelled
from ..schemas import FileSystemEntry
from .inspector import to_entry
from .paths import RootContext

logger = logging.getLogger(__name__)


def _check_cancel(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelled('Search cancelled')


def search(
    ctx: RootContext,
    relative_path: str | None,
    term: str | None,
    cancel_event: threading.Event | None = None,
) -> list[FileSystemEntry]:
    """Collect every descendant whose name contains ``term`` (case-insensitive).

    Subdirectories that cannot be read are logged and skipped. When the
    starting directory itself cannot be read there is nothing to search
    and the result is empty. Setting ``cancel_event`` stops the walk before
    the next entry and raises :class:`OperationCancelled`.
    """
    if term is None or not term.strip():
        return []

    start = ctx.resolve_directory(relative_path)
    needle = term.strip().lower()
    results: list[FileSystemEntry] = []
    pending: list[Path] = [start]

    while pending:
        _check_cancel(cancel_event)
        current = pending.pop()
        try:
            with os.scandir(current) as it:
                children = list(it)
        except FileNotFoundError:
            # Removed while the walk was running.
            continue
        except OSError as exc:
            logger.warning('Skipped inaccessible directory during search: %s (%s)', current, exc.strerror)
            continue

        for child in children:
            _check_cancel(cancel_event)
            child_path = Path(child.path)
            try:
                descend = child.is_dir(follow_symlinks=False)
            except OSError:
                descend = False
            if descend:
                pending.append(child_path)

            if needle not in child.name.lower():
                continue
            try:
                results.append(to_entry(ctx, child_path))
            except OSError as exc:
                logger.warning('Skipped inaccessible entry during search: %s (%s)', child_path, exc.strerror)

    return results
