"""Binding of caller supplied relative paths to the configured root.

Every path that reaches the filesystem goes through :class:`RootContext`.
The containment check runs on the canonical path before any existence
check, so escapes are rejected whether or not their target exists.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from ..errors import NotFoundError, PathEscapeError, ValidationError

logger = logging.getLogger(__name__)


def normalize_relative_path(relative_path: str | None) -> str:
    if relative_path and '\x00' in relative_path:
        raise ValidationError('Path is invalid.')
    if relative_path is None or not relative_path.strip() or relative_path == '.':
        return ''
    return relative_path.replace('\\', '/').lstrip('/')


def sanitize_name(name: str | None) -> str:
    """Reduce a client supplied name to its final path component."""
    cleaned = (name or '').replace('\\', '/').rsplit('/', 1)[-1].strip()
    if not cleaned or cleaned in {'.', '..'} or '\x00' in cleaned:
        raise ValidationError('File name is invalid.')
    return cleaned


@dataclass(frozen=True)
class RootContext:
    root: Path
    root_with_separator: str
    case_insensitive: bool = False

    @classmethod
    def create(cls, root_path: str | os.PathLike[str], case_insensitive: bool = False) -> 'RootContext':
        if not str(root_path).strip():
            raise ValueError('Root path is not configured.')
        root = Path(root_path).expanduser().resolve(strict=False)
        root.mkdir(parents=True, exist_ok=True)
        root = root.resolve()
        root_text = str(root)
        with_sep = root_text if root_text.endswith(os.sep) else root_text + os.sep
        return cls(root=root, root_with_separator=with_sep, case_insensitive=case_insensitive)

    def _fold(self, value: str) -> str:
        return value.casefold() if self.case_insensitive else value

    def same_path(self, left: Path, right: Path) -> bool:
        return self._fold(str(left)) == self._fold(str(right))

    def is_inside(self, path: Path, parent: Path) -> bool:
        """True when ``path`` is ``parent`` or lies below it."""
        parent_text = self._fold(str(parent))
        text = self._fold(str(path))
        prefix = parent_text if parent_text.endswith(os.sep) else parent_text + os.sep
        return text == parent_text or text.startswith(prefix)

    def is_within_root(self, absolute_path: Path) -> bool:
        return self.is_inside(absolute_path, self.root)

    def ensure_within_root(self, absolute_path: Path) -> Path:
        if not self.is_within_root(absolute_path):
            logger.warning('Blocked path traversal attempt: %s', absolute_path)
            raise PathEscapeError()
        return absolute_path

    def resolve(self, relative_path: str | None) -> Path:
        sanitized = normalize_relative_path(relative_path)
        candidate = (self.root / sanitized).resolve(strict=False)
        return self.ensure_within_root(candidate)

    def resolve_entry(self, relative_path: str | None) -> Path:
        """Like :meth:`resolve`, but a symlink in the last component is returned unfollowed."""
        target = self.resolve(relative_path)
        sanitized = normalize_relative_path(relative_path).rstrip('/')
        parent_rel, _, name = sanitized.rpartition('/')
        if not name or name in {'.', '..'}:
            return target
        link = self.resolve(parent_rel) / name
        return link if link.is_symlink() else target

    def resolve_directory(self, relative_path: str | None) -> Path:
        target = self.resolve(relative_path)
        if not target.is_dir():
            raise NotFoundError('Directory not found')
        return target

    def is_root(self, absolute_path: Path) -> bool:
        return self.same_path(absolute_path, self.root)

    def relative(self, absolute_path: Path) -> str:
        rel = os.path.relpath(absolute_path, self.root)
        return normalize_relative_path(Path(rel).as_posix())
