from __future__ import annotations

import logging
import os
import shutil
import threading
from pathlib import Path
from typing import BinaryIO

from ..errors import ConflictError, FileBrowserError, IOFailure, NotFoundError, ValidationError
from ..schemas import BrowseResult, FilePreview, FileSystemEntry
from . import inspector, preview, search
from .paths import RootContext, sanitize_name

logger = logging.getLogger(__name__)


def _wrap_os_error(action: str, path: Path, exc: OSError) -> FileBrowserError:
    if isinstance(exc, FileNotFoundError) and not path.exists():
        return NotFoundError('Item not found')
    logger.error('Failed to %s %s: %s', action, path, exc)
    return IOFailure(f'Failed to {action} {path.name}')


def _exists(path: Path) -> bool:
    return path.exists() or path.is_symlink()


def _free_destination(directory: Path, name: str, is_dir: bool, label: str) -> Path:
    """Return ``directory / name``, or the first numbered variant not taken."""
    candidate = directory / name
    stem, suffix = (name, '') if is_dir else (Path(name).stem, Path(name).suffix)
    counter = 1
    while _exists(candidate):
        candidate = directory / f'{stem} ({label}{counter}){suffix}'
        counter += 1
    return candidate


class FileOps:
    """Filesystem operations confined to a single root directory.

    Copy and delete of directories are not transactional: when a nested
    item fails, the items already processed stay copied or deleted and
    the error is reported to the caller.
    """

    def __init__(self, root: str | os.PathLike[str], case_insensitive: bool = False, upload_chunk_size: int = 1024 * 1024):
        self.ctx = RootContext.create(root, case_insensitive=case_insensitive)
        self.root = self.ctx.root
        self.upload_chunk_size = upload_chunk_size

    def safe_path(self, rel: str | None) -> Path:
        return self.ctx.resolve(rel)

    def browse(self, rel: str | None) -> BrowseResult:
        return inspector.browse(self.ctx, rel)

    def search(self, rel: str | None, term: str | None, cancel_event: threading.Event | None = None) -> list[FileSystemEntry]:
        return search.search(self.ctx, rel, term, cancel_event)

    def preview(self, rel: str | None) -> FilePreview:
        return preview.preview(self.ctx, rel)

    def download(self, rel: str | None) -> tuple[Path, str, str]:
        return preview.download_target(self.ctx, rel)

    def save_upload(self, rel: str | None, file_name: str | None, stream: BinaryIO) -> str:
        return preview.save_upload(self.ctx, rel, file_name, stream, self.upload_chunk_size)

    def mkdir(self, rel: str | None, name: str | None) -> str:
        parent = self.ctx.resolve_directory(rel)
        target = self.ctx.ensure_within_root(parent / sanitize_name(name))
        if _exists(target):
            raise ConflictError(f'An item named {target.name} already exists.')
        try:
            target.mkdir(parents=False, exist_ok=False)
        except FileExistsError as exc:
            raise ConflictError(f'An item named {target.name} already exists.') from exc
        except OSError as exc:
            raise _wrap_os_error('create', target, exc) from exc
        logger.info('Created directory: %s', target)
        return self.ctx.relative(target)

    def delete(self, rel: str | None, recursive: bool = False) -> None:
        if rel is None or not rel.strip():
            raise ValidationError('Item path is required.')

        target = self.ctx.resolve_entry(rel)
        if self.ctx.is_root(target):
            raise ValidationError('The root directory cannot be deleted.')
        if not _exists(target):
            raise NotFoundError('Item not found')

        try:
            if target.is_symlink():
                # the link goes, its target stays
                target.unlink()
                logger.info('Deleted link: %s', target)
            elif target.is_dir():
                if any(target.iterdir()):
                    if not recursive:
                        raise ConflictError('Directory is not empty. Use recursive deletion to remove non-empty directories.')
                    shutil.rmtree(target)
                else:
                    target.rmdir()
                logger.info('Deleted directory: %s', target)
            else:
                target.unlink()
                logger.info('Deleted file: %s', target)
        except OSError as exc:
            raise _wrap_os_error('delete', target, exc) from exc

    def _source(self, source: str | None, destination: str | None) -> Path:
        if source is None or not source.strip():
            raise ValidationError('Source path is required.')
        if destination is None or not destination.strip():
            raise ValidationError('Destination path is required.')

        src = self.ctx.resolve(source)
        if self.ctx.is_root(src):
            raise ValidationError('The root directory cannot be copied or moved.')
        if not src.exists():
            raise NotFoundError('Source item not found')
        return src

    def copy(self, source: str | None, destination: str | None) -> str:
        src = self._source(source, destination)
        dest_dir = self.ctx.resolve_directory(destination)
        is_dir = src.is_dir()
        if is_dir and self.ctx.is_inside(dest_dir, src):
            raise ConflictError('A directory cannot be copied into itself.')

        target = self.ctx.ensure_within_root(_free_destination(dest_dir, src.name, is_dir, 'copy '))
        try:
            if is_dir:
                shutil.copytree(src, target, symlinks=True, copy_function=shutil.copy2)
            else:
                shutil.copy2(src, target)
        except OSError as exc:
            raise _wrap_os_error('copy', src, exc) from exc

        logger.info('Copied %s from %s to %s', 'directory' if is_dir else 'file', src, target)
        return self.ctx.relative(target)

    def move(self, source: str | None, destination: str | None) -> str:
        src = self._source(source, destination)
        dest_dir = self.ctx.resolve_directory(destination)
        is_dir = src.is_dir()

        if self.ctx.same_path(src, self.ctx.ensure_within_root(dest_dir / src.name)):
            raise ConflictError('Source and destination paths cannot be the same.')
        if is_dir and self.ctx.is_inside(dest_dir, src):
            raise ConflictError('A directory cannot be moved into itself.')

        target = self.ctx.ensure_within_root(_free_destination(dest_dir, src.name, is_dir, ''))
        try:
            # rename within one filesystem; copy then delete across filesystems
            shutil.move(str(src), str(target))
        except OSError as exc:
            raise _wrap_os_error('move', src, exc) from exc

        logger.info('Moved %s from %s to %s', 'directory' if is_dir else 'file', src, target)
        return self.ctx.relative(target)
