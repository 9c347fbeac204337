from __future__ import annotations

import base64
import logging
import mimetypes
import shutil
from pathlib import Path
from typing import BinaryIO

from ..errors import IOFailure, NotFoundError, ValidationError
from ..schemas import FilePreview
from .paths import RootContext, sanitize_name

logger = logging.getLogger(__name__)

MAX_PREVIEW_BYTES = 1024 * 1024
MAX_IMAGE_PREVIEW_BYTES = 500 * 1024
MAX_TEXT_PREVIEW_CHARS = 10_000
TRUNCATION_MARKER = '\n\n[Preview truncated...]'

TEXT_EXTENSIONS = frozenset({
    '.txt', '.md', '.json', '.xml', '.html', '.css', '.js', '.ts', '.cs', '.java', '.py', '.rb',
    '.php', '.cpp', '.h', '.log', '.csv', '.yml', '.yaml', '.toml', '.conf', '.config',
})

IMAGE_MIME_TYPES = {
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.gif': 'image/gif',
    '.webp': 'image/webp',
    '.svg': 'image/svg+xml',
    '.bmp': 'image/bmp',
}


def _existing_file(ctx: RootContext, relative_path: str | None) -> Path:
    if relative_path is None or not relative_path.strip():
        raise ValidationError('Relative file path is required.')
    target = ctx.resolve(relative_path)
    if not target.is_file():
        raise NotFoundError('File not found')
    return target


def preview(ctx: RootContext, relative_path: str | None) -> FilePreview:
    target = _existing_file(ctx, relative_path)
    name = target.name
    size = target.stat().st_size

    if size > MAX_PREVIEW_BYTES:
        return FilePreview.error(name, 'File too large for preview (max 1 MB)', size)

    extension = target.suffix.lower()
    if extension in TEXT_EXTENSIONS:
        try:
            content = target.read_text(encoding='utf-8', errors='replace')
        except OSError as exc:
            logger.warning('Failed to read %s for preview: %s', target, exc)
            return FilePreview.error(name, 'Failed to read file', size)
        if len(content) > MAX_TEXT_PREVIEW_CHARS:
            return FilePreview.text(name, content[:MAX_TEXT_PREVIEW_CHARS] + TRUNCATION_MARKER, size, truncated=True)
        return FilePreview.text(name, content, size)

    if extension in IMAGE_MIME_TYPES:
        if size > MAX_IMAGE_PREVIEW_BYTES:
            return FilePreview.error(name, 'Image file too large for preview (max 500 KB)', size)
        try:
            raw = target.read_bytes()
        except OSError as exc:
            logger.warning('Failed to read %s for preview: %s', target, exc)
            return FilePreview.error(name, 'Failed to read image', size)
        encoded = base64.b64encode(raw).decode('ascii')
        return FilePreview.image(name, f'data:{IMAGE_MIME_TYPES[extension]};base64,{encoded}', size)

    return FilePreview.unsupported(name, size)


def download_target(ctx: RootContext, relative_path: str | None) -> tuple[Path, str, str]:
    target = _existing_file(ctx, relative_path)
    media_type, _ = mimetypes.guess_type(target.name)
    return target, media_type or 'application/octet-stream', target.name


def _numbered_name(name: str, counter: int) -> str:
    path = Path(name)
    return f'{path.stem} ({counter}){path.suffix}'


def save_upload(
    ctx: RootContext,
    relative_dir: str | None,
    file_name: str | None,
    stream: BinaryIO,
    chunk_size: int = 1024 * 1024,
) -> str:
    """Write ``stream`` into ``relative_dir`` and return the stored relative path.

    A taken name gets a ``" (N)"`` suffix before the extension. The file
    is opened exclusively, so a name claimed by a concurrent writer after
    the check moves the loop on to the next candidate.
    """
    directory = ctx.resolve_directory(relative_dir)
    name = sanitize_name(file_name)
    destination = ctx.ensure_within_root(directory / name)

    counter = 1
    while True:
        if not destination.exists() and not destination.is_symlink():
            try:
                handle = destination.open('xb')
            except FileExistsError:
                pass
            except OSError as exc:
                logger.error('Cannot create upload target %s: %s', destination, exc)
                raise IOFailure(f'Failed to store {name}') from exc
            else:
                break
        destination = directory / _numbered_name(name, counter)
        counter += 1

    try:
        with handle:
            shutil.copyfileobj(stream, handle, chunk_size)
    except OSError as exc:
        destination.unlink(missing_ok=True)
        logger.error('Upload to %s failed: %s', destination, exc)
        raise IOFailure(f'Failed to store {name}') from exc
    except Exception:
        destination.unlink(missing_ok=True)
        raise

    logger.info('Uploaded file to %s', destination)
    return ctx.relative(destination)
