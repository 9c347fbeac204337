from __future__ import annotations

from functools import lru_cache

from .config import settings
from .services.file_ops import FileOps


@lru_cache(maxsize=1)
def get_file_ops() -> FileOps:
    return FileOps(
        settings.root_path,
        case_insensitive=settings.case_insensitive_paths,
        upload_chunk_size=settings.upload_chunk_size,
    )
