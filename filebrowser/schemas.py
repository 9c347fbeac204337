from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class FileSystemEntry(BaseModel):
    name: str
    path: str
    is_dir: bool
    size: int
    modified: datetime


class BrowseResult(BaseModel):
    current_path: str
    entries: list[FileSystemEntry] = Field(default_factory=list)
    total_bytes: int = 0
    file_count: int = 0
    directory_count: int = 0


class FilePreview(BaseModel):
    file_name: str
    file_type: str
    preview_type: str
    content: str = ''
    error_message: Optional[str] = None
    size_bytes: int = 0

    @classmethod
    def error(cls, file_name: str, message: str, size_bytes: int = 0) -> 'FilePreview':
        return cls(file_name=file_name, file_type='', preview_type='error', error_message=message, size_bytes=size_bytes)

    @classmethod
    def text(cls, file_name: str, content: str, size_bytes: int, truncated: bool = False) -> 'FilePreview':
        return cls(
            file_name=file_name,
            file_type='text',
            preview_type='text-truncated' if truncated else 'text',
            content=content,
            size_bytes=size_bytes,
        )

    @classmethod
    def image(cls, file_name: str, data_url: str, size_bytes: int) -> 'FilePreview':
        return cls(file_name=file_name, file_type='image', preview_type='image-base64', content=data_url, size_bytes=size_bytes)

    @classmethod
    def unsupported(cls, file_name: str, size_bytes: int = 0) -> 'FilePreview':
        return cls(
            file_name=file_name,
            file_type='unsupported',
            preview_type='unsupported',
            error_message='File type not supported for preview',
            size_bytes=size_bytes,
        )


class CopyMoveRequest(BaseModel):
    source: str
    destination: str


class MkdirRequest(BaseModel):
    path: str = ''
    name: str


class ApiResponse(BaseModel):
    ok: bool
    message: str
    data: Optional[Any] = None
