from __future__ import annotations

import asyncio
import threading

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import FileResponse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.formparsers import MultiPartException

from ..deps import get_file_ops
from ..errors import FileBrowserError, IOFailure
from ..schemas import ApiResponse, BrowseResult, CopyMoveRequest, FilePreview, FileSystemEntry, MkdirRequest
from ..services.file_ops import FileOps

router = APIRouter(prefix='/api/files', tags=['files'])

_DISCONNECT_POLL_SECONDS = 0.25


def _http_error(exc: FileBrowserError) -> HTTPException:
    headers = {'X-Error-Kind': exc.kind.value}
    if isinstance(exc, IOFailure):
        return HTTPException(status_code=exc.status_code, detail=IOFailure.public_message, headers=headers)
    return HTTPException(status_code=exc.status_code, detail=exc.message, headers=headers)


@router.get('/browse', response_model=BrowseResult)
def browse(path: str = Query(default=''), ops: FileOps = Depends(get_file_ops)):
    try:
        return ops.browse(path)
    except FileBrowserError as exc:
        raise _http_error(exc)


@router.get('/search', response_model=list[FileSystemEntry])
async def search(
    request: Request,
    path: str = Query(default=''),
    q: str = Query(default=''),
    ops: FileOps = Depends(get_file_ops),
):
    cancel = threading.Event()
    task = asyncio.ensure_future(run_in_threadpool(ops.search, path, q, cancel))
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=_DISCONNECT_POLL_SECONDS)
            if done:
                break
            if await request.is_disconnected():
                cancel.set()
                break
        return await task
    except asyncio.CancelledError:
        cancel.set()
        raise
    except FileBrowserError as exc:
        raise _http_error(exc)


@router.post('/upload', status_code=201)
async def upload(request: Request, path: str = Query(default=''), ops: FileOps = Depends(get_file_ops)):
    if not request.headers.get('content-type', '').startswith('multipart/form-data'):
        raise HTTPException(status_code=400, detail='Content-Type must be multipart/form-data')
    try:
        form = await request.form()
    except MultiPartException:
        raise HTTPException(status_code=400, detail='Failed to read form')

    try:
        uploads = [value for _, value in form.multi_items() if isinstance(value, UploadFile)]
        if not uploads:
            raise HTTPException(status_code=400, detail='File is required')

        stored: list[str] = []
        for item in uploads:
            stored.append(await run_in_threadpool(ops.save_upload, path, item.filename, item.file))
    except FileBrowserError as exc:
        raise _http_error(exc)
    finally:
        await form.close()

    return ApiResponse(ok=True, message=f'Uploaded {len(stored)} file(s)', data=stored)


@router.get('/download')
def download(path: str = Query(...), ops: FileOps = Depends(get_file_ops)):
    try:
        target, media_type, filename = ops.download(path)
    except FileBrowserError as exc:
        raise _http_error(exc)
    return FileResponse(target, media_type=media_type, filename=filename)


@router.get('/preview', response_model=FilePreview)
def preview(path: str = Query(...), ops: FileOps = Depends(get_file_ops)):
    try:
        return ops.preview(path)
    except FileBrowserError as exc:
        raise _http_error(exc)


@router.delete('/delete')
def delete(path: str = Query(default=''), recursive: bool = Query(default=False), ops: FileOps = Depends(get_file_ops)):
    try:
        ops.delete(path, recursive=recursive)
    except FileBrowserError as exc:
        raise _http_error(exc)
    return ApiResponse(ok=True, message='Item deleted successfully')


@router.post('/copy')
def copy(payload: CopyMoveRequest, ops: FileOps = Depends(get_file_ops)):
    try:
        new_path = ops.copy(payload.source, payload.destination)
    except FileBrowserError as exc:
        raise _http_error(exc)
    return ApiResponse(ok=True, message='Item copied successfully', data=new_path)


@router.post('/move')
def move(payload: CopyMoveRequest, ops: FileOps = Depends(get_file_ops)):
    try:
        new_path = ops.move(payload.source, payload.destination)
    except FileBrowserError as exc:
        raise _http_error(exc)
    return ApiResponse(ok=True, message='Item moved successfully', data=new_path)


@router.post('/mkdir', status_code=201)
def mkdir(payload: MkdirRequest, ops: FileOps = Depends(get_file_ops)):
    try:
        new_path = ops.mkdir(payload.path, payload.name)
    except FileBrowserError as exc:
        raise _http_error(exc)
    return ApiResponse(ok=True, message='Folder created', data=new_path)
