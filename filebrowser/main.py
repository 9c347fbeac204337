from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from .config import settings
from .deps import get_file_ops
from .logging_config import setup_logging
from .routers import files

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent

_SECURITY_HEADERS = {
    'Content-Security-Policy': "default-src 'self'; img-src 'self' data:; style-src 'self'; script-src 'self'",
    'X-Frame-Options': 'DENY',
    'X-Content-Type-Options': 'nosniff',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
}


@asynccontextmanager
async def lifespan(_app: FastAPI):
    setup_logging()
    ops = get_file_ops()
    logger.info('Serving files from %s', ops.root)
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)


def _parse_cors_origins(value: str) -> list[str]:
    return [origin.strip() for origin in value.split(',') if origin.strip()]


cors_origins = _parse_cors_origins(settings.cors_origins)
if cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_methods=['GET', 'POST', 'DELETE', 'OPTIONS'],
        allow_headers=['Content-Type'],
    )

app.mount('/static', StaticFiles(directory=PACKAGE_DIR / 'static'), name='static')
templates = Jinja2Templates(directory=PACKAGE_DIR / 'templates')


def _apply_security_headers(response):
    for key, value in _SECURITY_HEADERS.items():
        response.headers[key] = value
    return response


@app.middleware('http')
async def security_middleware(request: Request, call_next):
    response = await call_next(request)
    return _apply_security_headers(response)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception('Unhandled error while processing %s', request.url.path, exc_info=exc)
    if request.url.path.startswith('/api/'):
        response = JSONResponse({'detail': 'Internal server error. Please try again.'}, status_code=500)
    else:
        response = HTMLResponse('<h1>Unexpected error</h1><p>Please try again later.</p>', status_code=500)
    return _apply_security_headers(response)


@app.get('/', response_class=HTMLResponse)
def root(request: Request):
    return templates.TemplateResponse(request, 'files.html', {'app_name': settings.app_name})


@app.get('/healthz')
def healthz():
    return {'ok': True}


app.include_router(files.router)
