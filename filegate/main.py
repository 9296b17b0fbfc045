import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional
from urllib.parse import quote, unquote

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from filegate.auth import COOKIE_NAME
from filegate.config import DEFAULT_CONFIG_PATH, load_config
from filegate.context import AppContext, build_context
from filegate.errors import BadRequest, ConfigError, FileGateError, Unauthorized
from filegate.utils.log import configure_logging

logger = logging.getLogger(__name__)

# ── Paths ──
_ROOT_DIR = Path(__file__).resolve().parent.parent
_STATIC_DIR = _ROOT_DIR / "static"
_TEMPLATES_DIR = _ROOT_DIR / "templates"

# ── Routes that require a valid session cookie ──
_PROTECTED_PATHS = {"/upload", "/files", "/delete", "/download"}

templates = Jinja2Templates(directory=str(_TEMPLATES_DIR))


def _context(request: Request) -> AppContext:
    return request.app.state.context


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _session_token(request: Request) -> Optional[str]:
    """Cookie value with its transport percent-encoding removed."""
    raw = request.cookies.get(COOKIE_NAME)
    return unquote(raw) if raw else raw


def _render_main(request: Request, ctx: AppContext, is_authorized: bool):
    files = ctx.storage.list() if is_authorized else []
    return templates.TemplateResponse(
        request,
        "main.html",
        {"is_authorized": is_authorized, "files": files},
    )


def create_app(context: AppContext) -> FastAPI:
    app = FastAPI(title="filegate")
    app.state.context = context

    # ── Auth middleware ──
    @app.middleware("http")
    async def auth_middleware(request: Request, call_next):
        if request.url.path not in _PROTECTED_PATHS:
            return await call_next(request)

        try:
            _context(request).gate.authorize(_session_token(request))
        except Unauthorized as exc:
            logger.warning("Unauthorized access attempt from %s: %s", _client_host(request), exc)
            return RedirectResponse(url="/", status_code=302)

        return await call_next(request)

    # ── Per-request errors → status code, generic body ──
    @app.exception_handler(FileGateError)
    async def filegate_error_handler(request: Request, exc: FileGateError):
        if isinstance(exc, Unauthorized):
            return RedirectResponse(url="/", status_code=302)
        return PlainTextResponse(exc.detail, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info("Rejected malformed request to %s: %s", request.url.path, exc.errors())
        return PlainTextResponse(BadRequest.detail, status_code=BadRequest.status_code)

    # ── Login + dashboard ──
    @app.get("/")
    def main_page(request: Request):
        ctx = _context(request)
        authorized = ctx.gate.is_authorized(_session_token(request))
        return _render_main(request, ctx, authorized)

    @app.post("/")
    def login(
        request: Request,
        username: str = Form(""),
        password: str = Form(""),
    ):
        ctx = _context(request)
        token = ctx.gate.issue(username, password)
        if token is None:
            logger.warning("Failed login for %r from %s", username, _client_host(request))
            return PlainTextResponse("Invalid credentials", status_code=401)

        logger.info("User %r logged in from %s", username, _client_host(request))
        resp = _render_main(request, ctx, True)
        resp.set_cookie(
            key=COOKIE_NAME,
            value=quote(token, safe=":"),  # header must stay latin-1
            httponly=True,          # not accessible from JavaScript
            samesite="lax",
            path="/",
        )
        return resp

    @app.api_route("/logout", methods=["GET", "POST"])
    def logout(request: Request):
        resp = RedirectResponse(url="/", status_code=302)
        resp.delete_cookie(key=COOKIE_NAME, path="/")
        logger.info("Session cleared for %s", _client_host(request))
        return resp

    # ── File operations (auth-protected via middleware) ──
    @app.post("/upload")
    def upload(request: Request, file: Optional[UploadFile] = File(None)):
        if file is None or not file.filename:
            raise BadRequest("missing file field")
        _context(request).storage.upload(file.filename, file.file)
        return RedirectResponse(url="/", status_code=302)

    @app.api_route("/files", methods=["GET", "POST"])
    def list_files(request: Request):
        return JSONResponse({"files": _context(request).storage.list()})

    @app.post("/delete")
    def delete(request: Request, filename: str = Form("")):
        if not filename:
            raise BadRequest("missing filename field")
        _context(request).storage.delete(filename)
        return RedirectResponse(url="/", status_code=302)

    @app.get("/download")
    def download(request: Request, filename: str = ""):
        if not filename:
            raise BadRequest("missing filename parameter")
        path = _context(request).storage.download(filename)
        return FileResponse(str(path), media_type="application/octet-stream", filename=filename)

    # ── Static files ──
    app.mount("/static", StaticFiles(directory=str(_STATIC_DIR)), name="static")

    return app


def run(argv=None):
    import uvicorn

    parser = argparse.ArgumentParser(description="Shared file storage behind a login.")
    parser.add_argument(
        "--config",
        default=os.environ.get("FILEGATE_CONFIG", DEFAULT_CONFIG_PATH),
        help="path to the JSON config file",
    )
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    try:
        config = load_config(args.config)
        context = build_context(config)
    except ConfigError as exc:
        logger.error("%s", exc)
        sys.exit(1)

    logger.info("Starting server on %s", config.address)
    uvicorn.run(create_app(context), host=config.server_host, port=config.server_port)
