import logging
import os

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from prometheus_client import make_asgi_app
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.types import Message, Receive

from app.algorithms.ingest import discard, ingest
from app.board import Board, open_store
from app.utils.config import Settings, settings
from app.utils.errors import PostValidationError, StoreError, UploadTooLarge
from app.utils.observability import get_trace_context, setup_tracing
from app.utils.schemas import ROOT_PARENT_ID, ListingPage, ThreadView

SERVICE_NAME = "board"
UPLOAD_CHUNK_SIZE = 64 * 1024

logger = logging.getLogger(__name__)


def get_board(request: Request) -> Board:
    return request.app.state.board


def _form_text(form, name: str, default: str = "") -> str:
    value = form.get(name)
    return value if isinstance(value, str) else default


async def _read_chunks(upload: UploadFile):
    while True:
        chunk = await upload.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        yield chunk


def _capped_receive(receive: Receive, limit: int) -> Receive:
    """Wrap an ASGI receive so the body fails once it passes limit bytes.

    Counts every part of a multipart body while it streams in, whether or
    not the request declared a Content-Length.
    """
    received = 0

    async def capped() -> Message:
        nonlocal received
        message = await receive()
        if message["type"] == "http.request":
            received += len(message.get("body", b""))
            if received > limit:
                raise UploadTooLarge(limit)
        return message

    return capped


def create_app(config: Settings = settings) -> FastAPI:
    logging.basicConfig(level=config.log_level.upper())
    app = FastAPI(title="Board", version=config.service_version)
    app.state.settings = config
    os.makedirs(config.upload_dir, exist_ok=True)

    if config.enable_tracing:
        setup_tracing(app, SERVICE_NAME, config.service_version)

    @app.on_event("startup")
    async def open_board() -> None:
        app.state.board = Board(open_store(config), config)
        logger.info(
            "[Board] ready backend=%s uploads=%s page_size=%d",
            config.store_backend,
            config.upload_dir,
            config.posts_per_page,
        )

    @app.on_event("shutdown")
    async def close_board() -> None:
        board = getattr(app.state, "board", None)
        if board is not None:
            board.close()
            app.state.board = None

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        logger.error("[Board] store failure on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Storage error", **get_trace_context()},
        )

    @app.exception_handler(UploadTooLarge)
    async def too_large_handler(request: Request, exc: UploadTooLarge) -> JSONResponse:
        return JSONResponse(status_code=413, content={"detail": str(exc)})

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok", "service": SERVICE_NAME}

    @app.get("/", response_model=ListingPage)
    def index(page: str | None = None, board: Board = Depends(get_board)) -> ListingPage:
        try:
            page_number = int(page) if page else 1
        except ValueError:
            page_number = 1
        return board.listing(page_number)

    @app.get("/post/{post_id}", response_model=ThreadView)
    def view_post(post_id: str, board: Board = Depends(get_board)) -> ThreadView:
        view = board.thread(post_id)
        if view is None:
            raise HTTPException(status_code=404, detail="Post not found")
        return view

    @app.post("/upload")
    async def upload(request: Request, board: Board = Depends(get_board)):
        limit = config.max_upload_bytes
        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > limit:
            raise UploadTooLarge(limit)
        request = Request(request.scope, _capped_receive(request.receive, limit))

        async with request.form() as form:
            title = _form_text(form, "title")
            message = _form_text(form, "message")
            parent_id = _form_text(form, "parent_id", ROOT_PARENT_ID).strip() or ROOT_PARENT_ID

            budget = limit - sum(len(v.encode("utf-8")) for v in (title, message, parent_id))
            if budget < 0:
                raise UploadTooLarge(limit)

            attachment = None
            upload_file = form.get("file")
            if isinstance(upload_file, UploadFile):
                attachment = await ingest(
                    upload_file.filename,
                    upload_file.content_type,
                    _read_chunks(upload_file),
                    config.upload_dir,
                    budget,
                )

        try:
            post_id = await run_in_threadpool(
                board.submit,
                title,
                message,
                parent_id,
                attachment.name if attachment else None,
            )
        except PostValidationError as exc:
            await run_in_threadpool(discard, attachment, config.upload_dir)
            raise HTTPException(status_code=400, detail=exc.reason) from exc
        except StoreError:
            await run_in_threadpool(discard, attachment, config.upload_dir)
            raise

        if attachment is not None:
            logger.info("[Board] post %s carries %s (%d bytes)", post_id, attachment.name, attachment.size)

        location = "/" if parent_id == ROOT_PARENT_ID else f"/post/{parent_id}"
        return RedirectResponse(url=location, status_code=303)

    app.mount("/static", StaticFiles(directory=config.upload_dir), name="static")
    app.mount("/metrics", make_asgi_app())
    return app


app = create_app()
