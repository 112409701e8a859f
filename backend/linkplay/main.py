"""
Linkplay API и WebSocket.

Ротационные короткие ссылки на медиа с превью для ботов соцсетей,
очередь и партии в крестики-нолики, уведомления.
"""
import logging
import re
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from .auth import current_user
from .constants import TOKEN_PATTERN
from .embed import mime_type, render_embed_page, should_serve_preview
from .errors import InvalidBucket
from .game import Game, Player
from .rotation import Bucket, issue_rotation_link, resolve_rotation_token
from .schemas import EmbedPrefsRequest, MoveRequest, parse_cell
from .slugs import slugify_media
from .state import AppState, get_state
from .ws_handlers import game_state_payload, ws_auth_and_loop

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(TOKEN_PATTERN)
NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}
MEDIA_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Cross-Origin-Resource-Policy": "cross-origin",
}


def _absolute(request: Request, state: AppState, path: str) -> str:
    base = state.config.public_url or str(request.base_url).rstrip("/")
    return f"{base}{path}"


def _embed_response(state: AppState, request: Request, bucket: Bucket, file_name: str) -> HTMLResponse:
    html = render_embed_page(
        _absolute(request, state, state.media.file_url(bucket, file_name)),
        file_name,
        overrides=dict(request.query_params),
        defaults=state.embed_prefs.get(),
        public_url=state.config.public_url,
    )
    return HTMLResponse(html, headers={**NO_CACHE_HEADERS, "X-Content-Type-Options": "nosniff"})


def _game_response(state: AppState, user_id: str, game: Game | None = None) -> dict:
    """{queue, game}; game — активная партия или финальное состояние из только что завершённой."""
    payload = game_state_payload(state, user_id, game)
    del payload["type"]
    return payload


def create_app(state: AppState | None = None) -> FastAPI:
    core = state or AppState()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            core.media.ensure_dirs()
        except OSError as e:
            logger.warning("Failed to initialize media directories: %s", e)
        yield

    app = FastAPI(title="Linkplay API", lifespan=lifespan)
    app.state.core = core

    app.add_middleware(
        CORSMiddleware,
        allow_origins=core.config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    # ---- Медиа: ротационные ссылки ----

    @app.post("/api/media/{bucket_id}/assets/{file_name}/link")
    def issue_link(
        bucket_id: str,
        file_name: str,
        request: Request,
        user: dict = Depends(current_user),
        state: AppState = Depends(get_state),
    ):
        try:
            bucket = state.media.resolve_bucket(bucket_id, user["username"])
        except LookupError:
            raise HTTPException(status_code=404, detail="Bucket not found")
        if not state.media.file_is_readable(bucket, file_name):
            raise HTTPException(status_code=404, detail="File not found")
        try:
            short_path = issue_rotation_link(state.registry, bucket, file_name)
        except InvalidBucket as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {
            "token": short_path.lstrip("/"),
            "shortPath": short_path,
            "url": _absolute(request, state, short_path),
            "embedUrl": _absolute(request, state, short_path + "/embed"),
            "epoch": state.clock.current_epoch(),
        }

    @app.get("/api/embed-prefs")
    def get_embed_prefs(user: dict = Depends(current_user), state: AppState = Depends(get_state)):
        return {"prefs": state.embed_prefs.get()}

    @app.post("/api/embed-prefs")
    def set_embed_prefs(
        body: EmbedPrefsRequest,
        user: dict = Depends(current_user),
        state: AppState = Depends(get_state),
    ):
        if user["username"].lower() != state.config.owner_username:
            raise HTTPException(status_code=403, detail="Owner access required")
        return {"prefs": state.embed_prefs.update(body.model_dump())}

    @app.get("/media/embed/shared/{file_name}")
    def embed_shared(file_name: str, request: Request, state: AppState = Depends(get_state)):
        bucket = state.media.shared_bucket()
        if not state.media.file_is_readable(bucket, file_name):
            return PlainTextResponse("Not found", status_code=404)
        return _embed_response(state, request, bucket, file_name)

    @app.get("/media/embed/users/{user_slug}/{file_name}")
    def embed_user(user_slug: str, file_name: str, request: Request, state: AppState = Depends(get_state)):
        bucket = state.media.user_bucket(slugify_media(user_slug))
        if not state.media.file_is_readable(bucket, file_name):
            return PlainTextResponse("Not found", status_code=404)
        return _embed_response(state, request, bucket, file_name)

    # ---- Крестики-нолики ----

    @app.get("/api/tictactoe/status")
    def tictactoe_status(user: dict = Depends(current_user), state: AppState = Depends(get_state)):
        return _game_response(state, user["id"])

    @app.post("/api/tictactoe/queue")
    def tictactoe_queue(user: dict = Depends(current_user), state: AppState = Depends(get_state)):
        state.games.queue_for_match(Player(user["id"], user["username"]))
        return _game_response(state, user["id"])

    @app.post("/api/tictactoe/move")
    def tictactoe_move(
        body: MoveRequest,
        user: dict = Depends(current_user),
        state: AppState = Depends(get_state),
    ):
        result = state.games.submit_move(user["id"], parse_cell(body.cell))
        if result.error:
            return JSONResponse(
                status_code=400,
                content={"error": result.error.detail, "code": result.error.code},
            )
        return _game_response(state, user["id"], result.game)

    @app.post("/api/tictactoe/leave")
    def tictactoe_leave(user: dict = Depends(current_user), state: AppState = Depends(get_state)):
        outcome = state.games.leave_queue_or_game(user["id"])
        return _game_response(state, user["id"], outcome.game)

    # ---- Уведомления ----

    @app.get("/api/notifications")
    def list_notifications(user: dict = Depends(current_user), state: AppState = Depends(get_state)):
        return {"notifications": [n.to_dict() for n in state.inbox.list(user["id"])]}

    @app.post("/api/notifications/read-all")
    def read_all_notifications(user: dict = Depends(current_user), state: AppState = Depends(get_state)):
        state.inbox.mark_all_read(user["id"])
        return {"ok": True}

    @app.post("/api/notifications/{notification_id}/read")
    def read_notification(
        notification_id: str,
        user: dict = Depends(current_user),
        state: AppState = Depends(get_state),
    ):
        updated = state.inbox.mark_read(user["id"], notification_id)
        if not updated:
            raise HTTPException(status_code=404, detail="Notification not found")
        return {"notification": updated.to_dict()}

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        logger.info("WS: connection attempt from %s", ws.client)
        await ws_auth_and_loop(ws, ws.app.state.core)

    # ---- Короткие ссылки: /AbCdE и /AbCdE/embed ----

    def _resolve_or_404(token: str, state: AppState):
        if not _TOKEN_RE.match(token):
            return None, None
        payload = resolve_rotation_token(state.registry, token)
        if payload is None:
            return None, None
        bucket = state.media.bucket_for_payload(payload)
        if not state.media.file_is_readable(bucket, payload.file_name):
            return None, None
        return payload, bucket

    @app.get("/{token}/embed")
    def short_link_embed(token: str, request: Request, state: AppState = Depends(get_state)):
        payload, bucket = _resolve_or_404(token, state)
        if payload is None:
            return PlainTextResponse("Not found", status_code=404)
        return _embed_response(state, request, bucket, payload.file_name)

    @app.get("/{token}")
    def short_link(token: str, request: Request, state: AppState = Depends(get_state)):
        payload, bucket = _resolve_or_404(token, state)
        if payload is None:
            return PlainTextResponse("Not found", status_code=404)
        if should_serve_preview(request.headers, request.query_params):
            return _embed_response(state, request, bucket, payload.file_name)
        return FileResponse(
            state.media.file_path(bucket, payload.file_name),
            media_type=mime_type(payload.file_name),
            headers=MEDIA_HEADERS,
        )

    # Стабильные URL файлов (для превью и прямых ссылок)
    app.mount("/media/shared", StaticFiles(directory=str(core.media.shared_dir), check_dir=False), name="media-shared")
    app.mount("/media/users", StaticFiles(directory=str(core.media.users_dir), check_dir=False), name="media-users")

    return app


app = create_app()
