import time
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from .auth import get_current_user, get_hasher, get_locks, get_session, get_signer
from .config import Settings, get_settings
from .db import Board, Card, Database, ListModel, User
from .exceptions import TaskboardError
from .logging import get_logger, setup_logging
from .schemas import (
    BoardEnvelope,
    BoardIn,
    BoardOut,
    BoardsPage,
    BoardUpdate,
    CardEnvelope,
    CardIn,
    CardMove,
    CardOut,
    CardUpdate,
    Health,
    ListEnvelope,
    ListIn,
    ListMove,
    ListOut,
    ListUpdate,
    LoginIn,
    LoginOut,
    RegisterIn,
    SuccessBody,
    UserEnvelope,
    UserOut,
    Version,
)
from .security import (
    PasswordHasher,
    TokenSigner,
    password_hasher_from_settings,
    token_signer_from_settings,
)
from .services import AuthService, BoardService
from .storage import ParentLocks

logger = get_logger(__name__)


# === Helpers ===


def user_out(user: User) -> UserOut:
    return UserOut(id=user.id, email=user.email, name=user.name, createdAt=user.created_at)


def card_out(card: Card) -> CardOut:
    return CardOut(
        id=card.id,
        title=card.title,
        description=card.description,
        listId=card.list_id,
        position=card.position,
        dueDate=card.due_date,
        createdAt=card.created_at,
    )


def list_out(board_list: ListModel) -> ListOut:
    return ListOut(
        id=board_list.id,
        name=board_list.name,
        boardId=board_list.board_id,
        position=board_list.position,
        createdAt=board_list.created_at,
        cards=[card_out(c) for c in board_list.cards],
    )


def board_out(board: Board) -> BoardOut:
    return BoardOut(
        id=board.id,
        name=board.name,
        organizationId=board.organization_id,
        ownerId=board.owner_id,
        createdAt=board.created_at,
        lists=[list_out(lst) for lst in board.lists],
    )


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Missing fields"
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part != "body"]
    if first.get("type") == "json_invalid":
        return "Invalid JSON body"
    if not loc:
        return "Missing fields"
    field = loc[-1]
    if first.get("type") in ("missing", "string_too_short"):
        return f"{field} is required"
    return f"{field}: {first.get('msg', 'invalid value')}"


def board_service(
    actor_id: str = Depends(get_current_user),
    session: Session = Depends(get_session),
    locks: ParentLocks = Depends(get_locks),
) -> BoardService:
    return BoardService(session, locks, actor_id)


def auth_service(
    session: Session = Depends(get_session),
    hasher: PasswordHasher = Depends(get_hasher),
    signer: TokenSigner = Depends(get_signer),
) -> AuthService:
    return AuthService(session, hasher, signer)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(TaskboardError)
    async def taskboard_error(request: Request, exc: TaskboardError):
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        return error_response(400, validation_message(exc))

    @app.exception_handler(OperationalError)
    async def store_unavailable(request: Request, exc: OperationalError):
        logger.error("Store unavailable during %s %s: %s", request.method, request.url.path, exc)
        return error_response(503, "Service temporarily unavailable")

    @app.exception_handler(Exception)
    async def internal_error(request: Request, exc: Exception):
        logger.exception("Unhandled error during %s %s", request.method, request.url.path)
        return error_response(500, "Internal server error")


def register_routes(app: FastAPI) -> None:
    # === Health & metadata ===

    @app.get("/health", response_model=Health)
    def health():
        return Health()

    @app.get("/version", response_model=Version)
    def version(request: Request):
        return Version(version=request.app.version)

    # === Auth endpoints ===

    @app.post("/auth/register", response_model=UserEnvelope)
    def register(payload: RegisterIn, service: AuthService = Depends(auth_service)):
        user = service.register(payload.email, payload.password, payload.name)
        return UserEnvelope(user=user_out(user))

    @app.post("/auth/login", response_model=LoginOut)
    def login(payload: LoginIn, service: AuthService = Depends(auth_service)):
        token, user = service.login(payload.email, payload.password)
        return LoginOut(token=token, user=user_out(user))

    @app.get("/auth/me", response_model=UserEnvelope)
    def me(user_id: str = Depends(get_current_user), service: AuthService = Depends(auth_service)):
        return UserEnvelope(user=user_out(service.current_user(user_id)))

    # === Board endpoints ===

    @app.get("/boards", response_model=BoardsPage)
    def list_boards(service: BoardService = Depends(board_service)):
        return BoardsPage(boards=[board_out(b) for b in service.list_boards()])

    @app.post("/boards", response_model=BoardEnvelope)
    def create_board(payload: BoardIn, service: BoardService = Depends(board_service)):
        board = service.create_board(payload.name, payload.organizationId)
        return BoardEnvelope(board=board_out(board))

    @app.get("/boards/{board_id}", response_model=BoardEnvelope)
    def get_board(board_id: str, service: BoardService = Depends(board_service)):
        return BoardEnvelope(board=board_out(service.get_board(board_id)))

    @app.put("/boards/{board_id}", response_model=BoardEnvelope)
    def rename_board(board_id: str, payload: BoardUpdate, service: BoardService = Depends(board_service)):
        board = service.rename_board(board_id, payload.name)
        return BoardEnvelope(board=board_out(board))

    @app.delete("/boards/{board_id}", response_model=SuccessBody)
    def delete_board(board_id: str, service: BoardService = Depends(board_service)):
        service.delete_board(board_id)
        return SuccessBody()

    # === List endpoints ===

    @app.post("/lists", response_model=ListEnvelope)
    def create_list(payload: ListIn, service: BoardService = Depends(board_service)):
        board_list = service.create_list(payload.boardId, payload.name)
        return ListEnvelope(list=list_out(board_list))

    @app.get("/lists/{list_id}", response_model=ListEnvelope)
    def get_list(list_id: str, service: BoardService = Depends(board_service)):
        return ListEnvelope(list=list_out(service.get_list(list_id)))

    @app.put("/lists/{list_id}", response_model=ListEnvelope)
    def update_list(list_id: str, payload: ListUpdate, service: BoardService = Depends(board_service)):
        return ListEnvelope(list=list_out(service.rename_list(list_id, payload.name)))

    @app.post("/lists/{list_id}/move", response_model=ListEnvelope)
    def move_list(list_id: str, payload: ListMove, service: BoardService = Depends(board_service)):
        board_list = service.move_list(list_id, payload.index, payload.beforeId, payload.afterId)
        return ListEnvelope(list=list_out(board_list))

    @app.delete("/lists/{list_id}", response_model=SuccessBody)
    def delete_list(list_id: str, service: BoardService = Depends(board_service)):
        service.delete_list(list_id)
        return SuccessBody()

    # === Card endpoints ===

    @app.post("/cards", response_model=CardEnvelope)
    def create_card(payload: CardIn, service: BoardService = Depends(board_service)):
        card = service.create_card(
            payload.listId,
            payload.title,
            payload.description or None,
            payload.dueDate,
        )
        return CardEnvelope(card=card_out(card))

    @app.get("/cards/{card_id}", response_model=CardEnvelope)
    def get_card(card_id: str, service: BoardService = Depends(board_service)):
        return CardEnvelope(card=card_out(service.get_card(card_id)))

    @app.put("/cards/{card_id}", response_model=CardEnvelope)
    def update_card(card_id: str, payload: CardUpdate, service: BoardService = Depends(board_service)):
        changes = {"title": payload.title}
        # Omitted optional fields are left alone; explicit nulls clear them.
        if "description" in payload.model_fields_set:
            changes["description"] = payload.description or None
        if "dueDate" in payload.model_fields_set:
            changes["due_date"] = payload.dueDate
        return CardEnvelope(card=card_out(service.update_card(card_id, changes)))

    @app.post("/cards/{card_id}/move", response_model=CardEnvelope)
    def move_card(card_id: str, payload: CardMove, service: BoardService = Depends(board_service)):
        card = service.move_card(card_id, payload.listId, payload.index, payload.beforeId, payload.afterId)
        return CardEnvelope(card=card_out(card))

    @app.delete("/cards/{card_id}", response_model=SuccessBody)
    def delete_card(card_id: str, service: BoardService = Depends(board_service)):
        service.delete_card(card_id)
        return SuccessBody()


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    hasher: Optional[PasswordHasher] = None,
    signer: Optional[TokenSigner] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """Build the application; collaborators not given are built from settings."""
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(settings)

    if database is None:
        database = Database(settings.database_url, echo=settings.db_echo)
    database.init_db()

    app = FastAPI(title=settings.app_name, version=settings.app_version)
    app.state.settings = settings
    app.state.database = database
    app.state.locks = ParentLocks()
    app.state.hasher = hasher or password_hasher_from_settings(settings)
    app.state.signer = signer or token_signer_from_settings(settings)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s %s %.1fms", request.method, request.url.path, response.status_code, elapsed_ms
        )
        return response

    register_error_handlers(app)
    register_routes(app)
    return app
