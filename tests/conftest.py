import pytest
from fastapi.testclient import TestClient

from taskboard.config import Settings
from taskboard.db import Board, Card, Database, ListModel, Organization, User
from taskboard.main import create_app


@pytest.fixture
def settings() -> Settings:
    settings = Settings()
    settings.database_url = "sqlite://"
    settings.jwt_secret = "test-secret"
    settings.bcrypt_rounds = 4
    return settings


@pytest.fixture
def database(settings: Settings):
    database = Database(settings.database_url)
    database.init_db()
    yield database
    database.drop_all()
    database.dispose()


@pytest.fixture
def session(database: Database):
    with database.session() as session:
        yield session


@pytest.fixture
def app(settings: Settings, database: Database):
    return create_app(settings=settings, database=database, configure_logging=False)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def auth_headers(client: TestClient):
    """Register (if needed) and log in a user; returns request headers."""

    def _auth_headers(email: str = "alice@example.com", password: str = "secret123", name: str = "Alice"):
        client.post("/auth/register", json={"email": email, "password": password, "name": name})
        response = client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _auth_headers


@pytest.fixture
def make_list(session):
    """Build user -> organization -> board -> list rows directly in the store."""

    def _make_list(board: Board = None, name: str = "Todo", position: float = 0.0, owner_email: str = "owner@example.com") -> ListModel:
        if board is None:
            user = User(email=owner_email, password_hash="x", name="Owner")
            session.add(user)
            session.flush()
            organization = Organization(name="Org", owner_id=user.id)
            session.add(organization)
            session.flush()
            board = Board(name="Board", organization_id=organization.id, owner_id=user.id)
            session.add(board)
            session.flush()
        board_list = ListModel(name=name, board_id=board.id, position=position)
        session.add(board_list)
        session.commit()
        return board_list

    return _make_list


@pytest.fixture
def make_card(session):
    def _make_card(board_list: ListModel, title: str, position: float) -> Card:
        card = Card(title=title, list_id=board_list.id, position=position)
        session.add(card)
        session.commit()
        return card

    return _make_card
