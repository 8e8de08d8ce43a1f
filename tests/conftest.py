import os

# Settings are read at import time; these must be set before msgboard loads.
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BOARD_PASSWORD", "board-pass")
os.environ.setdefault("ADMIN_PASSWORD", "admin-pass")
os.environ.setdefault("STORAGE_BACKEND", "memory")

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from main import create_application  # noqa: E402
from msgboard.core.config import Settings  # noqa: E402
from msgboard.services.board_service import BoardService  # noqa: E402
from msgboard.services.broadcaster import Broadcaster, ConnectionRegistry  # noqa: E402
from msgboard.storage import MemoryStorage, SqlStorage  # noqa: E402

BOARD_PASSWORD = os.environ["BOARD_PASSWORD"]
ADMIN_PASSWORD = os.environ["ADMIN_PASSWORD"]


class FakeClock:
    """Moves forward one second per reading, so every record gets a distinct time."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class FakeSocket:
    """Just enough of starlette's WebSocket for LiveConnection."""

    def __init__(self, fail_send: bool = False):
        self.accepted = False
        self.closed_with = None
        self.sent: list[str] = []
        self.fail_send = fail_send

    async def accept(self):
        self.accepted = True

    async def send_text(self, frame: str):
        if self.fail_send:
            raise ConnectionResetError("peer went away")
        self.sent.append(frame)

    async def close(self, code: int = 1000):
        self.closed_with = code


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(params=["memory", "sql"])
async def storage(request, clock, tmp_path):
    if request.param == "memory":
        store = MemoryStorage(clock=clock)
    else:
        store = SqlStorage(f"sqlite+aiosqlite:///{tmp_path / 'board.db'}", clock=clock)
    await store.init()
    yield store
    await store.close()


@pytest.fixture
def broadcaster():
    return Broadcaster(ConnectionRegistry(), heartbeat_interval=3600, send_timeout=1)


@pytest.fixture
def board(storage, broadcaster):
    return BoardService(storage, broadcaster)


@pytest.fixture
def app_settings():
    return Settings(
        STORAGE_BACKEND="memory",
        AUTO_CREATE_TABLES=True,
        HEARTBEAT_INTERVAL_SECONDS=3600,
        RATE_LIMIT_ENABLED=False,
    )


@pytest.fixture
def client(app_settings, clock):
    app = create_application(settings=app_settings, storage=MemoryStorage(clock=clock))
    with TestClient(app) as test_client:
        yield test_client


def login(client: TestClient, password: str) -> dict:
    response = client.post("/auth/login", json={"password": password})
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def admin_headers(client):
    token = login(client, ADMIN_PASSWORD)["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def member_headers(client):
    token = login(client, BOARD_PASSWORD)["access_token"]
    return {"Authorization": f"Bearer {token}"}
