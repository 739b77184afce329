"""
Shared pytest fixtures for the TypeFall leaderboard test suite.

Strategy:
- Domain tests: pure in-memory, zero I/O.
- Application tests: LeaderboardService over a JSON store in a tmp directory.
- API tests: FastAPI TestClient wired to the same tmp-directory store.
  DATABASE_URL is cleared so nothing ever reaches a real database.
"""
import json
import os
import tempfile

import pytest

# ---------------------------------------------------------------------------
# Keep the run away from real databases and the repository's logs/ directory
# ---------------------------------------------------------------------------
os.environ.pop("DATABASE_URL", None)
os.environ["AUDIT_LOG_FILE"] = os.path.join(
    tempfile.mkdtemp(prefix="typefall_audit_"), "audit.log"
)


from typefall.domain.entry import ScoreEntry
from typefall.infrastructure.database.seed import provision_scopes
from typefall.infrastructure.storage.json_store import JsonTableStore

LEVELS = [
    {"level_id": "1", "languages": ["english"], "difficulties": ["easy"]},
    {"level_id": "2", "languages": ["english"], "difficulties": ["easy"]},
    {"level_id": "3", "languages": ["english"], "difficulties": ["easy", "hard"]},
]

LEVEL_1 = "level|1|english|easy"
LEVEL_2 = "level|2|english|easy"
LEVEL_3 = "level|3|english|easy"


# ---------------------------------------------------------------------------
# Domain helpers (reusable across many test modules)
# ---------------------------------------------------------------------------

def make_entry(player_id="p1", score=100, timestamp="2024-01-01T00:00:00+00:00",
               position=0, row_index=None, **kwargs) -> ScoreEntry:
    return ScoreEntry(
        player_id=player_id,
        player_name=kwargs.pop("player_name", player_id.upper()),
        score=score,
        timestamp=timestamp,
        position=position,
        row_index=row_index,
        **kwargs,
    )


def ts(second: int) -> str:
    """Deterministic ISO timestamps one second apart."""
    return f"2024-01-01T00:00:{second:02d}+00:00"


# ---------------------------------------------------------------------------
# Storage and service fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def levels_path(tmp_path):
    path = tmp_path / "levels.json"
    path.write_text(json.dumps(LEVELS), encoding="utf-8")
    return str(path)


@pytest.fixture
def store(tmp_path, levels_path):
    """Provisioned JSON store: global, players and four level tables."""
    s = JsonTableStore(data_path=str(tmp_path / "leaderboard.json"))
    provision_scopes(s, levels_path)
    return s


@pytest.fixture
def service(store):
    from typefall.application.leaderboard_service import LeaderboardService
    return LeaderboardService(store, lock_timeout=5)


@pytest.fixture
def small_service(store):
    """Service whose scopes keep only five entries."""
    from typefall.application.leaderboard_service import LeaderboardService
    return LeaderboardService(store, max_entries=5, lock_timeout=5)


# ---------------------------------------------------------------------------
# FastAPI TestClient
# ---------------------------------------------------------------------------

@pytest.fixture
def test_app(service):
    """FastAPI app wired to the tmp-directory service."""
    from fastapi import FastAPI
    from fastapi.middleware.cors import CORSMiddleware
    from typefall.api.routes.leaderboard_routes import (
        router, init_routes, register_exception_handlers,
    )

    app = FastAPI()
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    init_routes(service)
    register_exception_handlers(app)
    app.include_router(router)
    return app


@pytest.fixture
def client(test_app):
    from fastapi.testclient import TestClient
    return TestClient(test_app)
