"""Entry point. Wires storage into the leaderboard service and routes.

Persistence strategy:
  - If DATABASE_URL is set  -> SQL tables (PostgreSQL in production).
  - Otherwise               -> JSON file fallback (development only).
"""
import logging
import os
from dotenv import load_dotenv

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_DIR = os.path.dirname(BASE_DIR)
load_dotenv(os.path.join(PROJECT_DIR, ".env"))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from typefall.api.routes.leaderboard_routes import (
    router as leaderboard_router,
    init_routes,
    register_exception_handlers,
)
from typefall.application.leaderboard_service import LeaderboardService
from typefall.domain.enums import TrimPolicy
from typefall.domain.errors import StorageUnavailable
from typefall.domain.ranking import MAX_ENTRIES
from typefall.infrastructure.database.seed import provision_scopes

DATA_DIR = os.environ.get("LEADERBOARD_DATA_DIR", "").strip() or os.path.join(BASE_DIR, "data")
LEVELS_FILE = os.environ.get("LEVELS_FILE", "").strip() or os.path.join(DATA_DIR, "levels.json")
DATABASE_URL = os.environ.get("DATABASE_URL", "")

MAX_LEADERBOARD_ENTRIES = int(os.environ.get("LEADERBOARD_MAX_ENTRIES", MAX_ENTRIES))
TRIM_POLICY = TrimPolicy.from_env(os.environ.get("LEADERBOARD_TRIM_POLICY"))
LOCK_TIMEOUT = float(os.environ.get("LEADERBOARD_LOCK_TIMEOUT", "10"))

log = logging.getLogger("typefall.startup")

app = FastAPI(
    title="TypeFall Leaderboard API",
    description="Ranked global and per-level leaderboards for TypeFall.",
    version="1.0.0",
)

app.add_middleware(GZipMiddleware, minimum_size=1024)

# CORS configuration: read allowed origins from env (comma-separated).
_allowed = os.environ.get("ALLOWED_ORIGINS", "").strip()
if _allowed:
    allow_origins = [o.strip() for o in _allowed.split(",") if o.strip()]
else:
    allow_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Persistence wiring
# ---------------------------------------------------------------------------

if DATABASE_URL:
    from typefall.infrastructure.database.connection import (
        init_engine, create_tables, get_session_factory,
    )
    from typefall.infrastructure.storage.sql_store import SqlTableStore

    init_engine()
    create_tables()
    store = SqlTableStore(get_session_factory())
    _persistence = "sql"
else:
    from typefall.infrastructure.storage.json_store import JsonTableStore

    store = JsonTableStore(data_path=os.path.join(DATA_DIR, "leaderboard.json"))
    _persistence = "json"

# Provision tables from the levels catalogue (idempotent -- non-fatal if storage is down)
try:
    created = provision_scopes(store, LEVELS_FILE)
    if created:
        print(f"[TYPEFALL] Provisioned {created} leaderboard tables.")
except StorageUnavailable as _exc:
    log.error("Provisioning skipped (storage unavailable): %s", _exc)
    print(f"[TYPEFALL][WARN] Provisioning skipped: {_exc}")

leaderboard_service = LeaderboardService(
    store,
    max_entries=MAX_LEADERBOARD_ENTRIES,
    trim_policy=TRIM_POLICY,
    lock_timeout=LOCK_TIMEOUT,
)

init_routes(leaderboard_service)
register_exception_handlers(app)
app.include_router(leaderboard_router)


@app.get("/health")
def health():
    result = {
        "status": "online",
        "system": "TypeFall Leaderboard v1.0.0",
        "persistence": _persistence,
        "max_entries": MAX_LEADERBOARD_ENTRIES,
        "trim_policy": TRIM_POLICY.value,
    }
    try:
        result["storage"] = leaderboard_service.ping()
    except StorageUnavailable as exc:
        result["storage"] = f"ERROR: {exc.message}"
    return result


@app.get("/test-connection")
def test_connection():
    """Storage connectivity probe."""
    try:
        details = leaderboard_service.ping()
    except StorageUnavailable as exc:
        log.error("Connection test failed: %s", exc)
        return JSONResponse(
            status_code=503,
            content={"success": False, "error": exc.to_dict()},
        )
    return {"success": True, "message": "Connection successful", "storage": details}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "typefall.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", "8000")),
        reload=True,
        reload_excludes=["*.json", "__pycache__/*", "data/*"],
    )
