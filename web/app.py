from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, HTTPException, Query, Request
import asyncio
import logging
import os
import sys
from typing import List, Optional

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from scrimstats.config import RECENT_GAMES_DEFAULT, TeamAssignment, resolve_db_path
from scrimstats.database import Database, StorageError
from scrimstats.importer import ImportCoordinator
from scrimstats.ledger_manager import LedgerManager
from scrimstats.roster_manager import RosterManager
from scrimstats.stores import Stores

logger = logging.getLogger(__name__)

_db: Optional[Database] = None


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    global _db
    if _db is not None:
        _db.close()
        _db = None


app = FastAPI(title="scrimstats", lifespan=lifespan)


def get_db() -> Database:
    """Shared database handle, opened on first use."""
    global _db
    if _db is None:
        _db = Database(str(resolve_db_path()))
        logger.info("Using database at %s", _db.db_path)
    return _db


@app.post("/api/import")
async def import_export(
    request: Request,
    team: List[str] = Query(default=[]),
    db: Database = Depends(get_db),
) -> dict:
    """Import a raw export sent as the request body. ``team`` takes COLOR=TEAM pairs."""
    try:
        assignment = TeamAssignment.parse(team)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    raw = await request.body()
    if not raw.strip():
        raise HTTPException(status_code=400, detail="Request body must contain the export")

    # The run holds the writer lock and does sqlite I/O; keep it off the event loop
    coordinator = ImportCoordinator(Stores.from_database(db), assignment=assignment)
    run = await asyncio.to_thread(coordinator.run, raw)
    payload = run.to_dict()
    if run.aborted:
        raise HTTPException(status_code=422, detail=payload)
    return payload


@app.get("/api/teams")
async def teams(db: Database = Depends(get_db)) -> dict:
    try:
        records = await asyncio.to_thread(LedgerManager(db).get_team_records)
        return {"teams": [record.as_dict() for record in records]}
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to load team records: {str(e)}")


@app.get("/api/teams/{team_name}")
async def team_record(team_name: str, db: Database = Depends(get_db)) -> dict:
    try:
        record = await asyncio.to_thread(LedgerManager(db).get_team_record, team_name)
        return record.as_dict()
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to load team record: {str(e)}")


@app.get("/api/players")
async def players(team: Optional[str] = None, db: Database = Depends(get_db)) -> dict:
    try:
        rows = await asyncio.to_thread(LedgerManager(db).get_leaderboard, team)
        return {"players": rows, "count": len(rows)}
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to load players: {str(e)}")


@app.get("/api/players/{account_id}/recent")
async def recent_games(account_id: str, limit: int = RECENT_GAMES_DEFAULT, db: Database = Depends(get_db)) -> dict:
    try:
        games = await asyncio.to_thread(LedgerManager(db).get_recent_games, account_id, limit)
        return {"account_id": account_id, "games": games}
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to load recent games: {str(e)}")


@app.get("/api/players/{account_id}/achievements")
async def achievements(account_id: str, db: Database = Depends(get_db)) -> dict:
    try:
        report = await asyncio.to_thread(LedgerManager(db).get_achievements, account_id)
        return {"account_id": account_id, **report}
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to load achievements: {str(e)}")


@app.get("/api/compare")
async def compare(a: str, b: str, db: Database = Depends(get_db)) -> dict:
    try:
        return await asyncio.to_thread(LedgerManager(db).compare, a, b)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to compare players: {str(e)}")


@app.get("/api/links")
async def links(db: Database = Depends(get_db)) -> dict:
    try:
        return {"links": await asyncio.to_thread(RosterManager(db).get_links)}
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to load name links: {str(e)}")


@app.post("/api/links")
async def create_link(request: Request, db: Database = Depends(get_db)) -> dict:
    try:
        payload = await request.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}
    name = str(payload.get("name") or "").strip()
    account_id = str(payload.get("account_id") or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="name is required")
    if not account_id:
        raise HTTPException(status_code=400, detail="account_id is required")
    try:
        await asyncio.to_thread(RosterManager(db).link_name, name, account_id)
        return {"ok": True, "name": name.lower(), "account_id": account_id}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to link name: {str(e)}")


@app.delete("/api/links/{name}")
async def delete_link(name: str, db: Database = Depends(get_db)) -> dict:
    try:
        await asyncio.to_thread(RosterManager(db).unlink_name, name)
        return {"ok": True, "name": name.lower()}
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to unlink name: {str(e)}")


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    print("Starting scrimstats web server...")
    print("Open http://localhost:5000/api/teams in your browser")
    uvicorn.run(app, host="127.0.0.1", port=5000)
