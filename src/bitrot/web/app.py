"""FastAPI application exposing bitrot checks and stored snapshots."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from bitrot.compare import classify
from bitrot.config import AppConfig
from bitrot.scanner import ScanError, generate_snapshot
from bitrot.storage import SQLiteSnapshotStore, StorageError

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="bitrot", version="0.1.0")


class CheckPayload(BaseModel):
    path: str
    db: Path | None = None
    save: bool = True


def _resolve_db_path(db: Path | None) -> Path:
    config = AppConfig(db_path=db)
    return config.resolve_db_path(Path.cwd())


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.get("/snapshots")
async def list_snapshots(path: str | None = None, db: Path | None = None) -> dict[str, Any]:
    """List stored snapshots, optionally for one directory."""
    resolved_db = _resolve_db_path(db)
    if not resolved_db.exists():
        return {"snapshots": []}

    try:
        with SQLiteSnapshotStore(resolved_db) as store:
            snapshots = store.list_snapshots(path)
    except StorageError as exc:
        LOGGER.error("Unable to list snapshots in %s: %s", resolved_db, exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {"snapshots": snapshots}


def _run_check(root: Path, resolved_db: Path, save: bool) -> dict[str, Any]:
    config = AppConfig(db_path=resolved_db)
    new_snapshot = generate_snapshot(root, config)
    with SQLiteSnapshotStore(resolved_db) as store:
        previous = store.latest(new_snapshot.path)
        if save:
            store.save(new_snapshot)

    if previous is None:
        return {"status": "first_run", "previous_snapshot": None, "comparison": None}

    comparison = classify(previous, new_snapshot)
    return {
        "status": "ok" if comparison.success() else "flagged",
        "previous_snapshot": previous.created_at.isoformat(),
        "comparison": comparison.to_dict(),
    }


@app.post("/check")
async def check_directory(payload: CheckPayload) -> dict[str, Any]:
    clean_path = payload.path.strip().replace("\r", "").replace("\n", "")
    if not clean_path:
        raise HTTPException(status_code=400, detail="No path provided")
    if "\0" in clean_path:
        raise HTTPException(status_code=400, detail="Invalid path: contains null byte")

    root = Path(clean_path).expanduser().resolve()
    if not root.is_dir():
        raise HTTPException(status_code=404, detail=f"Directory not found: {clean_path}")

    resolved_db = _resolve_db_path(payload.db)
    _ensure_db_parent(resolved_db)

    try:
        return await asyncio.to_thread(_run_check, root, resolved_db, payload.save)
    except (ScanError, StorageError) as exc:
        LOGGER.exception("Check of %s failed: %s", root, exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
