from typing import Any, Dict
import logging

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from homedash_core.backups import export_snapshot, latest_backup_timestamp, restore_snapshot
from homedash_core.store import ConfigStore
from homedash_api.deps import get_store

router = APIRouter(tags=["backups"])
log = logging.getLogger("homedash_api")


@router.get("/last-backup")
def last_backup(store: ConfigStore = Depends(get_store)):
    return {"lastBackup": latest_backup_timestamp(store)}


@router.get("/backup")
def download_backup(store: ConfigStore = Depends(get_store)):
    snapshot = export_snapshot(store)
    headers = {"Content-Disposition": 'attachment; filename="backup.json"'}
    log.info("backup.download created_at=%s", snapshot["createdAt"])
    return JSONResponse(snapshot, headers=headers)


@router.post("/backup")
def upload_backup(payload: Dict[str, Any] = Body(...), store: ConfigStore = Depends(get_store)):
    counts = restore_snapshot(store, payload)
    return {"message": "Backup restored", "counts": counts}
