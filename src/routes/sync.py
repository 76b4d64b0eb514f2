import structlog
from fastapi import APIRouter, Depends

from core.auth import admin_required, current_admin
from schemas.sync import SyncRequest, SyncResponse
from services.sync import sync_databases


log = structlog.get_logger()
router = APIRouter(prefix="/api/admin", dependencies=[Depends(admin_required)])


@router.post("/sync", response_model=SyncResponse)
async def manual_sync(data: SyncRequest, editor: str = Depends(current_admin)):
    log.info("sync.started", editor=editor, collections=data.collections,
             source_db=data.source.database, destination_db=data.destination.database)
    try:
        details = await sync_databases(data)
    except Exception as e:
        # batches already written stay in the destination
        log.error("sync.failed", editor=editor, error=str(e))
        return SyncResponse(success=False, message=str(e) or "An unknown error occurred.")

    log.info("sync.finished", editor=editor, details=details)
    return SyncResponse(success=True, message="Sync process completed successfully.", details=details)
