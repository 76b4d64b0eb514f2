"""
One-off copy of whole collections from one MongoDB deployment to another.

Documents are re-written by ``_id`` (replace with upsert) so running the copy
twice leaves the destination unchanged. Writes are chunked to keep each bulk
request bounded.
"""
import structlog
from typing import List

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ReplaceOne

from core.config import settings
from schemas.sync import SyncRequest


log = structlog.get_logger()


async def sync_collection(source_db, dest_db, collection_name: str, batch_size: int = None) -> int:
    batch_size = batch_size or settings.SYNC_BATCH_SIZE
    docs = await source_db[collection_name].find({}).to_list(length=None)
    if not docs:
        log.info("sync.collection_empty", collection=collection_name)
        return 0

    processed = 0
    for start in range(0, len(docs), batch_size):
        chunk = docs[start:start + batch_size]
        await dest_db[collection_name].bulk_write(
            [ReplaceOne({"_id": d["_id"]}, d, upsert=True) for d in chunk],
            ordered=False,
        )
        processed += len(chunk)
        log.info("sync.batch_written", collection=collection_name,
                 batch=len(chunk), processed=processed, total=len(docs))

    log.info("sync.collection_done", collection=collection_name, count=processed)
    return processed


async def sync_databases(request: SyncRequest, client_factory=AsyncIOMotorClient) -> List[str]:
    """Copy each requested collection in order and return one line per collection."""
    source_client = dest_client = None
    try:
        source_client = client_factory(request.source.uri)
        dest_client = client_factory(request.destination.uri)
        source_db = source_client[request.source.database]
        dest_db = dest_client[request.destination.database]

        details = []
        for name in request.collections:
            count = await sync_collection(source_db, dest_db, name)
            details.append(f"Synced {count} documents from '{name}'.")
        return details
    finally:
        if source_client is not None:
            source_client.close()
        if dest_client is not None:
            dest_client.close()
