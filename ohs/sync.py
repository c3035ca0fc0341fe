"""
Simulated synchronisation with a central server.

No data leaves the machine unless a ``transport`` coroutine is supplied.
On success the last-sync slot is updated; on failure nothing changes.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional

from .models import Worker

logger = logging.getLogger(__name__)

Transport = Callable[[List[dict]], Awaitable[None]]


@dataclass(frozen=True)
class SyncResult:
    success: bool
    message: str
    timestamp: Optional[str] = None


async def sync_with_server(repository, workers: List[Worker], delay: Optional[float] = None,
                           transport: Optional[Transport] = None) -> SyncResult:
    """Push ``workers`` and record the sync time.

    Args:
        repository: ``WorkerRepository`` whose last-sync slot is updated.
        workers: Snapshot to send.
        delay: Simulated network delay in seconds. Defaults to the
            repository's ``SYNC_DELAY_SECONDS`` setting.
        transport: Optional coroutine receiving the serialized workers.
    """
    if delay is None:
        delay = float(repository.settings.get('SYNC_DELAY_SECONDS', 2.0))
    await asyncio.sleep(delay)

    if transport is not None:
        try:
            await transport([w.to_dict() for w in workers])
        except Exception as e:
            logger.error(f"Sync failed: {e}")
            return SyncResult(False, f"Sync failed: {e}")

    timestamp = repository.set_last_sync(datetime.now(timezone.utc).isoformat())
    logger.info(f"Synced {len(workers)} workers at {timestamp}")
    return SyncResult(True, "Data synchronised with the central server", timestamp)
