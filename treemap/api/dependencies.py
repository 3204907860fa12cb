"""
Dependency injection for FastAPI.
"""
import asyncio
from typing import Annotated, Optional
from fastapi import Depends

from treemap.infrastructure.external_api_client import get_api_client
from treemap.services.application.map_view_service import MapViewSession


# Singleton map view, started on first use
_map_session: Optional[MapViewSession] = None
_map_session_lock: Optional[asyncio.Lock] = None


async def get_map_session() -> MapViewSession:
    """
    Dependency factory for the MapViewSession.

    The session is created and started on first use, which fetches trees and
    species from the tree inventory API. A failed start is retried on the
    next request.

    Returns:
        Started MapViewSession instance
    """
    global _map_session, _map_session_lock
    if _map_session is not None:
        return _map_session

    if _map_session_lock is None:
        _map_session_lock = asyncio.Lock()
    async with _map_session_lock:
        if _map_session is None:
            session = MapViewSession(api_client=get_api_client())
            await session.start()
            _map_session = session
    return _map_session


def map_session_ready() -> bool:
    return _map_session is not None and _map_session.ready


async def close_map_session() -> None:
    """Tear down the singleton MapViewSession if one was started."""
    global _map_session, _map_session_lock
    if _map_session is not None:
        await _map_session.close()
    _map_session = None
    _map_session_lock = None


# Type aliases for cleaner route signatures
MapSessionDep = Annotated[MapViewSession, Depends(get_map_session)]
