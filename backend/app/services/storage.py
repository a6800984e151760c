from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import SavedSession
from errors import InvalidSnapshot
from game import GameState
from models import SessionSnapshot

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Reading or writing a saved session failed."""


async def save_snapshot(session: AsyncSession, session_id: str, snapshot: SessionSnapshot) -> None:
    payload = snapshot.model_dump_json(by_alias=True)
    try:
        record = await session.get(SavedSession, session_id)
        if record is None:
            session.add(SavedSession(session_id=session_id, snapshot=payload))
        else:
            record.snapshot = payload
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        raise StorageError(f"Could not save session {session_id}") from exc


async def load_snapshot(session: AsyncSession, session_id: str) -> Optional[SessionSnapshot]:
    """Return the saved snapshot, or None when there is none or it is unusable."""
    try:
        result = await session.execute(
            select(SavedSession.snapshot).where(SavedSession.session_id == session_id)
        )
        payload = result.scalar_one_or_none()
    except SQLAlchemyError as exc:
        raise StorageError(f"Could not load session {session_id}") from exc

    if payload is None:
        return None
    try:
        snapshot = SessionSnapshot.model_validate_json(payload)
        # a snapshot is only usable if it rebuilds into a consistent game
        GameState.from_snapshot(snapshot)
    except (ValidationError, InvalidSnapshot) as exc:
        logger.warning("Discarding malformed snapshot for session %s: %s", session_id, exc)
        return None
    return snapshot


async def delete_snapshot(session: AsyncSession, session_id: str) -> None:
    try:
        await session.execute(delete(SavedSession).where(SavedSession.session_id == session_id))
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        raise StorageError(f"Could not delete session {session_id}") from exc
