"""
CRUD operations for drink likes

Each (drink, session) pair is a two-state machine:
    NOT_LIKED --toggle--> LIKED --toggle--> NOT_LIKED
Toggles on the same pair are serialized so concurrent taps from one session
cannot both read NOT_LIKED and both insert.
"""
import logging
import threading
import zlib
from dataclasses import dataclass
from enum import Enum
from typing import List

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import DrinkLike

logger = logging.getLogger("crud")

# Striped locks: bounded memory, same pair always maps to the same lock
_LOCK_STRIPES = 64
_toggle_locks = [threading.Lock() for _ in range(_LOCK_STRIPES)]


class LikeStoreError(Exception):
    """The likes database could not be read or written."""


class LikeState(Enum):
    NOT_LIKED = "not_liked"
    LIKED = "liked"

    def toggled(self) -> "LikeState":
        return LikeState.NOT_LIKED if self is LikeState.LIKED else LikeState.LIKED


@dataclass
class LikeResult:
    success: bool
    liked: bool


def _lock_for(drink_id: str, session_id: str) -> threading.Lock:
    index = zlib.crc32(f"{drink_id}\x00{session_id}".encode("utf-8")) % _LOCK_STRIPES
    return _toggle_locks[index]


# ===== LIKES =====

def get_like_state(db: Session, drink_id: str, session_id: str) -> LikeState:
    """
    Current state of a (drink, session) pair
    """
    row = (
        db.query(DrinkLike)
        .filter(DrinkLike.drink_id == drink_id, DrinkLike.session_id == session_id)
        .first()
    )
    return LikeState.LIKED if row is not None else LikeState.NOT_LIKED


def toggle_like(db: Session, drink_id: str, session_id: str) -> LikeResult:
    """
    Flip the like state for a pair and return the new state
    Database errors are logged and reported as success=False
    """
    with _lock_for(drink_id, session_id):
        try:
            current = get_like_state(db, drink_id, session_id)
            target = current.toggled()
            if target is LikeState.LIKED:
                db.add(DrinkLike(drink_id=drink_id, session_id=session_id))
            else:
                (
                    db.query(DrinkLike)
                    .filter(DrinkLike.drink_id == drink_id, DrinkLike.session_id == session_id)
                    .delete(synchronize_session=False)
                )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to toggle like for drink {drink_id}: {e}")
            return LikeResult(success=False, liked=False)

    logger.debug(f"Like {drink_id}/{session_id}: {current.value} -> {target.value}")
    return LikeResult(success=True, liked=target is LikeState.LIKED)


def get_drink_likes(db: Session, drink_id: str) -> int:
    """
    Number of sessions that like a drink
    """
    try:
        return (
            db.query(func.count(DrinkLike.id))
            .filter(DrinkLike.drink_id == drink_id)
            .scalar()
        ) or 0
    except SQLAlchemyError as e:
        raise LikeStoreError(f"Failed to count likes for drink {drink_id}: {e}") from e


def get_user_likes(db: Session, session_id: str) -> List[str]:
    """
    Drink IDs liked by a session, oldest first
    """
    try:
        rows = (
            db.query(DrinkLike.drink_id)
            .filter(DrinkLike.session_id == session_id)
            .order_by(DrinkLike.created_at, DrinkLike.id)
            .all()
        )
    except SQLAlchemyError as e:
        raise LikeStoreError(f"Failed to load likes for session {session_id}: {e}") from e
    return [row[0] for row in rows]
