from typing import List

from sqlalchemy.orm import Session, joinedload

from .. import auth, models
from ..database import upsert_insert
from ..errors import NotFoundError, ValidationError
from ..models import WATCH_STATUSES
from ..reconciler import MovieReconciler
from .users import get_user


def _validate_status(status: str) -> None:
    if status not in WATCH_STATUSES:
        raise ValidationError("status must be planned, watching, or completed")


def add_to_watchlist(
    db: Session,
    reconciler: MovieReconciler,
    actor: models.User,
    user_id: int,
    tmdb_id: int,
    status: str = "planned",
) -> models.WatchlistEntry:
    """Add a title, or update its status if the user already has it listed."""
    auth.ensure_can_act(actor, user_id)
    _validate_status(status)
    get_user(db, user_id)

    movie_id = reconciler.ensure_movie_id(db, tmdb_id)
    stmt = upsert_insert(db, models.WatchlistEntry).values(
        user_id=user_id, movie_id=movie_id, status=status
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[models.WatchlistEntry.user_id, models.WatchlistEntry.movie_id],
        set_={"status": stmt.excluded.status},
    ).returning(models.WatchlistEntry.id)
    entry_id = db.execute(stmt).scalar_one()
    db.commit()
    return db.get(models.WatchlistEntry, entry_id)


def list_watchlist(db: Session, user_id: int) -> List[models.WatchlistEntry]:
    return (
        db.query(models.WatchlistEntry)
        .options(joinedload(models.WatchlistEntry.movie))
        .filter(models.WatchlistEntry.user_id == user_id)
        .order_by(models.WatchlistEntry.added_at.desc(), models.WatchlistEntry.id.desc())
        .all()
    )


def get_entry(db: Session, entry_id: int) -> models.WatchlistEntry:
    entry = db.get(models.WatchlistEntry, entry_id)
    if not entry:
        raise NotFoundError("Watchlist entry not found")
    return entry


def update_watchlist_status(
    db: Session, actor: models.User, entry_id: int, status: str
) -> models.WatchlistEntry:
    _validate_status(status)
    entry = get_entry(db, entry_id)
    auth.ensure_can_act(actor, entry.user_id)
    entry.status = status
    db.commit()
    db.refresh(entry)
    return entry


def remove_from_watchlist(db: Session, actor: models.User, entry_id: int) -> None:
    entry = get_entry(db, entry_id)
    auth.ensure_can_act(actor, entry.user_id)
    db.delete(entry)
    db.commit()
