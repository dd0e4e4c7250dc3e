from typing import List

from sqlalchemy.orm import Session, contains_eager

from .. import auth, models
from ..database import upsert_insert
from ..errors import NotFoundError
from ..reconciler import MovieReconciler
from .users import get_user


def add_favourite(
    db: Session,
    reconciler: MovieReconciler,
    actor: models.User,
    user_id: int,
    tmdb_id: int,
) -> models.Favourite:
    """Favourite a title. Repeating the call returns the existing row."""
    auth.ensure_can_act(actor, user_id)
    get_user(db, user_id)
    movie_id = reconciler.ensure_movie_id(db, tmdb_id)

    stmt = (
        upsert_insert(db, models.Favourite)
        .values(user_id=user_id, movie_id=movie_id)
        .on_conflict_do_nothing(
            index_elements=[models.Favourite.user_id, models.Favourite.movie_id]
        )
    )
    db.execute(stmt)
    db.commit()
    return db.get(models.Favourite, (user_id, movie_id))


def list_favourites(db: Session, user_id: int) -> List[models.Favourite]:
    return (
        db.query(models.Favourite)
        .join(models.Favourite.movie)
        .options(contains_eager(models.Favourite.movie))
        .filter(models.Favourite.user_id == user_id)
        .order_by(models.Movie.title.asc())
        .all()
    )


def remove_favourite(
    db: Session,
    reconciler: MovieReconciler,
    actor: models.User,
    user_id: int,
    tmdb_id: int,
) -> None:
    auth.ensure_can_act(actor, user_id)
    movie_id = reconciler.ensure_movie_id(db, tmdb_id)

    favourite = db.get(models.Favourite, (user_id, movie_id))
    if not favourite:
        raise NotFoundError("This movie is not on your favourites list")
    db.delete(favourite)
    db.commit()
