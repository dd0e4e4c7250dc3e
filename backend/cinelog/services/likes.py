from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models
from ..errors import ConflictError, NotFoundError
from ..models import utcnow
from ..reconciler import MovieReconciler

MAX_TRENDING_DAYS = 90
MAX_TRENDING_LIMIT = 50


def _find_like(db: Session, user_id: int, movie_id: int) -> Optional[models.MovieLike]:
    return (
        db.query(models.MovieLike)
        .filter(models.MovieLike.user_id == user_id, models.MovieLike.movie_id == movie_id)
        .first()
    )


def add_like(
    db: Session, reconciler: MovieReconciler, actor: models.User, tmdb_id: int
) -> models.MovieLike:
    """Record a like. Unlike favourites, liking twice is a conflict."""
    user_id = actor.id
    movie_id = reconciler.ensure_movie_id(db, tmdb_id)
    like = models.MovieLike(user_id=user_id, movie_id=movie_id)
    db.add(like)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if _find_like(db, user_id, movie_id) is not None:
            raise ConflictError("You have already liked this movie")
        if db.get(models.User, user_id) is None:
            raise NotFoundError("User not found")
        raise
    db.refresh(like)
    return like


def remove_like(db: Session, reconciler: MovieReconciler, actor: models.User, tmdb_id: int) -> None:
    movie_id = reconciler.find_movie_id(db, tmdb_id)
    if movie_id is None:
        raise NotFoundError("Movie not found")

    deleted = (
        db.query(models.MovieLike)
        .filter(models.MovieLike.user_id == actor.id, models.MovieLike.movie_id == movie_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    if not deleted:
        raise NotFoundError("Like not found")


def trending_by_likes(
    db: Session, days: int = 30, limit: int = 20, now: Optional[datetime] = None
) -> List[dict]:
    """Movies ranked by likes received in the last ``days`` days.

    ``days`` is clamped to [1, 90] and ``limit`` to [1, 50]. Ties go to the
    movie liked most recently.
    """
    days = max(1, min(MAX_TRENDING_DAYS, int(days)))
    limit = max(1, min(MAX_TRENDING_LIMIT, int(limit)))
    since = (now or utcnow()) - timedelta(days=days)

    like_count = func.count(models.MovieLike.id).label("likes_last_window")
    latest_like = func.max(models.MovieLike.created_at).label("latest_like_at")
    stmt = (
        select(models.Movie, like_count, latest_like)
        .join(models.MovieLike, models.MovieLike.movie_id == models.Movie.id)
        .where(models.MovieLike.created_at >= since)
        .group_by(models.Movie.id)
        .order_by(like_count.desc(), latest_like.desc())
        .limit(limit)
    )

    return [
        {
            "id": movie.id,
            "tmdb_id": movie.tmdb_id,
            "title": movie.title,
            "release_year": movie.release_year,
            "poster_url": movie.poster_url,
            "content_type": movie.content_type,
            "likes_last_window": count,
            "latest_like_at": latest,
        }
        for movie, count, latest in db.execute(stmt).all()
    ]
