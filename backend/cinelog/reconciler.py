"""Keeps a local ``movies`` row for every TMDB title the API references.

Reviews, watchlist entries, favourites and likes all point at ``movies.id``.
Before any of them is written, the TMDB id supplied by the client is turned
into a local id here, creating or refreshing the cached row as needed.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from fastapi import Depends
from sqlalchemy import delete, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .database import upsert_insert
from .tmdb import TMDBClient, get_tmdb_client

logger = logging.getLogger(__name__)


def release_year_from(date_str: Optional[str]) -> Optional[int]:
    """Year of a ``YYYY-MM-DD`` date, or None when absent or invalid."""
    if not date_str or not isinstance(date_str, str):
        return None
    try:
        return datetime.strptime(date_str[:10], "%Y-%m-%d").year
    except ValueError:
        return None


class MovieReconciler:
    def __init__(self, tmdb: TMDBClient):
        self.tmdb = tmdb

    def find_movie_id(self, db: Session, tmdb_id: int) -> Optional[int]:
        return db.execute(
            select(models.Movie.id).where(models.Movie.tmdb_id == tmdb_id)
        ).scalar_one_or_none()

    def ensure_movie_id(self, db: Session, tmdb_id: int, content_type: str = "movie") -> int:
        """Return the local id for ``tmdb_id``, caching the title on first use.

        Lookup and insert are separate statements; two callers racing on the
        same new title both reach ``upsert_movie`` and the unique constraint
        on ``tmdb_id`` folds them into one row.
        """
        existing_id = self.find_movie_id(db, tmdb_id)
        if existing_id is not None:
            return existing_id

        details = self.tmdb.get_by_id(tmdb_id, content_type)
        return self.upsert_movie(db, details, content_type)

    def upsert_movie(self, db: Session, details: dict, content_type: str = "movie") -> int:
        """Insert the title or, if its ``tmdb_id`` exists, overwrite its fields."""
        values = {
            "tmdb_id": int(details["id"]),
            "title": details.get("title") or details.get("name") or "Untitled",
            "release_year": release_year_from(
                details.get("release_date") or details.get("first_air_date")
            ),
            "poster_url": self.tmdb.poster_url(details.get("poster_path")),
            "content_type": content_type,
        }
        stmt = upsert_insert(db, models.Movie).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[models.Movie.tmdb_id],
            set_={
                "title": stmt.excluded.title,
                "release_year": stmt.excluded.release_year,
                "poster_url": stmt.excluded.poster_url,
                "content_type": stmt.excluded.content_type,
            },
        ).returning(models.Movie.id)

        movie_id = db.execute(stmt).scalar_one()
        db.commit()
        return movie_id

    def fetch_and_cache(self, db: Session, tmdb_id: int, content_type: str = "movie") -> dict:
        """Full details for a title, refreshing its cached row and genres."""
        details = self.tmdb.get_by_id(tmdb_id, content_type)
        movie_id = self.upsert_movie(db, details, content_type)
        self.link_genres(db, movie_id, details.get("genres") or [])
        return details

    def link_genres(self, db: Session, movie_id: int, genres: Iterable[dict]) -> None:
        """Replace the movie's genre links. Failures are logged, never raised."""
        try:
            genre_ids = []
            for genre in genres:
                stmt = upsert_insert(db, models.Genre).values(
                    tmdb_id=int(genre["id"]), name=genre["name"]
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=[models.Genre.tmdb_id],
                    set_={"name": stmt.excluded.name},
                ).returning(models.Genre.id)
                genre_ids.append(db.execute(stmt).scalar_one())

            db.execute(delete(models.MovieGenre).where(models.MovieGenre.movie_id == movie_id))
            rows = [{"movie_id": movie_id, "genre_id": g} for g in dict.fromkeys(genre_ids)]
            if rows:
                db.execute(insert(models.MovieGenre), rows)
            db.commit()
        except (SQLAlchemyError, KeyError, TypeError, ValueError) as e:
            db.rollback()
            logger.warning(f"Genre linkage failed for movie {movie_id}: {e}")


def get_reconciler(tmdb: TMDBClient = Depends(get_tmdb_client)) -> MovieReconciler:
    return MovieReconciler(tmdb)
