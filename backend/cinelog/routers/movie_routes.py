from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import ValidationError
from ..reconciler import MovieReconciler, get_reconciler
from ..tmdb import TMDBClient, get_tmdb_client

router = APIRouter(prefix="/api/movies", tags=["movies"])


def parse_genre_ids(genres: Optional[str]) -> Optional[list[int]]:
    """``"28,12"`` -> ``[28, 12]``."""
    if not genres:
        return None
    try:
        return [int(g) for g in genres.split(",")]
    except ValueError:
        raise ValidationError("genres must be a comma separated list of ids")


@router.get("/trending")
def trending(tmdb: TMDBClient = Depends(get_tmdb_client)):
    return tmdb.get_trending("movie")


@router.get("/top-rated")
def top_rated(tmdb: TMDBClient = Depends(get_tmdb_client)):
    return tmdb.get_top_rated("movie")


@router.get("/genres")
def genres(tmdb: TMDBClient = Depends(get_tmdb_client)):
    return tmdb.get_cached_genres("movie")


@router.get("/year/{year}")
def by_year(
    year: int,
    sort_by: str = Query("popularity.desc"),
    limit: int = Query(20, ge=1, le=100),
    tmdb: TMDBClient = Depends(get_tmdb_client),
):
    return tmdb.get_content_by_year(year, "movie", sort_by, limit)


@router.get("/genre/{genre_id}")
def by_genre(
    genre_id: int,
    sort_by: str = Query("popularity.desc"),
    page: int = Query(1, ge=1),
    tmdb: TMDBClient = Depends(get_tmdb_client),
):
    return tmdb.get_content_by_genre(genre_id, "movie", sort_by, page)


@router.get("/search")
def search(
    q: str = Query(""),
    page: int = Query(1, ge=1),
    tmdb: TMDBClient = Depends(get_tmdb_client),
):
    if not q:
        raise ValidationError("Query parameter q is required")
    return tmdb.search(q, "movie", page)


@router.get("/advanced")
def advanced_search(
    query: Optional[str] = None,
    year: Optional[int] = Query(None, ge=1000, le=9999),
    genres: Optional[str] = Query(None, pattern=r"^\d+(,\d+)*$"),
    rating_min: Optional[float] = Query(None, ge=0),
    rating_max: Optional[float] = Query(None, ge=0),
    crew: Optional[str] = None,
    page: int = Query(1, ge=1),
    tmdb: TMDBClient = Depends(get_tmdb_client),
):
    return tmdb.discover_movies(
        query=query,
        year=year,
        genres=parse_genre_ids(genres),
        rating_min=rating_min,
        rating_max=rating_max,
        crew_name=crew,
        page=page,
    )


@router.get("/{tmdb_id}")
def movie_details(
    tmdb_id: int,
    db: Session = Depends(get_db),
    reconciler: MovieReconciler = Depends(get_reconciler),
):
    """
    Full TMDB details for a title. The title is cached locally so reviews,
    watchlists and likes can reference it; genre links are refreshed on a
    best-effort basis.
    """
    return reconciler.fetch_and_cache(db, tmdb_id, "movie")
