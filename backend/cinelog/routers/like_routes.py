from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from .. import auth, models, schemas
from ..database import get_db
from ..reconciler import MovieReconciler, get_reconciler
from ..services import likes

router = APIRouter(prefix="/api/likes", tags=["likes"])


@router.get("/trending", response_model=list[schemas.TrendingMovieOut])
def trending_by_likes(
    days: int = Query(30),
    limit: int = Query(20),
    db: Session = Depends(get_db),
):
    """Most liked movies over the last ``days`` days (clamped to 1-90)."""
    return likes.trending_by_likes(db, days=days, limit=limit)


@router.post("/", response_model=schemas.LikeOut, status_code=status.HTTP_201_CREATED)
def add_like(
    like_in: schemas.LikeCreate,
    db: Session = Depends(get_db),
    reconciler: MovieReconciler = Depends(get_reconciler),
    current_user: models.User = Depends(auth.get_current_user),
):
    return likes.add_like(db, reconciler, current_user, like_in.tmdb_id)


@router.delete("/{tmdb_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_like(
    tmdb_id: int,
    db: Session = Depends(get_db),
    reconciler: MovieReconciler = Depends(get_reconciler),
    current_user: models.User = Depends(auth.get_current_user),
):
    likes.remove_like(db, reconciler, current_user, tmdb_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
