"""Read-only profile views that need no token."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..services import favourites, reviews, users, watchlist

router = APIRouter(prefix="/api/public/users", tags=["public"])


@router.get("/{user_id}/favourites", response_model=list[schemas.FavouriteItemOut])
def public_favourites(user_id: int, db: Session = Depends(get_db)):
    users.get_user(db, user_id)
    return favourites.list_favourites(db, user_id)


@router.get("/{user_id}/watchlist", response_model=list[schemas.WatchlistItemOut])
def public_watchlist(user_id: int, db: Session = Depends(get_db)):
    users.get_user(db, user_id)
    return watchlist.list_watchlist(db, user_id)


@router.get("/{user_id}/reviews", response_model=list[schemas.UserReviewOut])
def public_reviews(user_id: int, db: Session = Depends(get_db)):
    users.get_user(db, user_id)
    return reviews.list_published_reviews_for_user(db, user_id)
