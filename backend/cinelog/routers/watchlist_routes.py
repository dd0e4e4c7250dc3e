from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from .. import auth, models, schemas
from ..database import get_db
from ..reconciler import MovieReconciler, get_reconciler
from ..services import watchlist

router = APIRouter(prefix="/api/watchlist", tags=["watchlist"])


@router.get("/{user_id}", response_model=list[schemas.WatchlistItemOut])
def get_watchlist(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    auth.ensure_can_act(current_user, user_id)
    return watchlist.list_watchlist(db, user_id)


@router.post("/", response_model=schemas.WatchlistOut, status_code=status.HTTP_201_CREATED)
def add_to_watchlist(
    entry_in: schemas.WatchlistCreate,
    db: Session = Depends(get_db),
    reconciler: MovieReconciler = Depends(get_reconciler),
    current_user: models.User = Depends(auth.get_current_user),
):
    return watchlist.add_to_watchlist(
        db, reconciler, current_user, entry_in.user_id, entry_in.tmdb_id, entry_in.status
    )


@router.put("/{entry_id}", response_model=schemas.WatchlistOut)
def update_watchlist_entry(
    entry_id: int,
    entry_in: schemas.WatchlistUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    return watchlist.update_watchlist_status(db, current_user, entry_id, entry_in.status)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_watchlist_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    watchlist.remove_from_watchlist(db, current_user, entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
