from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from .. import auth, models, schemas
from ..database import get_db
from ..reconciler import MovieReconciler, get_reconciler
from ..services import favourites

router = APIRouter(prefix="/api/favourites", tags=["favourites"])


@router.get("/{user_id}", response_model=list[schemas.FavouriteItemOut])
def get_favourites(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    auth.ensure_can_act(current_user, user_id)
    return favourites.list_favourites(db, user_id)


@router.post("/", response_model=schemas.FavouriteOut, status_code=status.HTTP_201_CREATED)
def add_favourite(
    favourite_in: schemas.FavouriteCreate,
    db: Session = Depends(get_db),
    reconciler: MovieReconciler = Depends(get_reconciler),
    current_user: models.User = Depends(auth.get_current_user),
):
    # Adding an existing favourite answers 201 with the stored row.
    return favourites.add_favourite(
        db, reconciler, current_user, favourite_in.user_id, favourite_in.tmdb_id
    )


@router.delete("/{user_id}/{tmdb_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_favourite(
    user_id: int,
    tmdb_id: int,
    db: Session = Depends(get_db),
    reconciler: MovieReconciler = Depends(get_reconciler),
    current_user: models.User = Depends(auth.get_current_user),
):
    favourites.remove_favourite(db, reconciler, current_user, user_id, tmdb_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
