from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from .. import auth, models, schemas
from ..database import get_db
from ..reconciler import MovieReconciler, get_reconciler
from ..services import reviews

router = APIRouter(prefix="/api/reviews", tags=["reviews"])


@router.get("/movie/{tmdb_id}", response_model=list[schemas.MovieReviewOut])
def reviews_for_movie(
    tmdb_id: int,
    db: Session = Depends(get_db),
    reconciler: MovieReconciler = Depends(get_reconciler),
):
    return reviews.list_reviews_for_movie(db, reconciler, tmdb_id)


@router.get("/{review_id}", response_model=schemas.ReviewOut)
def get_review(review_id: int, db: Session = Depends(get_db)):
    return reviews.get_review(db, review_id)


@router.post("/", response_model=schemas.ReviewOut, status_code=status.HTTP_201_CREATED)
def create_review(
    review_in: schemas.ReviewCreate,
    db: Session = Depends(get_db),
    reconciler: MovieReconciler = Depends(get_reconciler),
    current_user: models.User = Depends(auth.get_current_user),
):
    return reviews.create_review(
        db,
        reconciler,
        current_user,
        tmdb_id=review_in.tmdb_id,
        user_id=review_in.user_id,
        rating=review_in.rating,
        body=review_in.body,
        status=review_in.status,
    )


@router.put("/{review_id}", response_model=schemas.ReviewOut)
def update_review(
    review_id: int,
    review_in: schemas.ReviewUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    return reviews.update_review(
        db,
        current_user,
        review_id,
        rating=review_in.rating,
        body=review_in.body,
        status=review_in.status,
    )


@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_review(
    review_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    reviews.delete_review(db, current_user, review_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
