from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from .. import auth, models
from ..errors import NotFoundError, ValidationError
from ..models import REVIEW_STATUSES, VALID_RATINGS, utcnow
from ..reconciler import MovieReconciler
from .users import get_user


def _validate_rating(rating: float) -> None:
    if rating not in VALID_RATINGS:
        raise ValidationError("rating must be between 0.5 and 5.0 in steps of 0.5")


def _validate_status(status: str) -> None:
    if status not in REVIEW_STATUSES:
        raise ValidationError("status must be draft, published, or flagged")


def _apply_status(review: models.Review, status: str) -> None:
    """Set status, keeping published_at non-null exactly while published."""
    now = utcnow()
    if status == "published":
        if review.status != "published" or review.published_at is None:
            review.published_at = now
    else:
        review.published_at = None
    if status == "flagged" and review.status != "flagged":
        review.flagged_at = now
    review.status = status


def create_review(
    db: Session,
    reconciler: MovieReconciler,
    actor: models.User,
    tmdb_id: int,
    user_id: int,
    rating: float,
    body: Optional[str] = None,
    status: str = "published",
) -> models.Review:
    auth.ensure_can_act(actor, user_id)
    _validate_rating(rating)
    _validate_status(status)
    get_user(db, user_id)

    movie_id = reconciler.ensure_movie_id(db, tmdb_id)
    review = models.Review(user_id=user_id, movie_id=movie_id, rating=rating, body=body)
    _apply_status(review, status)
    db.add(review)
    db.commit()
    db.refresh(review)
    return review


def get_review(db: Session, review_id: int) -> models.Review:
    review = db.get(models.Review, review_id)
    if not review:
        raise NotFoundError("Review not found")
    return review


def list_reviews_for_movie(
    db: Session, reconciler: MovieReconciler, tmdb_id: int
) -> List[models.Review]:
    movie_id = reconciler.ensure_movie_id(db, tmdb_id)
    return (
        db.query(models.Review)
        .options(joinedload(models.Review.user))
        .filter(models.Review.movie_id == movie_id)
        .order_by(models.Review.created_at.desc(), models.Review.id.desc())
        .all()
    )


def list_published_reviews_for_user(db: Session, user_id: int) -> List[models.Review]:
    return (
        db.query(models.Review)
        .options(joinedload(models.Review.movie))
        .filter(models.Review.user_id == user_id, models.Review.status == "published")
        .order_by(
            models.Review.published_at.desc(),
            models.Review.created_at.desc(),
            models.Review.id.desc(),
        )
        .all()
    )


def update_review(
    db: Session,
    actor: models.User,
    review_id: int,
    rating: Optional[float] = None,
    body: Optional[str] = None,
    status: Optional[str] = None,
) -> models.Review:
    review = get_review(db, review_id)
    auth.ensure_can_act(actor, review.user_id)

    if rating is None and body is None and status is None:
        raise ValidationError("No fields to update")
    if rating is not None:
        _validate_rating(rating)
        review.rating = rating
    if body is not None:
        review.body = body
    if status is not None:
        _validate_status(status)
        _apply_status(review, status)
    review.updated_at = utcnow()

    db.commit()
    db.refresh(review)
    return review


def delete_review(db: Session, actor: models.User, review_id: int) -> None:
    review = get_review(db, review_id)
    auth.ensure_can_act(actor, review.user_id)
    db.delete(review)
    db.commit()
