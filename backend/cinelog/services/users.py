from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import auth, models, schemas
from ..errors import ConflictError, ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
from ..reconciler import MovieReconciler


def _commit_user(db: Session, user: models.User) -> models.User:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("username or email already exists")
    db.refresh(user)
    return user


def create_user(db: Session, user_in: schemas.UserCreate) -> models.User:
    # Signup never grants admin; admins are promoted by other admins.
    user = models.User(
        username=user_in.username,
        email=user_in.email,
        password_hash=auth.get_password_hash(user_in.password),
        role="user",
    )
    db.add(user)
    return _commit_user(db, user)


def find_user(db: Session, username_or_email: str) -> Optional[models.User]:
    return (
        db.query(models.User)
        .filter(
            or_(
                models.User.username == username_or_email,
                models.User.email == username_or_email,
            )
        )
        .first()
    )


def authenticate(
    db: Session, password: str, username: Optional[str] = None, email: Optional[str] = None
) -> models.User:
    user = find_user(db, username or email)

    if not user or not auth.verify_password(password, user.password_hash):
        raise UnauthorizedError("Invalid credentials")
    return user


def list_users(db: Session) -> List[models.User]:
    return db.query(models.User).order_by(models.User.id).all()


def get_user(db: Session, user_id: int) -> models.User:
    user = db.get(models.User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def update_user(
    db: Session,
    reconciler: MovieReconciler,
    actor: models.User,
    user_id: int,
    user_in: schemas.UserUpdate,
) -> models.User:
    auth.ensure_can_act(actor, user_id)
    fields = user_in.model_dump(exclude_unset=True, exclude_none=True)
    if "role" in fields and actor.role != "admin":
        raise ForbiddenError("Only admins can change roles")
    if not fields:
        raise ValidationError("No fields to update")

    user = get_user(db, user_id)

    if "favourite_tmdb_id" in fields:
        user.favourite_movie_id = reconciler.ensure_movie_id(db, fields.pop("favourite_tmdb_id"))
    if "password" in fields:
        user.password_hash = auth.get_password_hash(fields.pop("password"))
    for name, value in fields.items():
        setattr(user, name, value)

    return _commit_user(db, user)


def delete_user(db: Session, user_id: int) -> None:
    user = get_user(db, user_id)
    db.delete(user)
    db.commit()
