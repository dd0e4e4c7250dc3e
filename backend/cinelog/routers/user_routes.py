from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from .. import auth, models, schemas
from ..database import get_db
from ..reconciler import MovieReconciler, get_reconciler
from ..services import users

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("/", response_model=schemas.UserOut, status_code=status.HTTP_201_CREATED)
def register_user(
    user_in: schemas.UserCreate,
    db: Session = Depends(get_db),
):
    return users.create_user(db, user_in)


@router.post("/login", response_model=schemas.LoginOut)
def login(
    creds: schemas.UserLogin,
    db: Session = Depends(get_db),
):
    user = users.authenticate(db, creds.password, username=creds.username, email=creds.email)
    token = auth.create_access_token(user)
    return {"token": token, "user": user}


@router.post("/logout")
def logout():
    # Tokens are stateless; the client simply discards its copy.
    return {"detail": "Logged out. Clear the token on the client."}


@router.get("/me", response_model=schemas.UserOut)
def get_me(current_user: models.User = Depends(auth.get_current_user)):
    return current_user


@router.get("/", response_model=list[schemas.UserOut])
def list_users(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
):
    return users.list_users(db)


@router.get("/{user_id}", response_model=schemas.UserOut)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return users.get_user(db, user_id)


@router.patch("/{user_id}", response_model=schemas.UserOut)
def update_user(
    user_id: int,
    user_in: schemas.UserUpdate,
    db: Session = Depends(get_db),
    reconciler: MovieReconciler = Depends(get_reconciler),
    current_user: models.User = Depends(auth.get_current_user),
):
    return users.update_user(db, reconciler, current_user, user_id, user_in)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: models.User = Depends(auth.require_admin),
):
    users.delete_user(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
