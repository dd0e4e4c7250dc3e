from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, model_validator
from pydantic.config import ConfigDict


# Users
class UserBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    username: str = Field(min_length=1, max_length=50)
    email: EmailStr


class UserCreate(UserBase):
    password: str = Field(min_length=1)


class UserLogin(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: str

    @model_validator(mode="after")
    def require_identifier(self):
        if not self.username and not self.email:
            raise ValueError("username or email is required to login")
        return self


class UserUpdate(BaseModel):
    username: Optional[str] = Field(default=None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=1)
    role: Optional[Literal["user", "admin"]] = None
    favourite_tmdb_id: Optional[int] = Field(default=None, gt=0)


class UserOut(UserBase):
    id: int
    role: str
    favourite_movie_id: Optional[int] = None
    created_at: datetime


class LoginOut(BaseModel):
    token: str
    user: UserOut


# Movies
class MovieSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tmdb_id: int
    title: str
    release_year: Optional[int]
    poster_url: Optional[str]
    content_type: str


class TrendingMovieOut(MovieSummary):
    likes_last_window: int
    latest_like_at: datetime


# Reviews
class ReviewCreate(BaseModel):
    tmdb_id: int = Field(gt=0)
    user_id: int
    rating: float
    body: Optional[str] = None
    status: str = "published"


class ReviewUpdate(BaseModel):
    rating: Optional[float] = None
    body: Optional[str] = None
    status: Optional[str] = None


class ReviewAuthor(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str


class ReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    movie_id: int
    rating: float
    body: Optional[str]
    status: str
    created_at: datetime
    updated_at: datetime
    published_at: Optional[datetime]
    flagged_at: Optional[datetime]


class MovieReviewOut(ReviewOut):
    user: Optional[ReviewAuthor] = None


class UserReviewOut(ReviewOut):
    movie: MovieSummary


# Watchlist
class WatchlistCreate(BaseModel):
    tmdb_id: int = Field(gt=0)
    user_id: int
    status: str = "planned"


class WatchlistUpdate(BaseModel):
    status: str


class WatchlistOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    movie_id: int
    status: str
    added_at: datetime


class WatchlistItemOut(WatchlistOut):
    movie: MovieSummary


# Favourites
class FavouriteCreate(BaseModel):
    tmdb_id: int = Field(gt=0)
    user_id: int


class FavouriteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    movie_id: int
    added_at: datetime


class FavouriteItemOut(FavouriteOut):
    movie: MovieSummary


# Likes
class LikeCreate(BaseModel):
    tmdb_id: int = Field(gt=0)


class LikeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    movie_id: int
    created_at: datetime
