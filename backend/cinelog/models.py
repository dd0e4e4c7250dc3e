from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base

ROLES = ("user", "admin")
CONTENT_TYPES = ("movie", "tv")
REVIEW_STATUSES = ("draft", "published", "flagged")
WATCH_STATUSES = ("planned", "watching", "completed")
VALID_RATINGS = (0.5, 1.0, 1.5, 2.0, 2.5, 3.0, 3.5, 4.0, 4.5, 5.0)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _in(column: str, values) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


class User(Base):
    __tablename__ = "users"
    __table_args__ = (CheckConstraint(_in("role", ROLES), name="ck_users_role"),)

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="user")
    favourite_movie_id = Column(
        Integer, ForeignKey("movies.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    favourite_movie = relationship("Movie", foreign_keys=[favourite_movie_id])
    reviews = relationship("Review", back_populates="user", cascade="all, delete-orphan")
    watchlist = relationship(
        "WatchlistEntry", back_populates="user", cascade="all, delete-orphan"
    )
    favourites = relationship("Favourite", back_populates="user", cascade="all, delete-orphan")
    likes = relationship("MovieLike", back_populates="user", cascade="all, delete-orphan")


class Movie(Base):
    """Local cache of a TMDB title, keyed by ``tmdb_id``."""

    __tablename__ = "movies"
    __table_args__ = (
        CheckConstraint(_in("content_type", CONTENT_TYPES), name="ck_movies_content_type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tmdb_id = Column(Integer, unique=True, index=True, nullable=False)
    title = Column(String, nullable=False, index=True)
    release_year = Column(Integer)
    poster_url = Column(String)
    content_type = Column(String(10), nullable=False, default="movie")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    genres = relationship("Genre", secondary="movie_genres", back_populates="movies", viewonly=True)
    reviews = relationship("Review", back_populates="movie", cascade="all, delete-orphan")
    watchlist_entries = relationship(
        "WatchlistEntry", back_populates="movie", cascade="all, delete-orphan"
    )
    favourites = relationship("Favourite", back_populates="movie", cascade="all, delete-orphan")
    likes = relationship("MovieLike", back_populates="movie", cascade="all, delete-orphan")


class Genre(Base):
    __tablename__ = "genres"

    id = Column(Integer, primary_key=True, index=True)
    tmdb_id = Column(Integer, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)

    movies = relationship("Movie", secondary="movie_genres", back_populates="genres", viewonly=True)


class MovieGenre(Base):
    __tablename__ = "movie_genres"

    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), primary_key=True)
    genre_id = Column(Integer, ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True)


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        CheckConstraint(_in("rating", VALID_RATINGS), name="ck_review_rating"),
        CheckConstraint(_in("status", REVIEW_STATUSES), name="ck_review_status"),
        CheckConstraint(
            "status <> 'published' OR published_at IS NOT NULL",
            name="ck_review_published_time",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), nullable=False)
    rating = Column(Float, nullable=False)
    body = Column(Text)
    status = Column(String(20), nullable=False, default="draft")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    published_at = Column(DateTime(timezone=True))
    flagged_at = Column(DateTime(timezone=True))

    user = relationship("User", back_populates="reviews")
    movie = relationship("Movie", back_populates="reviews")


class WatchlistEntry(Base):
    __tablename__ = "watchlist"
    __table_args__ = (
        UniqueConstraint("user_id", "movie_id", name="uq_watchlist_user_movie"),
        CheckConstraint(_in("status", WATCH_STATUSES), name="ck_watchlist_status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), nullable=False, default="planned")
    added_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User", back_populates="watchlist")
    movie = relationship("Movie", back_populates="watchlist_entries")


class Favourite(Base):
    __tablename__ = "favourites"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), primary_key=True)
    added_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User", back_populates="favourites")
    movie = relationship("Movie", back_populates="favourites")


class MovieLike(Base):
    __tablename__ = "movie_likes"
    __table_args__ = (UniqueConstraint("user_id", "movie_id", name="uq_movie_likes_user_movie"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User", back_populates="likes")
    movie = relationship("Movie", back_populates="likes")
