from cinelog import auth, models
from cinelog.config import Settings
from cinelog.scripts.initialize_db import seed_admin


def test_seed_admin_is_idempotent(db):
    assert seed_admin(db, "root", "root@cinelog.app", "s3cret-pass") is True
    assert seed_admin(db, "root", "root@cinelog.app", "other-pass") is False

    admins = db.query(models.User).filter_by(role="admin").all()
    assert [a.username for a in admins] == ["root"]
    assert auth.verify_password("s3cret-pass", admins[0].password_hash)


def test_seed_admin_skips_taken_email(db, alice):
    assert seed_admin(db, "root", alice.email, "s3cret-pass") is False
    assert db.query(models.User).count() == 1


def test_validate_reports_missing_settings(monkeypatch):
    monkeypatch.setattr(Settings, "TMDB_API_KEY", "")
    monkeypatch.setattr(Settings, "DATABASE_URL", "mysql://localhost/cinelog")
    monkeypatch.setattr(Settings, "PORT", "http")

    errors = Settings.validate()

    assert len(errors) == 3


def test_validate_accepts_complete_settings(monkeypatch):
    monkeypatch.setattr(Settings, "TMDB_API_KEY", "key")
    monkeypatch.setattr(Settings, "DATABASE_URL", "postgresql+psycopg2://u:p@db:5432/cinelog")
    monkeypatch.setattr(Settings, "PORT", "4000")

    assert Settings.validate() == []
