from __future__ import annotations

from cvblueprint.config import get_settings
from cvblueprint.db import models  # noqa: F401
from cvblueprint.db.base import Base
from cvblueprint.db.session import engine


def ensure_data_directories() -> None:
    settings = get_settings()
    if settings.database_url.startswith("sqlite"):
        settings.data_dir.mkdir(parents=True, exist_ok=True)


def init_database() -> dict[str, list[str]]:
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)
    return {"tables": sorted(Base.metadata.tables)}
