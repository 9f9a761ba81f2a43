from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TEST_DATA_DIR = Path(tempfile.mkdtemp(prefix="cvblueprint-tests-"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_DATA_DIR / 'test.db'}")
os.environ.setdefault("DATA_DIR", str(_TEST_DATA_DIR))
os.environ.setdefault("MATCHER_BACKEND", "keyed")
os.environ.setdefault("OPENAI_API_KEY", "")
os.environ.setdefault("LOCAL_LLM_ENABLED", "false")
os.environ.setdefault("APP_ENV", "test")

import pytest  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from cvblueprint.db.base import Base  # noqa: E402
from cvblueprint.db import models  # noqa: E402,F401
from cvblueprint.db.session import SessionLocal, engine  # noqa: E402
from cvblueprint.types import ExtractedCVInfo  # noqa: E402


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db() -> Session:
    with SessionLocal() as session:
        yield session


@pytest.fixture
def full_cv() -> ExtractedCVInfo:
    return ExtractedCVInfo.model_validate(
        {
            "name": "Ada Lovelace",
            "contactInfo": {
                "email": "ada@example.com",
                "phone": "+44 20 1234 5678",
                "location": "London",
                "linkedin": "linkedin.com/in/ada",
            },
            "summary": "Analytical engineer with a taste for engines.",
            "seniorityLevel": "senior",
            "experience": [
                {
                    "title": "Software Engineer",
                    "company": "Analytical Engines Ltd",
                    "dates": "2019-2023",
                    "bullets": ["Built the difference engine scheduler"],
                }
            ],
            "education": [{"degree": "BSc Mathematics", "school": "University of London", "year": "2018"}],
            "skills": ["Python", "SQL", "Algorithms", "Technical Writing", "Mentoring"],
            "projects": [{"title": "Note G", "description": "First published algorithm"}],
            "certifications": [{"name": "AWS Solutions Architect"}],
            "languages": [{"language": "English"}, {"language": "French"}],
        }
    )
