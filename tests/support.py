import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from sqlalchemy.orm import sessionmaker

from database import Base, _build_engine
import models  # noqa: F401


def make_session_factory():
    """Fresh in-memory database with every table created."""
    engine = _build_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine), engine


class FakeExtractor:
    """Stands in for RawTextExtractor; records the text it was given."""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def extract(self, raw_text, today=None):
        self.calls.append(raw_text)
        if self.error is not None:
            raise self.error
        return dict(self.result) if isinstance(self.result, dict) else self.result
