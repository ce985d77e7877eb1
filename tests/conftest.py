import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from recipe_lens.app.api.deps import get_db_session, get_recipe_extractor
from recipe_lens.app.core.config import get_settings
from recipe_lens.app.db import models  # noqa: F401
from recipe_lens.app.db.base import Base
from recipe_lens.app.main import create_app
from recipe_lens.app.services.recipe_extractor import RecipeExtractor
from recipe_lens.app.services.url_parsing.versioning import InMemoryRecipeStore


@pytest.fixture(scope="session")
def engine():
    engine = create_engine("sqlite+pysqlite:///:memory:", connect_args={"check_same_thread": False}, future=True)
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(bind=connection, autocommit=False, autoflush=False, future=True)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        transaction.rollback()
        connection.close()


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def memory_store():
    return InMemoryRecipeStore()


@pytest.fixture
def pages():
    """Maps URL -> HTML served by the fake fetcher."""
    return {}


@pytest.fixture
def extractor(memory_store, pages, settings):
    async def fake_fetch(url, category):
        return pages.get(url, "")

    return RecipeExtractor(store=memory_store, settings=settings, fetcher=fake_fetch)


@pytest.fixture
def app(db_session, extractor):
    app = create_app()

    def override_db():
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    app.dependency_overrides[get_recipe_extractor] = lambda: extractor
    return app


@pytest.fixture
def client(app):
    return TestClient(app)
