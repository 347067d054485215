"""Shared pytest fixtures for the Prode tests."""
import pytest
from tests.factories import make_group, make_user

from app import cache, create_app, db
from app.models.user import ROLE_ADMIN


@pytest.fixture
def app():
    """Application built with TestingConfig on an in-memory SQLite database."""
    app = create_app("testing")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    """Push an application context for tests that call services directly."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def league(app_ctx):
    """An admin and two members sharing one group."""
    admin = make_user("admin", role=ROLE_ADMIN, display_name="Ana")
    bruno = make_user("bruno", display_name="Bruno")
    carla = make_user("carla", display_name="Carla")
    group = make_group(admin, bruno, carla)
    return {"admin": admin, "bruno": bruno, "carla": carla, "group": group}


@pytest.fixture
def ranking_cache(app):
    """Replace the NullCache of TestingConfig with an in-process SimpleCache."""
    cache.init_app(app, config={"CACHE_TYPE": "SimpleCache"})
    return cache
