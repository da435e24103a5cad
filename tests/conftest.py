import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from blogapi.main import app
from blogapi.database.engine import get_db
from blogapi.core.auth import create_identity_token
from blogapi.models.user import User
from blogapi.models.blog import Category, Tag


# Test database setup
@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session

    app.dependency_overrides[get_db] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="author")
def author_fixture(session: Session):
    user = User(
        username="author",
        email="author@example.com",
        external_id="user_author_001",
        first_name="Ada",
        last_name="Writer",
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(name="other_author")
def other_author_fixture(session: Session):
    user = User(
        username="someone_else",
        email="someone@example.com",
        external_id="user_other_002",
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(name="auth_headers")
def auth_headers_fixture(author: User):
    token = create_identity_token(author.external_id, session_id="sess_author")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(name="other_headers")
def other_headers_fixture(other_author: User):
    token = create_identity_token(other_author.external_id, session_id="sess_other")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(name="categories")
def categories_fixture(session: Session):
    names = ["Technology", "Science", "Travel"]
    created = []
    for name in names:
        category = Category(name=name, slug=name.lower())
        session.add(category)
        created.append(category)
    session.commit()
    for category in created:
        session.refresh(category)
    return created


@pytest.fixture(name="tags")
def tags_fixture(session: Session):
    created = [Tag(name="python", slug="python"), Tag(name="fastapi", slug="fastapi")]
    for tag in created:
        session.add(tag)
    session.commit()
    for tag in created:
        session.refresh(tag)
    return created
