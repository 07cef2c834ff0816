"""Test configuration and fixtures for the Course Marketplace.

This module provides isolated test environments:
- Temporary database (SQLite)
- Temporary uploads directory with local storage
- Logged-in user and admin clients
- Seeded catalog (courses, products, events) and purchases
"""
import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Generator

import pytest
from fastapi.testclient import TestClient

# Ensure app is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

CURRICULUM = [
    {
        "title": "Foundations",
        "lessons": [
            {"id": "lesson-1", "title": "Breathing basics", "duration_minutes": 10},
            {"id": "lesson-2", "title": "Posture", "duration_minutes": 15},
        ],
    },
    {
        "title": "Practice",
        "lessons": [
            {"id": "lesson-3", "title": "Morning flow", "duration_minutes": 20},
            {"id": "lesson-4", "title": "Evening flow", "duration_minutes": 20},
        ],
    },
]


def future_date(days: int = 30) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).strftime("%Y-%m-%d %H:%M:%S")


@pytest.fixture
def run_async():
    """Helper to run async functions in sync context."""
    def _run(coro):
        return asyncio.run(coro)
    return _run


@pytest.fixture(scope="function")
def isolated_environment(tmp_path: Path, monkeypatch) -> Dict:
    """Point the database, uploads and storage at a temporary directory.

    Returns:
        Dict with paths: db_path, uploads_dir
    """
    import app.config as config
    import app.database as db_module
    from app.infrastructure.storage import reset_storage

    env = {
        "db_path": tmp_path / "test.db",
        "uploads_dir": tmp_path / "uploads",
    }
    env["uploads_dir"].mkdir(parents=True, exist_ok=True)

    monkeypatch.setattr(db_module, "DATABASE_PATH", env["db_path"])
    monkeypatch.setattr(config, "UPLOADS_DIR", env["uploads_dir"])
    monkeypatch.setattr(config, "PUBLIC_URL", "http://testserver")
    monkeypatch.setattr(config, "RESEND_API_KEY", None)
    monkeypatch.delenv("STORAGE_BACKEND", raising=False)
    monkeypatch.delenv("STORAGE_BASE_PATH", raising=False)

    db_module.close_db()
    reset_storage()

    yield env

    db_module.close_db()
    reset_storage()


@pytest.fixture(scope="function")
def fresh_database(isolated_environment: Dict) -> Path:
    """Initialize a fresh schema for each test."""
    from app.database import init_db

    init_db()
    return isolated_environment["db_path"]


@pytest.fixture
def db(fresh_database: Path):
    from app.database import get_db
    return get_db()


@pytest.fixture(scope="function")
def client(fresh_database: Path) -> Generator[TestClient, None, None]:
    """Create test client with fresh isolated environment.

    Usage:
        def test_something(client):
            response = client.get("/api/health")
            assert response.status_code == 200
    """
    from app.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def csrf_headers():
    """Build the CSRF header from a client's CSRF cookie.

    The cookie is issued on the first response, so call this after the
    client has made at least one request.
    """
    from app.config import CSRF_COOKIE_NAME, CSRF_HEADER_NAME

    def _headers(test_client: TestClient) -> Dict[str, str]:
        if not test_client.cookies.get(CSRF_COOKIE_NAME):
            test_client.get("/api/health")
        return {CSRF_HEADER_NAME: test_client.cookies.get(CSRF_COOKIE_NAME)}

    return _headers


def _create_user(email: str, password: str, name: str, role: str = "user", language: str = "en") -> Dict:
    from app.database import get_db
    from app.infrastructure.repositories import UserRepository

    repo = UserRepository(get_db())
    user_id = repo.create(email, password, name, role=role, preferred_language=language)
    return {"id": user_id, "email": email, "password": password, "name": name, "role": role}


def _login(test_client: TestClient, user: Dict) -> TestClient:
    response = test_client.post(
        "/api/auth/login",
        json={"email": user["email"], "password": user["password"]}
    )
    assert response.status_code == 200, response.text
    return test_client


@pytest.fixture(scope="function")
def test_user(client: TestClient) -> Dict:
    """Create a regular user.

    Returns:
        Dict with: id, email, password, name, role
    """
    return _create_user("student@example.com", "StudentPass123", "Test Student")


@pytest.fixture(scope="function")
def other_user(client: TestClient) -> Dict:
    return _create_user("other@example.com", "OtherPass123", "Other Student")


@pytest.fixture(scope="function")
def admin_user(client: TestClient) -> Dict:
    return _create_user("admin@example.com", "AdminPass123", "Site Admin", role="admin")


@pytest.fixture(scope="function")
def authenticated_client(client: TestClient, test_user: Dict) -> TestClient:
    """The shared client, logged in as test_user."""
    return _login(client, test_user)


@pytest.fixture(scope="function")
def admin_client(fresh_database: Path, admin_user: Dict) -> Generator[TestClient, None, None]:
    """A second client logged in as admin_user."""
    from app.main import app

    with TestClient(app) as test_client:
        yield _login(test_client, admin_user)


# === Catalog Seed Data ===

@pytest.fixture
def course(db) -> Dict:
    """A published course with four lessons and a Spanish translation."""
    from app.infrastructure.repositories import CourseRepository

    data = {
        "title": "Mindful Yoga for Beginners",
        "slug": "mindful-yoga-beginners",
        "description": "Gentle yoga practice for stress relief and flexibility",
        "long_description": "A complete introduction to yoga.",
        "price": 49.99,
        "curriculum": CURRICULUM,
        "duration_hours": 4.5,
        "level": "beginner",
        "is_published": True,
        "title_es": "Yoga consciente para principiantes",
        "description_es": "Práctica suave de yoga para aliviar el estrés",
    }
    data["id"] = CourseRepository(db).create(data)
    return data


@pytest.fixture
def advanced_course(db) -> Dict:
    """A published course without a Spanish translation."""
    from app.infrastructure.repositories import CourseRepository

    data = {
        "title": "Advanced Meditation Retreat",
        "slug": "advanced-meditation",
        "description": "Deep meditation techniques for experienced practitioners",
        "price": 129.0,
        "curriculum": [{"title": "Deep work", "lessons": [{"id": "m-1", "title": "Silence"}]}],
        "level": "advanced",
        "is_published": True,
    }
    data["id"] = CourseRepository(db).create(data)
    return data


@pytest.fixture
def draft_course(db) -> Dict:
    from app.infrastructure.repositories import CourseRepository

    data = {
        "title": "Unreleased Yoga Course",
        "slug": "unreleased-yoga",
        "description": "Not published yet",
        "price": 10,
        "is_published": False,
    }
    data["id"] = CourseRepository(db).create(data)
    return data


@pytest.fixture
def product(db) -> Dict:
    """A published PDF product limited to two downloads."""
    from app.infrastructure.repositories import ProductRepository

    data = {
        "title": "Yoga Pose Guide",
        "slug": "yoga-pose-guide",
        "description": "Illustrated guide to fifty yoga poses",
        "price": 19.5,
        "product_type": "pdf",
        "file_key": "pose-guide-1234.pdf",
        "file_folder": "products",
        "file_size_mb": 12.5,
        "download_limit": 2,
        "is_published": True,
        "title_es": "Guía de posturas de yoga",
    }
    data["id"] = ProductRepository(db).create(data)
    return data


@pytest.fixture
def event(db) -> Dict:
    """A published event a month from now."""
    from app.infrastructure.repositories import EventRepository

    data = {
        "title": "Yoga Workshop Madrid",
        "slug": "yoga-workshop-madrid",
        "description": "Full day hands-on yoga workshop",
        "price": 75,
        "event_date": future_date(30),
        "duration_hours": 6,
        "venue_name": "Centro Zen",
        "venue_address": "Calle Mayor 1",
        "venue_city": "Madrid",
        "venue_country": "Spain",
        "capacity": 20,
        "is_published": True,
    }
    data["id"] = EventRepository(db).create(data)
    return data


@pytest.fixture
def past_event(db) -> Dict:
    from app.infrastructure.repositories import EventRepository

    data = {
        "title": "Past Yoga Retreat",
        "slug": "past-yoga-retreat",
        "description": "Already happened",
        "price": 10,
        "event_date": future_date(-10),
        "venue_name": "Old Hall",
        "venue_address": "Somewhere 2",
        "venue_city": "Lisbon",
        "venue_country": "Portugal",
        "capacity": 5,
        "is_published": True,
    }
    data["id"] = EventRepository(db).create(data)
    return data


def create_order(user_id: int, items: list, status: str = "completed") -> str:
    from app.database import get_db
    from app.infrastructure.repositories import OrderRepository

    return OrderRepository(get_db()).create(user_id, items, status=status)


@pytest.fixture
def course_order(test_user: Dict, course: Dict) -> str:
    """Completed purchase of `course` by test_user."""
    return create_order(test_user["id"], [
        {"item_type": "course", "item_id": course["id"], "title": course["title"], "price": course["price"]}
    ])


@pytest.fixture
def product_order(test_user: Dict, product: Dict) -> str:
    """Completed purchase of `product` by test_user."""
    return create_order(test_user["id"], [
        {"item_type": "digital_product", "item_id": product["id"], "title": product["title"], "price": product["price"]}
    ])
