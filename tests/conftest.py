import asyncio
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from learnhub.auth.auth_utils import create_access_token, hash_password
from learnhub.core.identifiers import new_id, USER_PREFIX
from learnhub.db import create_indexes
from learnhub.main import create_app


@pytest.fixture
async def db():
    database = AsyncMongoMockClient()["learnhub_test"]
    await create_indexes(database)
    return database


@pytest.fixture
def api_db():
    return AsyncMongoMockClient()["learnhub_api_test"]


@pytest.fixture
def client(api_db):
    app = create_app(database=api_db)
    with TestClient(app) as test_client:
        yield test_client


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def roadmap(days: int, questions: int = 2) -> list:
    """Roadmap whose quiz answer is always option 0"""
    return [
        {
            "topics": f"Topic {n}",
            "video": f"https://videos.example.com/{n}",
            "mcqs": [
                {
                    "question": f"Day {n} question {q}",
                    "options": [
                        {"text": "right", "is_correct": True},
                        {"text": "wrong", "is_correct": False},
                    ],
                    "explanation": "the first option is right",
                }
                for q in range(1, questions + 1)
            ],
        }
        for n in range(1, days + 1)
    ]


def signup(client: TestClient, name: str, role: str = "student", password: str = "password123") -> tuple:
    resp = client.post("/auth/signup", json={
        "name": name,
        "email": f"{name.lower()}@example.com",
        "password": password,
        "role": role,
    })
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return body["token"], body["user"]


def make_admin(database, name: str = "Admin") -> tuple:
    now = datetime.utcnow()
    admin = {
        "user_id": new_id(USER_PREFIX),
        "name": name,
        "email": f"{name.lower()}@example.com",
        "password_hash": hash_password("adminpass123"),
        "role": "admin",
        "status": "active",
        "created_at": now,
        "updated_at": now,
    }
    asyncio.run(database.users.insert_one(admin))
    return create_access_token(admin["user_id"], "admin"), admin


def make_instructor(client: TestClient, admin_token: str, name: str = "Ines") -> tuple:
    """Sign up an instructor and have the admin approve them"""
    token, user = signup(client, name, role="instructor")
    resp = client.put(
        f"/admin/users/{user['user_id']}/status",
        json={"status": "active"},
        headers=auth(admin_token),
    )
    assert resp.status_code == 200, resp.text
    return token, user


def make_course(client: TestClient, instructor_token: str, days: int, title: str = "Python Basics") -> dict:
    resp = client.post("/courses", json={
        "title": title,
        "description": "Learn the basics",
        "level": "Beginner",
        "category": "Programming",
        "language": "English",
        "roadmap": roadmap(days),
    }, headers=auth(instructor_token))
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture
def campus(client, api_db):
    """Admin, approved instructor, and a 4-day course"""
    admin_token, admin = make_admin(api_db)
    instructor_token, instructor = make_instructor(client, admin_token)
    course = make_course(client, instructor_token, days=4)
    return {
        "client": client,
        "db": api_db,
        "admin_token": admin_token,
        "admin": admin,
        "instructor_token": instructor_token,
        "instructor": instructor,
        "course": course,
    }
