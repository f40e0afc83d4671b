from datetime import datetime, timedelta, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

from ballotboard.database.connection import get_db, get_now
from ballotboard.main import app
from ballotboard.security import create_access_token

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def db():
    return mongomock.MongoClient()["university_elections_test"]


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_now] = lambda: NOW
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    token = create_access_token({"sub": "admin-1", "role": "admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def voter_headers():
    token = create_access_token({"sub": "student-7", "role": "voter"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def seed(db):
    """
    Three elections around NOW:
    the council one is running, the sports one is over but still stored as
    "active", and the club one has no dates and is stored as "cancelled".
    """
    elections = db["elections"]
    council = elections.insert_one({
        "title": "Student Council",
        "description": "Annual council vote",
        "status": "upcoming",
        "startDate": NOW - timedelta(days=1),
        "endDate": NOW + timedelta(days=1),
        "positions": ["President"],
        "createdAt": NOW - timedelta(days=10),
    }).inserted_id
    sports = elections.insert_one({
        "title": "Sports Captain",
        "description": "",
        "status": "active",
        "startDate": NOW - timedelta(days=5),
        "endDate": NOW - timedelta(days=2),
        "positions": ["Captain"],
        "createdAt": NOW - timedelta(days=20),
    }).inserted_id
    club = elections.insert_one({
        "title": "Chess Club Board",
        "status": "cancelled",
        "positions": [],
        "createdAt": NOW - timedelta(days=30),
    }).inserted_id

    users = ["u1", "u2", "u3", "u4", "u5", "u6", "u7", "u8", "u9", "u10"]
    db["users"].insert_many([{"_id": u, "role": "voter"} for u in users])

    alice = db["candidates"].insert_one({"name": "Alice", "position": "President", "election": council}).inserted_id
    bob = db["candidates"].insert_one({"name": "Bob", "position": "President", "election": council}).inserted_id

    # council: 3 votes, sports: 7 votes; u1..u3 voted in both
    votes = [{"election": council, "user": u, "candidate": alice} for u in ("u1", "u2")]
    votes.append({"election": council, "user": "u3", "candidate": bob})
    votes += [{"election": sports, "user": u} for u in users[:7]]
    db["votes"].insert_many(votes)

    return {"council": council, "sports": sports, "club": club, "alice": alice, "bob": bob}
