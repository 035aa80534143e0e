from datetime import datetime, timedelta

import pytest

from mnemocards.cards.models import ReviewRecord
from mnemocards.database import SessionLocal
from mnemocards.study.study_service import StudyService


@pytest.fixture
def saved_card(client, auth_headers, card_payload):
    response = client.post("/cards", json=card_payload, headers=auth_headers)
    assert response.status_code == 201
    return response.json()


def due_review_id(client, auth_headers):
    return client.get("/learn/due", headers=auth_headers).json()["reviews"][0]["id"]


def test_new_card_is_due(client, auth_headers, saved_card):
    response = client.get("/learn/due", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["due_count"] == 1
    review = data["reviews"][0]
    assert review["card_id"] == saved_card["id"]
    assert review["card"]["word"] == "table"
    assert review["repetitions"] == 0


def test_nothing_due_without_cards(client, auth_headers):
    assert client.get("/learn/due", headers=auth_headers).json() == {"due_count": 0, "reviews": []}


def test_rating_good_reschedules_for_tomorrow(client, auth_headers, saved_card):
    review_id = due_review_id(client, auth_headers)

    response = client.post(f"/learn/reviews/{review_id}", json={"rating": "good"}, headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["repetitions"] == 1
    assert data["interval_days"] == 1
    assert data["ease_factor"] == 2.5
    assert data["last_reviewed"] is not None
    next_review = datetime.fromisoformat(data["next_review"])
    last_reviewed = datetime.fromisoformat(data["last_reviewed"])
    assert next_review - last_reviewed == timedelta(days=1)

    assert client.get("/learn/due", headers=auth_headers).json()["due_count"] == 0


def test_rating_easy_on_new_card(client, auth_headers, saved_card):
    review_id = due_review_id(client, auth_headers)
    data = client.post(f"/learn/reviews/{review_id}", json={"rating": "easy"}, headers=auth_headers).json()
    assert data["interval_days"] == 4
    assert data["ease_factor"] == pytest.approx(2.65)


def test_unknown_rating_is_rejected(client, auth_headers, saved_card):
    review_id = due_review_id(client, auth_headers)
    response = client.post(f"/learn/reviews/{review_id}", json={"rating": "perfect"}, headers=auth_headers)
    assert response.status_code == 422


def test_unknown_review(client, auth_headers):
    response = client.post("/learn/reviews/999", json={"rating": "good"}, headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Review record not found"


def test_cannot_rate_another_users_review(client, auth_headers, saved_card):
    review_id = due_review_id(client, auth_headers)
    other = client.post("/users", json={"email": "other@example.com"}).json()

    response = client.post(
        f"/learn/reviews/{review_id}",
        json={"rating": "good"},
        headers={"X-User-Id": str(other["id"])},
    )
    assert response.status_code == 404


def test_stats(client, auth_headers, saved_card):
    assert client.get("/learn/stats", headers=auth_headers).json() == {
        "total_cards": 1,
        "due": 1,
        "reviewed_today": 0,
    }

    review_id = due_review_id(client, auth_headers)
    client.post(f"/learn/reviews/{review_id}", json={"rating": "again"}, headers=auth_headers)

    assert client.get("/learn/stats", headers=auth_headers).json() == {
        "total_cards": 1,
        "due": 0,
        "reviewed_today": 1,
    }


def test_due_reviews_are_oldest_first_and_limited(client, auth_headers, card_payload, user):
    for _ in range(3):
        client.post("/cards", json=card_payload, headers=auth_headers)

    db = SessionLocal()
    try:
        now = datetime.now()
        records = db.query(ReviewRecord).order_by(ReviewRecord.id).all()
        # Make the last card the most overdue
        for offset, record in zip([1, 2, 3], records):
            record.next_review = now - timedelta(days=offset)
        db.commit()

        due, due_count = StudyService.get_due_reviews(user["id"], db, limit=2, now=now)

        assert due_count == 3
        assert [r.id for r in due] == [records[2].id, records[1].id]
        assert due[0].card.word == "table"
    finally:
        db.close()


def test_future_reviews_are_not_due(client, auth_headers, saved_card, user):
    db = SessionLocal()
    try:
        record = db.query(ReviewRecord).one()
        now = datetime.now()
        record.next_review = now + timedelta(hours=1)
        db.commit()

        due, due_count = StudyService.get_due_reviews(user["id"], db, now=now)
        assert due == []
        assert due_count == 0
    finally:
        db.close()
