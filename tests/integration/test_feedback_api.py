"""
Integration tests for feedback, the feedback widget and the contact form
"""

import json
import pytest
from unittest.mock import patch

from smartdocs.models.contact_request import ContactRequest
from smartdocs.models.feedback import Feedback
from smartdocs.storage.local import LocalStorage


@pytest.fixture
def storage(tmp_path):
    local = LocalStorage(base_path=str(tmp_path))
    with patch("smartdocs.api.feedback.get_storage", return_value=local):
        yield local


@pytest.mark.integration
class TestFeedbackAPI:

    def test_signed_in_feedback(self, client, db_session, test_user, auth_headers):
        response = client.post("/api/v1/feedback", json={
            "title": "Great exports",
            "message": "Word export works well",
            "rating": 5,
            "category": "praise",
        }, headers=auth_headers(test_user))

        assert response.status_code == 201
        feedback = db_session.query(Feedback).one()
        assert feedback.user_id == test_user.id
        assert feedback.email == "test@example.com"
        assert feedback.status == "pending"

    def test_anonymous_feedback_needs_email(self, client):
        response = client.post("/api/v1/feedback", json={
            "title": "Hi", "message": "Nice", "rating": 4, "category": "praise",
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "Email is required for anonymous feedback"

    @pytest.mark.parametrize("payload,message", [
        ({"title": "Hi", "message": "Nice", "category": "praise"}, "Title, message, rating and category are required"),
        ({"title": "Hi", "message": "Nice", "rating": 6, "category": "praise"}, "Rating must be between 1 and 5"),
        ({"title": "Hi", "message": "Nice", "rating": 3, "category": "rant"}, "Invalid category"),
    ])
    def test_validation(self, client, payload, message):
        response = client.post("/api/v1/feedback", json={**payload, "email": "a@example.com"})
        assert response.json()["detail"] == message

    def test_public_listing_only_shows_approved(self, client, db_session):
        db_session.add_all([
            Feedback(title="Shown", message="m", rating=5, category="praise", status="approved",
                     is_public=True, name="Lina"),
            Feedback(title="Private", message="m", rating=5, category="praise", status="approved", is_public=False),
            Feedback(title="Pending", message="m", rating=4, category="praise", status="pending", is_public=True),
        ])
        db_session.commit()

        data = client.get("/api/v1/feedback", params={"public": "true"}).json()

        assert data["total"] == 1
        assert data["feedback"][0]["title"] == "Shown"
        assert data["feedback"][0]["user_name"] == "Lina"

    def test_anonymous_name_fallback(self, client, db_session):
        db_session.add(Feedback(title="Anon", message="m", rating=3, category="bug", status="pending"))
        db_session.commit()

        assert client.get("/api/v1/feedback").json()["feedback"][0]["user_name"] == "Anonymous"


@pytest.mark.integration
class TestFeedbackWidget:

    def test_submission_with_files(self, client, db_session, storage):
        response = client.post(
            "/api/v1/feedback/submit",
            data={"feedback": json.dumps({
                "type": "bug",
                "message": "Export button does nothing",
                "email": "reporter@example.com",
                "url": "https://app/documents",
                "console_logs": ["TypeError: x is undefined"],
            })},
            files=[
                ("screenshot", ("screen shot.png", b"\x89PNG...", "image/png")),
                ("attachment_0", ("log.txt", b"trace", "text/plain")),
            ],
            headers={"x-forwarded-for": "203.0.113.5, 10.0.0.1"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["feedback_id"].startswith("feedback_")

        feedback = db_session.query(Feedback).one()
        assert feedback.type == "bug"
        assert feedback.category == "bug"
        assert feedback.rating == 0
        metadata = feedback.metadata_
        assert metadata["submission_id"] == data["feedback_id"]
        assert metadata["ip_address"] == "203.0.113.5"
        assert metadata["screenshot"]["path"] == f"feedback/{data['feedback_id']}/screen_shot.png"
        assert storage.read(metadata["attachments"][0]["path"]) == b"trace"

    def test_requires_feedback_json(self, client, storage):
        response = client.post("/api/v1/feedback/submit", data={"other": "x"})
        assert response.json()["detail"] == "Feedback data is required"

    def test_invalid_json(self, client, storage):
        response = client.post("/api/v1/feedback/submit", data={"feedback": "{not json"})
        assert response.json()["detail"] == "Invalid feedback data"

    def test_empty_message(self, client, storage):
        response = client.post("/api/v1/feedback/submit", data={"feedback": json.dumps({"type": "bug", "message": " "})})
        assert response.json()["detail"] == "Message is required"


@pytest.mark.integration
class TestContactAPI:

    def test_contact_request(self, client, db_session):
        response = client.post("/api/v1/contact", json={
            "name": "Khalid",
            "email": "Khalid@Example.com",
            "subject": "Enterprise pricing",
            "message": "We have 200 seats",
            "type": "sales",
        })

        assert response.status_code == 201
        contact = db_session.query(ContactRequest).one()
        assert contact.email == "khalid@example.com"
        assert contact.type == "sales"
        assert contact.status == "open"
        assert contact.priority == "medium"

    def test_unknown_type_defaults_to_general(self, client, db_session):
        client.post("/api/v1/contact", json={
            "name": "A", "email": "a@example.com", "subject": "S", "message": "M", "type": "party",
        })
        assert db_session.query(ContactRequest).one().type == "general"

    def test_invalid_email(self, client):
        response = client.post("/api/v1/contact", json={
            "name": "A", "email": "nope", "subject": "S", "message": "M",
        })
        assert response.json()["detail"] == "Invalid email address"
