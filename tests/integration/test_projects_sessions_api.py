"""
Integration tests for projects and project sessions
"""

import pytest
from uuid import UUID, uuid4

from smartdocs.models.conversation import Conversation
from smartdocs.models.message import Message
from smartdocs.models.project import Project


@pytest.fixture
def headers(test_user, auth_headers):
    return auth_headers(test_user)


@pytest.fixture
def project(db_session, test_user):
    project = Project(user_id=test_user.id, name="Delivery app", status="active", stage="initial", confidence=65)
    db_session.add(project)
    db_session.commit()
    db_session.refresh(project)
    return project


@pytest.mark.integration
class TestProjectsAPI:

    def test_create_and_list(self, client, headers):
        response = client.post("/api/v1/projects", json={
            "name": "  Clinic CRM ",
            "industry": "healthcare",
            "initial_brief": "CRM for dental clinics",
        }, headers=headers)

        assert response.status_code == 201
        created = response.json()["project"]
        assert created["name"] == "Clinic CRM"
        assert created["stage"] == "initial"
        assert created["metadata"] == {"initial_brief": "CRM for dental clinics"}

        listing = client.get("/api/v1/projects", headers=headers).json()
        assert listing["pagination"]["total_count"] == 1
        assert listing["projects"][0]["document_count"] == 0

    def test_blank_name(self, client, headers):
        response = client.post("/api/v1/projects", json={"name": "   "}, headers=headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Project name is required"

    def test_free_plan_limit(self, client, db_session, test_user, headers):
        for i in range(3):
            db_session.add(Project(user_id=test_user.id, name=f"P{i}", status="active"))
        db_session.add(Project(user_id=test_user.id, name="Old", status="archived"))
        db_session.commit()

        response = client.post("/api/v1/projects", json={"name": "One too many"}, headers=headers)

        assert response.status_code == 403
        detail = response.json()["detail"]
        assert detail["upgrade_required"] is True
        assert detail["current_count"] == 3
        assert detail["limit"] == 3

    def test_update_validates_and_merges_metadata(self, client, project, headers):
        bad = client.put(f"/api/v1/projects/{project.id}", json={"confidence": 120}, headers=headers)
        assert bad.status_code == 400

        response = client.put(f"/api/v1/projects/{project.id}", json={
            "stage": "research",
            "metadata": {"color": "blue"},
        }, headers=headers)

        assert response.status_code == 200
        updated = response.json()["project"]
        assert updated["stage"] == "research"
        assert updated["metadata"]["color"] == "blue"

    def test_other_users_project_is_hidden(self, client, project, make_user, auth_headers):
        stranger = auth_headers(make_user())
        assert client.get(f"/api/v1/projects/{project.id}", headers=stranger).status_code == 404

    def test_archive_then_delete(self, client, db_session, project, headers):
        archived = client.delete(f"/api/v1/projects/{project.id}", headers=headers)
        assert archived.json()["message"] == "Project archived"
        assert client.get("/api/v1/projects/recent", headers=headers).json() == {"projects": []}

        deleted = client.delete(f"/api/v1/projects/{project.id}", params={"permanent": "true"}, headers=headers)
        assert deleted.json()["message"] == "Project deleted permanently"
        assert db_session.query(Project).count() == 0

    def test_recent_projects(self, client, project, headers):
        projects = client.get("/api/v1/projects/recent", headers=headers).json()["projects"]

        assert projects[0]["activity_summary"] == "No activity yet"
        assert projects[0]["progress_color"] == "blue"


@pytest.mark.integration
class TestProjectSessionsAPI:

    def test_save_and_resume(self, client, db_session, project, headers):
        conversation_id = str(uuid4())
        response = client.post(f"/api/v1/projects/{project.id}/session/save", json={
            "conversation_id": conversation_id,
            "stage": "analysis",
            "confidence": 70,
            "current_tab": "research",
            "messages": [
                {"role": "user", "content": "We deliver groceries", "timestamp": "2026-01-01T10:00:00Z"},
                {"role": "assistant", "content": "Who are your customers?", "timestamp": "2026-01-01T10:00:05Z"},
            ],
        }, headers=headers)

        assert response.status_code == 200
        saved = response.json()["session_data"]
        assert saved["message_count"] == 2
        assert saved["stage"] == "analysis"

        state = client.post(f"/api/v1/projects/{project.id}/session/resume", headers=headers).json()["session_state"]
        assert state["project"]["metadata"]["current_tab"] == "research"
        assert [m["role"] for m in state["conversation"]["messages"]] == ["user", "assistant"]
        assert state["session"]["is_active"] is True
        assert state["context_info"]["can_continue"] is True

    def test_save_replaces_messages(self, client, db_session, project, headers):
        conversation_id = str(uuid4())
        url = f"/api/v1/projects/{project.id}/session/save"
        client.post(url, json={"conversation_id": conversation_id, "messages": [
            {"role": "user", "content": "first"},
            {"role": "assistant", "content": "second"},
        ]}, headers=headers)
        client.post(url, json={"conversation_id": conversation_id, "messages": [
            {"role": "user", "content": "only"},
        ]}, headers=headers)

        contents = [m.content for m in db_session.query(Message).all()]
        assert contents == ["only"]

    def test_save_rejects_unknown_stage(self, client, db_session, project, headers):
        response = client.post(f"/api/v1/projects/{project.id}/session/save",
                               json={"stage": "launch", "messages": []}, headers=headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid stage"
        db_session.refresh(project)
        assert project.stage == "initial"

    def test_save_with_someone_elses_conversation(self, client, db_session, make_user, project, headers):
        stranger = make_user(email="stranger@example.com")
        foreign = Conversation(user_id=stranger.id, title="Private", status="active")
        db_session.add(foreign)
        db_session.commit()

        response = client.post(f"/api/v1/projects/{project.id}/session/save", json={
            "conversation_id": str(foreign.id),
            "stage": "research",
            "messages": [{"role": "user", "content": "hijack"}],
        }, headers=headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "Conversation not found"
        db_session.refresh(project)
        assert project.stage == "initial"
        assert db_session.query(Message).count() == 0

    def test_failed_save_stores_nothing(self, client, db_session, test_user, project, headers):
        url = f"/api/v1/projects/{project.id}/session/save"
        conversation_id = str(uuid4())
        client.post(url, json={"conversation_id": conversation_id, "messages": [
            {"role": "user", "content": "first"},
        ]}, headers=headers)

        other = Conversation(user_id=test_user.id, title="Elsewhere", status="active")
        db_session.add(other)
        db_session.commit()
        taken = Message(conversation_id=other.id, role="user", content="kept")
        db_session.add(taken)
        db_session.commit()

        # the reused message id collides on commit, after the project and
        # the old messages were already changed in the transaction
        response = client.post(url, json={
            "conversation_id": conversation_id,
            "stage": "analysis",
            "current_tab": "research",
            "messages": [{"id": str(taken.id), "role": "user", "content": "clash"}],
        }, headers=headers)

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to save session"

        db_session.refresh(project)
        assert project.stage == "initial"
        assert project.metadata_["current_tab"] == "chat"
        kept = db_session.query(Message).filter(Message.conversation_id == UUID(conversation_id)).all()
        assert [m.content for m in kept] == ["first"]
        assert db_session.query(Message).filter(Message.content == "clash").count() == 0

    def test_resume_without_conversation(self, client, project, headers):
        state = client.post(f"/api/v1/projects/{project.id}/session/resume", headers=headers).json()["session_state"]

        assert state["conversation"] is None
        assert state["session"] is None
        assert state["context_info"]["can_continue"] is False

    def test_end_and_history(self, client, project, headers):
        client.post(f"/api/v1/projects/{project.id}/session/save", json={"messages": []}, headers=headers)

        ended = client.post(f"/api/v1/projects/{project.id}/session/end", headers=headers)
        assert ended.status_code == 200
        assert ended.json()["duration_minutes"] == 0

        history = client.get(f"/api/v1/projects/{project.id}/session/history", headers=headers).json()
        assert len(history["sessions"]) == 1
        assert history["has_active_sessions"] is False

    def test_end_unknown_session(self, client, project, headers):
        response = client.post(f"/api/v1/projects/{project.id}/session/end", headers=headers)
        assert response.status_code == 404
