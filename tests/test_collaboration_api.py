"""Workspace, project and task routes end to end."""

from __future__ import annotations

import pytest

from collabhub.roles import ProjectRole, WorkspaceRole


@pytest.fixture
def team(make_user):
    return {"owner": make_user(), "member": make_user(), "viewer": make_user(), "outsider": make_user()}


@pytest.fixture
def workspace_id(client_with_db, bearer, team):
    resp = client_with_db.post("/api/workspaces", json={"name": "Acme"}, headers=bearer(team["owner"]))
    assert resp.status_code == 201
    ws_id = resp.json()["id"]
    for key, role in (("member", "MEMBER"), ("viewer", "VIEWER")):
        resp = client_with_db.post(
            f"/api/workspaces/{ws_id}/members",
            json={"user_id": str(team[key].id), "role": role},
            headers=bearer(team["owner"]),
        )
        assert resp.status_code == 201
    return ws_id


@pytest.fixture
def project_id(client_with_db, bearer, team, workspace_id):
    resp = client_with_db.post(
        "/api/projects",
        json={"workspace_id": workspace_id, "name": "Launch"},
        headers=bearer(team["member"]),
    )
    assert resp.status_code == 201
    return resp.json()["id"]


class TestWorkspaceRoutes:
    def test_create_requires_auth(self, client_with_db):
        assert client_with_db.post("/api/workspaces", json={"name": "X"}).status_code == 401

    def test_blank_name_is_422(self, client_with_db, bearer, team):
        resp = client_with_db.post("/api/workspaces", json={"name": "   "}, headers=bearer(team["owner"]))
        assert resp.status_code in (400, 422)

    def test_list_reports_role_and_counts(self, client_with_db, bearer, team, workspace_id, project_id):
        resp = client_with_db.get("/api/workspaces", headers=bearer(team["viewer"]))
        assert resp.status_code == 200
        [summary] = resp.json()
        assert summary["id"] == workspace_id
        assert summary["role"] == WorkspaceRole.VIEWER.value
        assert summary["member_count"] == 3
        assert summary["project_count"] == 1

    def test_outsider_gets_404(self, client_with_db, bearer, team, workspace_id):
        resp = client_with_db.get(f"/api/workspaces/{workspace_id}", headers=bearer(team["outsider"]))
        assert resp.status_code == 404

    def test_members_listed_by_rank(self, client_with_db, bearer, team, workspace_id):
        resp = client_with_db.get(f"/api/workspaces/{workspace_id}/members", headers=bearer(team["viewer"]))
        assert [m["role"] for m in resp.json()] == ["OWNER", "MEMBER", "VIEWER"]

    def test_only_owner_adds_members(self, client_with_db, bearer, team, workspace_id):
        resp = client_with_db.post(
            f"/api/workspaces/{workspace_id}/members",
            json={"user_id": str(team["outsider"].id)},
            headers=bearer(team["member"]),
        )
        assert resp.status_code == 403

    def test_owner_grant_rejected(self, client_with_db, bearer, team, workspace_id):
        resp = client_with_db.post(
            f"/api/workspaces/{workspace_id}/members",
            json={"user_id": str(team["outsider"].id), "role": "OWNER"},
            headers=bearer(team["owner"]),
        )
        assert resp.status_code == 400

    def test_update_role(self, client_with_db, bearer, team, workspace_id):
        resp = client_with_db.patch(
            f"/api/workspaces/{workspace_id}/members/{team['viewer'].id}",
            json={"role": "MEMBER"},
            headers=bearer(team["owner"]),
        )
        assert resp.status_code == 200
        assert resp.json()["role"] == "MEMBER"
        assert resp.json()["user"]["id"] == str(team["viewer"].id)

    def test_unknown_role_is_422(self, client_with_db, bearer, team, workspace_id):
        resp = client_with_db.patch(
            f"/api/workspaces/{workspace_id}/members/{team['viewer'].id}",
            json={"role": "ADMIN"},
            headers=bearer(team["owner"]),
        )
        assert resp.status_code == 422

    def test_remove_member(self, client_with_db, bearer, team, workspace_id, project_id):
        resp = client_with_db.delete(
            f"/api/workspaces/{workspace_id}/members/{team['member'].id}",
            headers=bearer(team["owner"]),
        )
        assert resp.status_code == 204
        resp = client_with_db.get(f"/api/projects/{project_id}/members", headers=bearer(team["owner"]))
        assert str(team["member"].id) not in {m["user_id"] for m in resp.json()}


class TestProjectRoutes:
    def test_viewer_cannot_create_project(self, client_with_db, bearer, team, workspace_id):
        resp = client_with_db.post(
            "/api/projects",
            json={"workspace_id": workspace_id, "name": "Nope"},
            headers=bearer(team["viewer"]),
        )
        assert resp.status_code == 403

    def test_creator_is_lead(self, client_with_db, bearer, team, project_id):
        resp = client_with_db.get(f"/api/projects/{project_id}/members", headers=bearer(team["member"]))
        assert resp.status_code == 200
        assert [(m["user_id"], m["role"]) for m in resp.json()] == [
            (str(team["member"].id), ProjectRole.PROJECT_LEAD.value)
        ]

    def test_workspace_viewer_sees_project(self, client_with_db, bearer, team, project_id):
        resp = client_with_db.get(f"/api/projects/{project_id}", headers=bearer(team["viewer"]))
        assert resp.status_code == 200
        assert resp.json()["name"] == "Launch"

    def test_outsider_gets_404(self, client_with_db, bearer, team, project_id):
        resp = client_with_db.get(f"/api/projects/{project_id}", headers=bearer(team["outsider"]))
        assert resp.status_code == 404

    def test_lead_adds_contributor(self, client_with_db, bearer, team, project_id):
        resp = client_with_db.post(
            f"/api/projects/{project_id}/members",
            json={"user_id": str(team["owner"].id), "role": "CONTRIBUTOR"},
            headers=bearer(team["member"]),
        )
        assert resp.status_code == 201
        assert resp.json()["role"] == "CONTRIBUTOR"

    def test_outsider_cannot_be_added(self, client_with_db, bearer, team, project_id):
        resp = client_with_db.post(
            f"/api/projects/{project_id}/members",
            json={"user_id": str(team["outsider"].id)},
            headers=bearer(team["member"]),
        )
        assert resp.status_code == 400

    def test_sole_lead_cannot_demote_self(self, client_with_db, bearer, team, project_id):
        resp = client_with_db.patch(
            f"/api/projects/{project_id}/members/{team['member'].id}",
            json={"role": "CONTRIBUTOR"},
            headers=bearer(team["member"]),
        )
        assert resp.status_code == 400

    def test_delete_project(self, client_with_db, bearer, team, project_id):
        assert client_with_db.delete(f"/api/projects/{project_id}", headers=bearer(team["viewer"])).status_code == 403
        assert client_with_db.delete(f"/api/projects/{project_id}", headers=bearer(team["member"])).status_code == 204
        assert client_with_db.get(f"/api/projects/{project_id}", headers=bearer(team["member"])).status_code == 404


class TestTaskRoutes:
    def _create(self, client, headers, project_id, **fields):
        body = {"project_id": project_id, "title": "Write launch post", **fields}
        return client.post("/api/tasks", json=body, headers=headers)

    def test_create_notifies_assignees(self, client_with_db, bearer, team, project_id):
        resp = self._create(
            client_with_db, bearer(team["member"]), project_id, assignee_ids=[str(team["viewer"].id)]
        )
        assert resp.status_code == 201
        assert resp.json()["assignee_ids"] == [str(team["viewer"].id)]
        assert resp.json()["status"] == "TODO"

        notes = client_with_db.get("/api/notifications", headers=bearer(team["viewer"])).json()
        task_notes = [n for n in notes if n["entity_type"] == "TASK"]
        assert [n["title"] for n in task_notes] == ["New Task Assignment"]
        assert task_notes[0]["body"] == 'You have been assigned to task: "Write launch post"'
        assert task_notes[0]["related_entity_id"] == resp.json()["id"]
        # the other one is the invitation from joining the workspace
        assert sorted(n["title"] for n in notes) == ["New Task Assignment", "Workspace Invitation"]

    def test_viewer_cannot_create(self, client_with_db, bearer, team, project_id):
        assert self._create(client_with_db, bearer(team["viewer"]), project_id).status_code == 403

    def test_outsider_assignee_rejected(self, client_with_db, bearer, team, project_id):
        resp = self._create(
            client_with_db, bearer(team["member"]), project_id, assignee_ids=[str(team["outsider"].id)]
        )
        assert resp.status_code == 400

    def test_patch_only_provided_fields(self, client_with_db, bearer, team, project_id):
        task = self._create(client_with_db, bearer(team["member"]), project_id, description="draft").json()
        resp = client_with_db.patch(
            f"/api/tasks/{task['id']}", json={"status": "IN_PROGRESS"}, headers=bearer(team["member"])
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "IN_PROGRESS"
        assert resp.json()["description"] == "draft"

    def test_patch_can_clear_description(self, client_with_db, bearer, team, project_id):
        task = self._create(client_with_db, bearer(team["member"]), project_id, description="draft").json()
        resp = client_with_db.patch(
            f"/api/tasks/{task['id']}", json={"description": None}, headers=bearer(team["member"])
        )
        assert resp.json()["description"] is None

    def test_empty_patch_is_400(self, client_with_db, bearer, team, project_id):
        task = self._create(client_with_db, bearer(team["member"]), project_id).json()
        resp = client_with_db.patch(f"/api/tasks/{task['id']}", json={}, headers=bearer(team["member"]))
        assert resp.status_code == 400
        assert resp.json()["detail"] == "No fields to update"

    def test_null_title_is_422(self, client_with_db, bearer, team, project_id):
        task = self._create(client_with_db, bearer(team["member"]), project_id).json()
        resp = client_with_db.patch(f"/api/tasks/{task['id']}", json={"title": None}, headers=bearer(team["member"]))
        assert resp.status_code == 422

    def test_viewer_cannot_update(self, client_with_db, bearer, team, project_id):
        task = self._create(client_with_db, bearer(team["member"]), project_id).json()
        resp = client_with_db.patch(f"/api/tasks/{task['id']}", json={"title": "x"}, headers=bearer(team["viewer"]))
        assert resp.status_code == 403

    def test_mine_lists_assigned(self, client_with_db, bearer, team, project_id):
        self._create(client_with_db, bearer(team["member"]), project_id, assignee_ids=[str(team["viewer"].id)])
        self._create(client_with_db, bearer(team["member"]), project_id, title="Unassigned")
        resp = client_with_db.get("/api/tasks/mine", headers=bearer(team["viewer"]))
        assert resp.status_code == 200
        assert [t["title"] for t in resp.json()] == ["Write launch post"]

    def test_project_tasks_grouped_by_status(self, client_with_db, bearer, team, project_id):
        headers = bearer(team["member"])
        self._create(client_with_db, headers, project_id, title="done", status="DONE")
        self._create(client_with_db, headers, project_id, title="todo", status="TODO")
        self._create(client_with_db, headers, project_id, title="doing", status="IN_PROGRESS")
        resp = client_with_db.get(f"/api/projects/{project_id}/tasks", headers=bearer(team["viewer"]))
        assert [t["status"] for t in resp.json()] == ["TODO", "IN_PROGRESS", "DONE"]

    def test_delete_task(self, client_with_db, bearer, team, project_id):
        task = self._create(client_with_db, bearer(team["member"]), project_id).json()
        assert client_with_db.delete(f"/api/tasks/{task['id']}", headers=bearer(team["viewer"])).status_code == 403
        assert client_with_db.delete(f"/api/tasks/{task['id']}", headers=bearer(team["member"])).status_code == 204
        assert client_with_db.get(f"/api/tasks/{task['id']}", headers=bearer(team["member"])).status_code == 404
