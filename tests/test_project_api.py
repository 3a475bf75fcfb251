"""
Project API tests — create/list/get, status vocabulary, backlog, files.
"""

import io
import os

from proflow.models import db
from proflow.models.project import ProjectAttachment
from proflow.models.task import Task


# ═══════════════════════════════════════════════════════════════
# BLOCK 1: Create / read
# ═══════════════════════════════════════════════════════════════

class TestCreateProject:
    def test_create_with_custom_statuses(self, client, company_admin):
        res = client.post(
            "/api/projects",
            json={"name": "Alpha", "statuses": ["Todo", "Doing", "Done"], "customer": "Umbrella"},
            headers=company_admin["headers"],
        )
        assert res.status_code == 201
        data = res.get_json()
        assert data["statuses"] == ["Todo", "Doing", "Done"]
        assert data["customer"] == "Umbrella"
        assert "is_active" not in data
        assert data["created_by"]["id"] == company_admin["user"]["id"]

    def test_default_statuses(self, client, company_admin, make_project):
        project = make_project(company_admin)
        assert project["statuses"] == ["Todo", "In Progress", "Done"]

    def test_statuses_trimmed(self, client, company_admin, make_project):
        project = make_project(company_admin, statuses=[" Todo ", "Done"])
        assert project["statuses"] == ["Todo", "Done"]

    def test_empty_statuses_rejected(self, client, company_admin):
        res = client.post(
            "/api/projects", json={"name": "A", "statuses": []},
            headers=company_admin["headers"],
        )
        assert res.status_code == 400

    def test_duplicate_statuses_rejected(self, client, company_admin):
        res = client.post(
            "/api/projects", json={"name": "A", "statuses": ["Todo", "Todo"]},
            headers=company_admin["headers"],
        )
        assert res.status_code == 400

    def test_blank_status_rejected(self, client, company_admin):
        res = client.post(
            "/api/projects", json={"name": "A", "statuses": ["Todo", "  "]},
            headers=company_admin["headers"],
        )
        assert res.status_code == 400

    def test_name_required(self, client, company_admin):
        res = client.post("/api/projects", json={}, headers=company_admin["headers"])
        assert res.status_code == 400
        assert res.get_json()["details"]["name"] == "required"

    def test_name_too_long(self, client, company_admin):
        res = client.post(
            "/api/projects", json={"name": "x" * 101}, headers=company_admin["headers"],
        )
        assert res.status_code == 400

    def test_end_before_start_rejected(self, client, company_admin):
        res = client.post(
            "/api/projects",
            json={"name": "A", "start_date": "2026-03-01", "end_date": "2026-02-01"},
            headers=company_admin["headers"],
        )
        assert res.status_code == 400

    def test_duration_days(self, client, company_admin, make_project):
        project = make_project(company_admin, start_date="2026-03-01", end_date="2026-03-11")
        assert project["duration_days"] == 10

    def test_employee_cannot_create(self, client, company_admin, make_employee):
        emp = make_employee(company_admin)
        res = client.post("/api/projects", json={"name": "X"}, headers=emp["headers"])
        assert res.status_code == 403

    def test_non_json_body_rejected(self, client, company_admin):
        res = client.post(
            "/api/projects", data="name=Alpha",
            content_type="text/plain", headers=company_admin["headers"],
        )
        assert res.status_code == 415


class TestReadProjects:
    def test_admin_lists_all(self, client, company_admin, make_project):
        make_project(company_admin, name="One")
        make_project(company_admin, name="Two")
        res = client.get("/api/projects", headers=company_admin["headers"])
        assert res.status_code == 200
        assert res.get_json()["total"] == 2

    def test_employee_sees_only_member_projects(
        self, client, company_admin, make_employee, make_project, make_task,
    ):
        emp = make_employee(company_admin)
        mine = make_project(company_admin, name="Mine")
        make_project(company_admin, name="Not mine")
        make_task(company_admin, mine["id"], assignee_ids=[emp["id"]])

        res = client.get("/api/projects", headers=emp["headers"])
        data = res.get_json()
        assert data["total"] == 1
        assert data["items"][0]["name"] == "Mine"

    def test_employee_without_tasks_sees_nothing(
        self, client, company_admin, make_employee, make_project,
    ):
        emp = make_employee(company_admin)
        make_project(company_admin)
        res = client.get("/api/projects", headers=emp["headers"])
        assert res.status_code == 200
        assert res.get_json()["total"] == 0

    def test_employee_get_non_member_project_forbidden(
        self, client, company_admin, make_employee, make_project,
    ):
        emp = make_employee(company_admin)
        project = make_project(company_admin)
        res = client.get(f"/api/projects/{project['id']}", headers=emp["headers"])
        assert res.status_code == 403

    def test_employee_get_member_project(
        self, client, company_admin, make_employee, make_project, make_task,
    ):
        emp = make_employee(company_admin)
        project = make_project(company_admin)
        make_task(company_admin, project["id"], assignee_ids=[emp["id"]])
        res = client.get(f"/api/projects/{project['id']}", headers=emp["headers"])
        assert res.status_code == 200
        assert res.get_json()["attachments"] == []

    def test_get_missing_project(self, client, company_admin):
        res = client.get("/api/projects/9999", headers=company_admin["headers"])
        assert res.status_code == 404
        assert res.get_json()["error"] == "Project not found"


# ═══════════════════════════════════════════════════════════════
# BLOCK 2: Status vocabulary
# ═══════════════════════════════════════════════════════════════

class TestProjectStatuses:
    def test_replace_statuses_repairs_tasks(self, client, company_admin, make_project, make_task):
        project = make_project(company_admin, statuses=["Todo", "Doing", "Done"])
        doing = make_task(company_admin, project["id"], status="Doing")
        done = make_task(company_admin, project["id"], status="Done")

        res = client.put(
            f"/api/projects/{project['id']}/statuses",
            json={"statuses": ["Backlog", "Done"]},
            headers=company_admin["headers"],
        )
        assert res.status_code == 200
        data = res.get_json()
        assert data["project"]["statuses"] == ["Backlog", "Done"]
        assert data["repaired_tasks"] == 1

        res = client.get(f"/api/tasks/{doing['id']}", headers=company_admin["headers"])
        assert res.get_json()["status"] == "Backlog"
        res = client.get(f"/api/tasks/{done['id']}", headers=company_admin["headers"])
        assert res.get_json()["status"] == "Done"

    def test_repair_keeps_other_projects_untouched(
        self, client, company_admin, make_project, make_task,
    ):
        p1 = make_project(company_admin, name="P1", statuses=["Todo", "Doing"])
        p2 = make_project(company_admin, name="P2", statuses=["Todo", "Doing"])
        make_task(company_admin, p1["id"], status="Doing")
        other = make_task(company_admin, p2["id"], status="Doing")

        client.put(
            f"/api/projects/{p1['id']}/statuses",
            json={"statuses": ["Todo"]}, headers=company_admin["headers"],
        )
        assert db.session.get(Task, other["id"]).status == "Doing"

    def test_invalid_vocabulary_rejected(self, client, company_admin, make_project):
        project = make_project(company_admin)
        res = client.put(
            f"/api/projects/{project['id']}/statuses",
            json={"statuses": "Todo"}, headers=company_admin["headers"],
        )
        assert res.status_code == 400

    def test_employee_cannot_change_statuses(
        self, client, company_admin, make_employee, make_project, make_task,
    ):
        emp = make_employee(company_admin)
        project = make_project(company_admin)
        make_task(company_admin, project["id"], assignee_ids=[emp["id"]])
        res = client.put(
            f"/api/projects/{project['id']}/statuses",
            json={"statuses": ["A"]}, headers=emp["headers"],
        )
        assert res.status_code == 403


# ═══════════════════════════════════════════════════════════════
# BLOCK 3: Backlog
# ═══════════════════════════════════════════════════════════════

class TestBacklog:
    def test_backlog_lists_tasks_without_sprint(
        self, client, company_admin, make_project, make_task, make_sprint,
    ):
        project = make_project(company_admin)
        sprint = make_sprint(company_admin, project["id"])
        loose = make_task(company_admin, project["id"], title="Loose")
        make_task(company_admin, project["id"], title="Planned", sprint_id=sprint["id"])

        res = client.get(f"/api/projects/{project['id']}/backlog", headers=company_admin["headers"])
        assert res.status_code == 200
        data = res.get_json()
        assert data["total"] == 1
        assert data["items"][0]["id"] == loose["id"]


# ═══════════════════════════════════════════════════════════════
# BLOCK 4: Attachments
# ═══════════════════════════════════════════════════════════════

def _upload(client, project_id, headers, content=b"hello world", name="notes.txt",
            mimetype="text/plain", description="Kickoff notes"):
    return client.post(
        f"/api/projects/{project_id}/attachments",
        data={"file": (io.BytesIO(content), name, mimetype), "description": description},
        content_type="multipart/form-data",
        headers=headers,
    )


class TestProjectAttachments:
    def test_upload_list_download_delete(self, app, client, company_admin, make_project):
        project = make_project(company_admin)
        res = _upload(client, project["id"], company_admin["headers"])
        assert res.status_code == 201
        meta = res.get_json()
        assert meta["filename"] == "notes.txt"
        assert meta["size"] == 11
        assert meta["formatted_size"] == "11 B"
        assert meta["description"] == "Kickoff notes"
        assert meta["url"].endswith(meta["stored_filename"])

        path = os.path.join(app.config["UPLOAD_FOLDER"], "projects", meta["stored_filename"])
        assert os.path.isfile(path)

        res = client.get(f"/api/projects/{project['id']}/attachments", headers=company_admin["headers"])
        assert res.get_json()["total"] == 1

        res = client.get(meta["url"], headers=company_admin["headers"])
        assert res.status_code == 200
        assert res.data == b"hello world"
        assert "notes.txt" in res.headers["Content-Disposition"]

        res = client.delete(meta["url"], headers=company_admin["headers"])
        assert res.status_code == 200
        assert not os.path.exists(path)
        assert ProjectAttachment.query.count() == 0

    def test_missing_file(self, client, company_admin, make_project):
        project = make_project(company_admin)
        res = client.post(
            f"/api/projects/{project['id']}/attachments",
            data={"description": "nothing"},
            content_type="multipart/form-data",
            headers=company_admin["headers"],
        )
        assert res.status_code == 400

    def test_disallowed_mime_type(self, client, company_admin, make_project):
        project = make_project(company_admin)
        res = _upload(
            client, project["id"], company_admin["headers"],
            name="run.sh", mimetype="application/x-sh",
        )
        assert res.status_code == 400
        assert ProjectAttachment.query.count() == 0

    def test_oversized_file_rejected(self, app, client, company_admin, make_project, monkeypatch):
        monkeypatch.setitem(app.config, "MAX_ATTACHMENT_BYTES", 8)
        project = make_project(company_admin)
        res = _upload(client, project["id"], company_admin["headers"])
        assert res.status_code == 400
        assert res.get_json()["details"]["file"] == "too large"
        assert ProjectAttachment.query.count() == 0

    def test_empty_file_rejected(self, client, company_admin, make_project):
        project = make_project(company_admin)
        res = _upload(client, project["id"], company_admin["headers"], content=b"")
        assert res.status_code == 400

    def test_download_unknown_file(self, client, company_admin, make_project):
        project = make_project(company_admin)
        res = client.get(
            f"/api/projects/{project['id']}/attachments/nope.txt",
            headers=company_admin["headers"],
        )
        assert res.status_code == 404

    def test_member_can_download_but_not_upload(
        self, client, company_admin, make_employee, make_project, make_task,
    ):
        emp = make_employee(company_admin)
        project = make_project(company_admin)
        make_task(company_admin, project["id"], assignee_ids=[emp["id"]])
        meta = _upload(client, project["id"], company_admin["headers"]).get_json()

        res = client.get(meta["url"], headers=emp["headers"])
        assert res.status_code == 200
        res = _upload(client, project["id"], emp["headers"])
        assert res.status_code == 403
        res = client.delete(meta["url"], headers=emp["headers"])
        assert res.status_code == 403
