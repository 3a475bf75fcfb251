"""
Sprint API tests — lifecycle, issue membership, delete → backlog.
"""

from proflow.models import db
from proflow.models.sprint import Sprint
from proflow.models.task import Task


class TestCreateSprint:
    def test_create(self, client, company_admin, make_project, make_sprint):
        project = make_project(company_admin)
        sprint = make_sprint(company_admin, project["id"])
        assert sprint["status"] == "Created"
        assert sprint["duration"] == 2
        assert sprint["issues"] == []
        assert sprint["start_date"] == "2026-01-05"

    def test_required_fields(self, client, company_admin, make_project):
        project = make_project(company_admin)
        res = client.post(
            "/api/sprints", json={"project_id": project["id"]}, headers=company_admin["headers"],
        )
        assert res.status_code == 400
        details = res.get_json()["details"]
        assert {"title", "duration", "start_date", "end_date"} <= set(details)

    def test_duration_at_least_one(self, client, company_admin, make_project):
        project = make_project(company_admin)
        res = client.post(
            "/api/sprints",
            json={"title": "S", "duration": 0, "start_date": "2026-01-01",
                  "end_date": "2026-01-02", "project_id": project["id"]},
            headers=company_admin["headers"],
        )
        assert res.status_code == 400

    def test_fractional_duration_rejected(self, client, company_admin, make_project):
        project = make_project(company_admin)
        res = client.post(
            "/api/sprints",
            json={"title": "S", "duration": 1.9, "start_date": "2026-01-01",
                  "end_date": "2026-01-15", "project_id": project["id"]},
            headers=company_admin["headers"],
        )
        assert res.status_code == 400
        assert res.get_json()["details"]["duration"] == "invalid"
        assert Sprint.query.count() == 0

    def test_whole_float_duration_accepted(self, client, company_admin, make_project, make_sprint):
        project = make_project(company_admin)
        sprint = make_sprint(company_admin, project["id"], duration=2.0)
        assert sprint["duration"] == 2

    def test_end_before_start(self, client, company_admin, make_project):
        project = make_project(company_admin)
        res = client.post(
            "/api/sprints",
            json={"title": "S", "duration": 1, "start_date": "2026-01-10",
                  "end_date": "2026-01-02", "project_id": project["id"]},
            headers=company_admin["headers"],
        )
        assert res.status_code == 400

    def test_employee_cannot_create(self, client, company_admin, make_employee, make_project):
        emp = make_employee(company_admin)
        project = make_project(company_admin)
        res = client.post(
            "/api/sprints",
            json={"title": "S", "duration": 1, "start_date": "2026-01-01",
                  "end_date": "2026-01-08", "project_id": project["id"]},
            headers=emp["headers"],
        )
        assert res.status_code == 403


class TestSprintLifecycle:
    def test_cannot_skip_started(self, client, company_admin, make_project, make_sprint):
        project = make_project(company_admin)
        sprint = make_sprint(company_admin, project["id"])
        url = f"/api/sprints/{sprint['id']}"
        h = company_admin["headers"]

        res = client.put(url, json={"status": "Completed"}, headers=h)
        assert res.status_code == 400
        assert client.get(url, headers=h).get_json()["status"] == "Created"

        res = client.put(url, json={"status": "Started"}, headers=h)
        assert res.status_code == 200
        assert res.get_json()["status"] == "Started"
        res = client.put(url, json={"status": "Completed"}, headers=h)
        assert res.status_code == 200
        assert res.get_json()["status"] == "Completed"

    def test_no_backwards_transition(self, client, company_admin, make_project, make_sprint):
        project = make_project(company_admin)
        sprint = make_sprint(company_admin, project["id"])
        url = f"/api/sprints/{sprint['id']}"
        h = company_admin["headers"]
        client.put(url, json={"status": "Started"}, headers=h)
        res = client.put(url, json={"status": "Created"}, headers=h)
        assert res.status_code == 400

    def test_same_status_is_noop(self, client, company_admin, make_project, make_sprint):
        project = make_project(company_admin)
        sprint = make_sprint(company_admin, project["id"])
        res = client.put(
            f"/api/sprints/{sprint['id']}", json={"status": "Created", "title": "Renamed"},
            headers=company_admin["headers"],
        )
        assert res.status_code == 200
        assert res.get_json()["title"] == "Renamed"

    def test_unknown_status(self, client, company_admin, make_project, make_sprint):
        project = make_project(company_admin)
        sprint = make_sprint(company_admin, project["id"])
        res = client.put(
            f"/api/sprints/{sprint['id']}", json={"status": "Paused"},
            headers=company_admin["headers"],
        )
        assert res.status_code == 400

    def test_completed_sprint_rejects_tasks(
        self, client, company_admin, make_project, make_sprint, make_task,
    ):
        project = make_project(company_admin)
        sprint = make_sprint(company_admin, project["id"])
        task = make_task(company_admin, project["id"])
        h = company_admin["headers"]
        client.put(f"/api/sprints/{sprint['id']}", json={"status": "Started"}, headers=h)
        client.put(f"/api/sprints/{sprint['id']}", json={"status": "Completed"}, headers=h)

        res = client.post(
            "/api/sprints/add-issue", json={"sprint_id": sprint["id"], "task_id": task["id"]},
            headers=h,
        )
        assert res.status_code == 400
        res = client.post(
            "/api/tasks",
            json={"project_id": project["id"], "title": "Late", "sprint_id": sprint["id"]},
            headers=h,
        )
        assert res.status_code == 400


class TestSprintIssues:
    def test_add_then_remove_round_trip(
        self, client, company_admin, make_project, make_sprint, make_task,
    ):
        project = make_project(company_admin)
        sprint = make_sprint(company_admin, project["id"])
        task = make_task(company_admin, project["id"])
        h = company_admin["headers"]
        pair = {"sprint_id": sprint["id"], "task_id": task["id"]}

        res = client.post("/api/sprints/add-issue", json=pair, headers=h)
        assert res.status_code == 200
        assert [t["id"] for t in res.get_json()["issues"]] == [task["id"]]
        assert client.get(f"/api/tasks/{task['id']}", headers=h).get_json()["sprint_id"] == sprint["id"]

        res = client.post("/api/sprints/remove-issue", json=pair, headers=h)
        assert res.status_code == 200
        assert res.get_json()["issues"] == []
        assert client.get(f"/api/tasks/{task['id']}", headers=h).get_json()["sprint_id"] is None

    def test_add_is_idempotent(self, client, company_admin, make_project, make_sprint, make_task):
        project = make_project(company_admin)
        sprint = make_sprint(company_admin, project["id"])
        task = make_task(company_admin, project["id"])
        pair = {"sprint_id": sprint["id"], "task_id": task["id"]}
        client.post("/api/sprints/add-issue", json=pair, headers=company_admin["headers"])
        res = client.post("/api/sprints/add-issue", json=pair, headers=company_admin["headers"])
        assert res.status_code == 200
        assert len(res.get_json()["issues"]) == 1

    def test_moving_task_between_sprints(
        self, client, company_admin, make_project, make_sprint, make_task,
    ):
        project = make_project(company_admin)
        s1 = make_sprint(company_admin, project["id"], title="S1")
        s2 = make_sprint(company_admin, project["id"], title="S2")
        task = make_task(company_admin, project["id"], sprint_id=s1["id"])
        h = company_admin["headers"]

        client.post("/api/sprints/add-issue", json={"sprint_id": s2["id"], "task_id": task["id"]}, headers=h)
        assert client.get(f"/api/sprints/{s1['id']}", headers=h).get_json()["issues"] == []

        # Removing from a sprint the task is not in leaves it where it is
        res = client.post(
            "/api/sprints/remove-issue", json={"sprint_id": s1["id"], "task_id": task["id"]}, headers=h,
        )
        assert res.status_code == 200
        assert db.session.get(Task, task["id"]).sprint_id == s2["id"]

    def test_task_from_other_project(
        self, client, company_admin, make_project, make_sprint, make_task,
    ):
        p1 = make_project(company_admin, name="P1")
        p2 = make_project(company_admin, name="P2")
        sprint = make_sprint(company_admin, p1["id"])
        task = make_task(company_admin, p2["id"])
        res = client.post(
            "/api/sprints/add-issue", json={"sprint_id": sprint["id"], "task_id": task["id"]},
            headers=company_admin["headers"],
        )
        assert res.status_code == 400

    def test_missing_fields(self, client, company_admin):
        res = client.post("/api/sprints/add-issue", json={}, headers=company_admin["headers"])
        assert res.status_code == 400

    def test_assignee_cannot_move_task(
        self, client, company_admin, make_employee, make_project, make_sprint, make_task,
    ):
        emp = make_employee(company_admin)
        project = make_project(company_admin)
        sprint = make_sprint(company_admin, project["id"])
        task = make_task(company_admin, project["id"], assignee_ids=[emp["id"]])
        res = client.post(
            "/api/sprints/add-issue", json={"sprint_id": sprint["id"], "task_id": task["id"]},
            headers=emp["headers"],
        )
        assert res.status_code == 403


class TestSprintReadDelete:
    def test_list_requires_project_id(self, client, company_admin):
        res = client.get("/api/sprints", headers=company_admin["headers"])
        assert res.status_code == 400

    def test_list_by_project(self, client, company_admin, make_project, make_sprint):
        p1 = make_project(company_admin, name="P1")
        p2 = make_project(company_admin, name="P2")
        make_sprint(company_admin, p1["id"], title="Later", start_date="2026-02-01", end_date="2026-02-14")
        make_sprint(company_admin, p1["id"], title="Sooner")
        make_sprint(company_admin, p2["id"])
        res = client.get(f"/api/sprints?project_id={p1['id']}", headers=company_admin["headers"])
        data = res.get_json()
        assert data["total"] == 2
        assert [s["title"] for s in data["items"]] == ["Sooner", "Later"]

    def test_member_reads_sprints(
        self, client, company_admin, make_employee, make_project, make_sprint, make_task,
    ):
        emp = make_employee(company_admin)
        project = make_project(company_admin)
        sprint = make_sprint(company_admin, project["id"])
        make_task(company_admin, project["id"], assignee_ids=[emp["id"]])

        res = client.get(f"/api/sprints?project_id={project['id']}", headers=emp["headers"])
        assert res.status_code == 200
        res = client.get(f"/api/sprints/{sprint['id']}", headers=emp["headers"])
        assert res.status_code == 200
        res = client.put(
            f"/api/sprints/{sprint['id']}", json={"title": "X"}, headers=emp["headers"],
        )
        assert res.status_code == 403

    def test_non_member_cannot_read(self, client, company_admin, make_employee, make_project, make_sprint):
        emp = make_employee(company_admin)
        project = make_project(company_admin)
        sprint = make_sprint(company_admin, project["id"])
        res = client.get(f"/api/sprints/{sprint['id']}", headers=emp["headers"])
        assert res.status_code == 403

    def test_delete_returns_tasks_to_backlog(
        self, client, company_admin, make_project, make_sprint, make_task,
    ):
        project = make_project(company_admin)
        sprint = make_sprint(company_admin, project["id"])
        t1 = make_task(company_admin, project["id"], sprint_id=sprint["id"])
        t2 = make_task(company_admin, project["id"], sprint_id=sprint["id"])

        res = client.delete(f"/api/sprints/{sprint['id']}", headers=company_admin["headers"])
        assert res.status_code == 200
        assert res.get_json()["released_tasks"] == 2
        assert Sprint.query.count() == 0
        assert Task.query.count() == 2

        res = client.get(f"/api/projects/{project['id']}/backlog", headers=company_admin["headers"])
        assert sorted(t["id"] for t in res.get_json()["items"]) == sorted([t1["id"], t2["id"]])
