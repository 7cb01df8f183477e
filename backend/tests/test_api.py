"""HTTP behaviour: routing, auth, status codes and reason strings."""

from datetime import datetime, timedelta, timezone

import pytest

from training_portal.schemas.auth import UserResponse


API = "/api/v1"


def answer_payload(module, correct=None):
    questions = module.quiz.active_questions
    correct = len(questions) if correct is None else correct
    return {
        "moduleId": module.id,
        "answers": [
            {"questionId": question.id, "optionKey": 0 if index < correct else 1}
            for index, question in enumerate(questions)
        ],
    }


class TestAuth:

    def test_register_login_me(self, client):
        response = client.post(f"{API}/auth/register", json={
            "email": "new.hire@example.com",
            "name": "New Hire",
            "password": "correct horse",
        })
        assert response.status_code == 201
        assert response.json()["role"] == "EMPLOYEE"

        response = client.post(f"{API}/auth/login", data={
            "username": "new.hire@example.com",
            "password": "correct horse",
        })
        assert response.status_code == 200
        token = response.json()["access_token"]

        response = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["email"] == "new.hire@example.com"
        assert response.json()["last_login_at"] is not None

    def test_duplicate_registration(self, client, employee):
        response = client.post(f"{API}/auth/register", json={
            "email": employee.email,
            "name": "Someone",
            "password": "long enough",
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "Email already registered"

    def test_wrong_password(self, client, employee):
        response = client.post(f"{API}/auth/login", data={"username": employee.email, "password": "nope"})
        assert response.status_code == 401

    def test_missing_token(self, client, db):
        assert client.get(f"{API}/progress").status_code == 401

    def test_disabled_account(self, client, db, employee, employee_headers):
        employee.is_disabled = True
        db.commit()

        response = client.get(f"{API}/auth/me", headers=employee_headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "Account disabled"

    def test_locked_account(self, client, db, employee, employee_headers):
        employee.locked_until = datetime.now(timezone.utc) + timedelta(minutes=15)
        db.commit()

        response = client.get(f"{API}/auth/me", headers=employee_headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "Account temporarily locked"

    def test_employee_cannot_use_admin_routes(self, client, employee_headers):
        response = client.get(f"{API}/admin/main-modules/", headers=employee_headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "Admin access required"

    def test_user_response_reads_orm_attributes(self, employee):
        payload = UserResponse.model_validate(employee)
        assert payload.email == employee.email
        assert payload.role == "EMPLOYEE"
        assert payload.is_disabled is False


class TestProgressApi:

    def test_grouped_progress_tree(self, client, employee_headers, make_main_module, make_module):
        main_module = make_main_module(1, title="Onboarding")
        first = make_module(1, main_module=main_module, position=1)
        make_module(2, main_module=main_module, position=2)

        response = client.get(f"{API}/progress", headers=employee_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["mode"] == "grouped"
        node = body["mainModules"][0]
        assert node["title"] == "Onboarding"
        assert node["nextOpenSubModuleId"] == first.id
        assert node["dashboardAverage"] is None
        assert node["averageForCertificate"] == 0
        assert [item["status"] for item in node["subModules"]] == ["PENDING", "LOCKED"]

    def test_legacy_progress(self, client, employee_headers, make_module):
        make_module(1)
        body = client.get(f"{API}/progress", headers=employee_headers).json()
        assert body["mode"] == "legacy"
        assert body["mainModules"] == []
        assert body["modules"][0]["status"] == "PENDING"

    def test_main_module_progress_not_found(self, client, employee_headers, make_main_module):
        make_main_module(1)
        response = client.get(f"{API}/main-modules/999/progress", headers=employee_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Main module not found"

    def test_access_and_gate_checks(self, client, employee_headers, make_module):
        make_module(1)
        second = make_module(2)

        access = client.get(f"{API}/modules/{second.id}/access", headers=employee_headers).json()
        assert access == {"moduleId": second.id, "accessible": False}

        gate = client.get(f"{API}/modules/{second.id}/can-attempt", headers=employee_headers).json()
        assert gate == {"allowed": False, "reason": "Module is locked"}


class TestQuizApi:

    def test_delivery_hides_answer_key(self, client, employee_headers, make_module):
        module = make_module(1, questions=3)

        response = client.get(f"{API}/quiz/{module.id}", headers=employee_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["passScore"] == 70
        assert body["attemptsRemaining"] == 2
        assert len(body["questions"]) == 3
        for question in body["questions"]:
            assert "correctIndex" not in question
            assert sorted(option["key"] for option in question["options"]) == [0, 1, 2, 3]

    def test_delivery_without_questions(self, client, employee_headers, make_module):
        module = make_module(1, questions=0)
        response = client.get(f"{API}/quiz/{module.id}", headers=employee_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "No active questions"

    def test_delivery_of_locked_module(self, client, employee_headers, make_module):
        make_module(1)
        second = make_module(2)
        response = client.get(f"{API}/quiz/{second.id}", headers=employee_headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "Module is locked"

    def test_submit_until_out_of_attempts(self, client, employee_headers, make_module):
        module = make_module(1, questions=4)

        response = client.post(f"{API}/attempt", json=answer_payload(module, correct=1), headers=employee_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["score"] == 25
        assert body["passed"] is False
        assert body["attemptNo"] == 1
        assert body["attemptsRemaining"] == 1

        response = client.post(f"{API}/attempt", json=answer_payload(module, correct=2), headers=employee_headers)
        assert response.json()["attemptNo"] == 2

        response = client.post(f"{API}/attempt", json=answer_payload(module), headers=employee_headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "No attempts left"

    def test_submit_unknown_module(self, client, employee_headers, make_module):
        make_module(1)
        response = client.post(f"{API}/attempt", json={"moduleId": 999, "answers": []}, headers=employee_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Module not found"

    def test_submit_without_questions(self, client, employee_headers, make_module):
        module = make_module(1, questions=0)
        response = client.post(f"{API}/attempt", json={"moduleId": module.id, "answers": []}, headers=employee_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "No active questions"


class TestCertificateApi:

    def test_full_certificate_lifecycle(self, client, employee, employee_headers, admin_headers, make_main_module, make_module):
        main_module = make_main_module(1)
        module = make_module(1, main_module=main_module)

        status = client.get(f"{API}/certificate", headers=employee_headers).json()
        assert status == {"eligible": False, "url": None, "totalScore": None, "issuedAt": None}

        response = client.post(f"{API}/certificate", headers=employee_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Not eligible"

        assert client.post(f"{API}/attempt", json=answer_payload(module), headers=employee_headers).status_code == 200

        response = client.post(f"{API}/main-modules/{main_module.id}/certificate", headers=employee_headers)
        assert response.status_code == 200
        assert response.json()["url"] == f"{API}/main-modules/{main_module.id}/certificate/download"
        assert response.json()["totalScore"] == 100

        response = client.get(f"{API}/certificate/download", headers=employee_headers)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

        response = client.post(f"{API}/admin/users/reset-attempts", json={
            "userId": employee.id,
            "moduleId": module.id,
        }, headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {"deletedAttempts": 1, "deletedCertificates": 2}

        response = client.get(f"{API}/certificate/download", headers=employee_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Certificate not found"

    def test_admin_reissue_requires_eligibility(self, client, employee, admin_headers, make_module):
        make_module(1)
        response = client.post(f"{API}/admin/certificates/reissue", json={"userId": employee.id}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Not eligible"


class TestAdminApi:

    def test_curriculum_setup(self, client, admin_headers):
        response = client.post(f"{API}/admin/main-modules/", json={
            "title": "Safety",
            "videoId": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        }, headers=admin_headers)
        assert response.status_code == 201
        main_module = response.json()
        assert main_module["orderIndex"] == 1
        assert main_module["videoId"] == "dQw4w9WgXcQ"

        module_ids = []
        for title in ("Helmets", "Gloves"):
            response = client.post(f"{API}/admin/modules/", json={"title": title, "videoId": "dQw4w9WgXcQ"}, headers=admin_headers)
            assert response.status_code == 201
            module_ids.append(response.json()["id"])

        response = client.put(
            f"{API}/admin/main-modules/{main_module['id']}/assign",
            json={"moduleIds": list(reversed(module_ids))},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assigned = response.json()["assigned"]
        assert [item["title"] for item in assigned] == ["Gloves", "Helmets"]
        assert [item["orderWithinMain"] for item in assigned] == [1, 2]

        response = client.put(f"{API}/admin/quizzes/", json={"moduleId": module_ids[0], "passScore": 80}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["passScore"] == 80

        response = client.post(f"{API}/admin/questions/", json={
            "moduleId": module_ids[0],
            "text": "Which one?",
            "options": ["this", "that"],
            "correctIndex": 1,
        }, headers=admin_headers)
        assert response.status_code == 201

        response = client.get(f"{API}/admin/questions/", params={"moduleId": module_ids[0]}, headers=admin_headers)
        assert [question["text"] for question in response.json()] == ["Which one?"]

        logs = client.get(f"{API}/admin/logs", headers=admin_headers).json()
        assert logs["total"] == 6

    def test_invalid_answer_key(self, client, admin_headers, make_module):
        module = make_module(1, questions=0)
        response = client.post(f"{API}/admin/questions/", json={
            "moduleId": module.id,
            "text": "Which one?",
            "options": ["this", "that"],
            "correctIndex": 5,
        }, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "correctIndex out of range"

    def test_csv_import(self, client, admin_headers, make_module):
        module = make_module(1, questions=0)
        content = (
            "question_type,question_text,option_a,option_b,option_c,option_d,correct_answer,module_id\n"
            f"TRUE_FALSE,Statement,,,,,TRUE,{module.id}\n"
            f"MCQ_2,Bad answer,yes,no,,,Z,{module.id}\n"
        ).encode("utf-8")

        response = client.post(
            f"{API}/admin/questions/import",
            files={"file": ("bank.csv", content, "text/csv")},
            headers=admin_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["imported"] == 1
        assert body["failed"] == 1
        assert body["errors"][0].startswith("Row 3:")

    def test_empty_upload(self, client, admin_headers):
        response = client.post(
            f"{API}/admin/questions/import",
            files={"file": ("empty.csv", b"", "text/csv")},
            headers=admin_headers,
        )
        assert response.status_code == 400

    @pytest.mark.parametrize("payload", [
        {"moduleId": 1, "all": True},
        {"moduleId": 1, "mainModuleId": 1},
        {},
    ])
    def test_reset_needs_exactly_one_scope(self, client, employee, admin_headers, payload):
        response = client.post(
            f"{API}/admin/users/reset-attempts",
            json={"userId": employee.id, **payload},
            headers=admin_headers,
        )
        assert response.status_code == 422

    def test_reports(self, client, employee, employee_headers, admin_headers, make_module):
        module = make_module(1)
        client.post(f"{API}/attempt", json=answer_payload(module), headers=employee_headers)

        response = client.get(f"{API}/admin/reports/", params={"type": "attempts"}, headers=admin_headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.strip().splitlines()
        assert lines[0].startswith('"Attempt ID","User Email"')
        assert f'"{employee.email}"' in lines[1]

        response = client.get(f"{API}/admin/reports/", params={"type": "bogus"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Unknown report"

    def test_users_and_dashboard(self, client, employee, admin, admin_headers, record_attempt, make_module):
        module = make_module(1)
        record_attempt(employee, module, score=100)

        users = client.get(f"{API}/admin/users/", headers=admin_headers).json()
        counts = {user["email"]: user["attemptCount"] for user in users}
        assert counts == {admin.email: 0, employee.email: 1}

        stats = client.get(f"{API}/admin/dashboard", headers=admin_headers).json()["statistics"]
        assert stats["attempts"]["total"] == 1
        assert stats["content"]["modules"] == 1


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "database": True}
