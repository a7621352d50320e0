"""
Integration tests for the score portal API endpoints.

Tests the full request/response cycle against the in-memory repository.
"""

import pytest
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from app.config.settings import Settings, get_settings
from app.infrastructure.db.dependencies import get_score_repository
from app.infrastructure.db.repositories import IScoreRepository
from app.infrastructure.exceptions import StorageError


RESULTS_CSV = (
    "student_id,name,section_a,section_b,section_c,section_d,section_ad,section_bc,total_score\n"
    "S001,Sato,70,22,23,72,142,45,187\n"
    "S002,Suzuki,60,20,20,60,120,40,187\n"
    "S003,Tanaka,55,21,21,55,110,42,152\n"
)


def import_exam(client, headers, test_name="Mock 1", test_date="2026-05-10", csv=RESULTS_CSV):
    return client.post(
        "/api/admin/tests/import",
        json={"csv_content": csv, "test_name": test_name, "test_date": test_date},
        headers=headers,
    )


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, client: TestClient):
        response = client.get("/")
        assert response.status_code == 200
        assert "message" in response.json()

    def test_health_endpoint(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAdminAuth:
    """Admin routes are guarded by X-Admin-Key."""

    def test_missing_key_rejected(self, client: TestClient):
        response = client.post("/api/admin/students/import", json={"csv_content": ""})
        assert response.status_code == 403

    def test_wrong_key_rejected(self, client: TestClient):
        response = import_exam(client, {"X-Admin-Key": "wrong"})
        assert response.status_code == 403

    def test_unconfigured_key_is_503(self, app, client: TestClient, admin_headers):
        app.dependency_overrides[get_settings] = lambda: Settings(_env_file=None)

        response = import_exam(client, admin_headers)

        assert response.status_code == 503


class TestAdminImport:

    def test_import_is_idempotent(self, client: TestClient, admin_headers):
        first = import_exam(client, admin_headers)
        second = import_exam(client, admin_headers)

        assert first.status_code == 200
        assert first.json()["inserted_count"] == 3
        assert second.json()["inserted_count"] == 0
        assert len(second.json()["skipped"]) == 3

    def test_row_errors_reported(self, client: TestClient, admin_headers):
        csv = RESULTS_CSV + "S004\n,NoId,1,1,1,1,2,2,4\n"

        data = import_exam(client, admin_headers, csv=csv).json()

        assert data["inserted_count"] == 3
        assert data["row_errors"] == [
            "Row 5: too few columns (1)",
            "Row 6: missing student id",
        ]

    def test_import_requires_date(self, client: TestClient, admin_headers):
        response = client.post(
            "/api/admin/tests/import",
            json={"csv_content": RESULTS_CSV, "test_name": "Mock 1"},
            headers=admin_headers,
        )
        assert response.status_code == 422

    def test_roster_import(self, client: TestClient, admin_headers, score_repo):
        response = client.post(
            "/api/admin/students/import",
            json={"csv_content": "NAME,ID,PASS\nSato Taro,S001,pw1\nbad-row\n"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json() == {
            "inserted_or_updated_count": 1,
            "row_errors": ["Row 3: too few columns (1)"],
        }
        assert score_repo.students["S001"].display_name == "Sato Taro"

    def test_add_score_then_conflict(self, client: TestClient, admin_headers):
        payload = {
            "student_external_id": "S010",
            "test_name": "Mock 1",
            "test_date": "2026-05-10",
            "section_ad": 132,
            "section_bc": 44,
            "total_score": 176,
        }

        created = client.post("/api/admin/tests/scores", json=payload, headers=admin_headers)
        duplicate = client.post("/api/admin/tests/scores", json=payload, headers=admin_headers)

        assert created.status_code == 201
        assert created.json()["test_date"] == "2026-05-10"
        assert duplicate.status_code == 409
        assert duplicate.json()["error"] == "DuplicateRecordError"

    def test_add_score_rejects_negative(self, client: TestClient, admin_headers):
        response = client.post(
            "/api/admin/tests/scores",
            json={
                "student_external_id": "S010",
                "test_name": "Mock 1",
                "test_date": "2026-05-10",
                "total_score": -1,
            },
            headers=admin_headers,
        )
        assert response.status_code == 422

    def test_delete_exam(self, client: TestClient, admin_headers):
        import_exam(client, admin_headers)

        response = client.delete(
            "/api/admin/tests",
            params={"test_name": "Mock 1", "test_date": "2026-05-10"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["deleted_count"] == 3
        assert client.get("/api/tests").json()["total"] == 0


class TestExamEndpoints:

    def test_list_tests(self, client: TestClient, admin_headers):
        import_exam(client, admin_headers)
        import_exam(client, admin_headers, test_name="Mock 2", test_date="2026-06-14")

        data = client.get("/api/tests").json()

        assert data["total"] == 2
        assert data["tests"][0] == {
            "test_name": "Mock 2",
            "test_date": "2026-06-14",
            "participant_count": 3,
        }

    def test_rankings_with_tie(self, client: TestClient, admin_headers):
        import_exam(client, admin_headers)

        data = client.get(
            "/api/tests/rankings",
            params={"test_name": "Mock 1", "test_date": "2026-05-10"},
        ).json()

        assert [r["rank"] for r in data["rankings"]] == [1, 1, 3]
        assert data["rankings"][0]["passed"] is True
        assert data["rankings"][1]["passed"] is False

    def test_statistics(self, client: TestClient, admin_headers):
        import_exam(client, admin_headers)

        data = client.get(
            "/api/tests/statistics",
            params={"test_name": "Mock 1", "test_date": "2026-05-10"},
        ).json()

        assert data["participant_count"] == 3
        assert data["avg_total_score"] == pytest.approx(175.33)

    def test_statistics_for_empty_exam(self, client: TestClient):
        data = client.get(
            "/api/tests/statistics",
            params={"test_name": "Nope", "test_date": "2026-05-10"},
        ).json()

        assert data["participant_count"] == 0
        assert data["avg_total_score"] == 0

    def test_aggregate_rankings(self, client: TestClient, admin_headers):
        import_exam(client, admin_headers)

        data = client.get("/api/rankings/aggregate").json()

        assert data["total"] == 3
        assert [r["student_external_id"] for r in data["rankings"]] == ["S001", "S002", "S003"]

    def test_storage_error_is_503(self, app, client: TestClient):
        repo = AsyncMock(spec=IScoreRepository)
        repo.list_tests.side_effect = StorageError("Database select failed", operation="select")
        app.dependency_overrides[get_score_repository] = lambda: repo

        response = client.get("/api/tests")

        assert response.status_code == 503
        assert response.json()["details"]["operation"] == "select"


class TestStudentEndpoints:

    @pytest.fixture
    def seeded(self, client: TestClient, admin_headers):
        import_exam(
            client, admin_headers, test_date="2026-04-12",
            csv="student_id,section_ad,section_bc,total_score\nS001,110,35,145\nS002,120,40,170\n",
        )
        import_exam(
            client, admin_headers, test_name="Mock 2", test_date="2026-05-10",
            csv="student_id,section_ad,section_bc,total_score\nS001,125,40,160\nS002,120,40,150\n",
        )
        import_exam(
            client, admin_headers, test_name="Mock 3", test_date="2026-06-14",
            csv="student_id,section_ad,section_bc,total_score\nS001,140,48,190\nS002,120,40,150\n",
        )
        return client

    def test_scores_report(self, seeded):
        data = seeded.get("/api/students/S001/scores").json()

        assert [e["test_name"] for e in data["exams"]] == ["Mock 3", "Mock 2", "Mock 1"]
        assert data["exams"][0]["changes"]["total_score"] == 30
        assert data["exams"][0]["rank"] == 1

    def test_trend(self, seeded):
        data = seeded.get("/api/students/S001/trend").json()

        assert data["trend"] == "up"
        assert data["delta"] == 30

    def test_prediction(self, seeded):
        data = seeded.get("/api/students/S001/prediction").json()

        assert 0 <= data["graduation_probability"] <= 1
        assert data["features"]["pass_rate"] == pytest.approx(0.3333, abs=1e-4)
        assert data["metadata"]["data_points"] == 3

    def test_unknown_student_is_404(self, client: TestClient):
        response = client.get("/api/students/S404/scores")

        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundError"

    @pytest.mark.parametrize("path", ["trend", "prediction"])
    def test_unknown_student_is_404_everywhere(self, client: TestClient, path):
        response = client.get(f"/api/students/S404/{path}")

        assert response.status_code == 404


class TestPredictionEndpoint:

    def test_empty_history(self, client: TestClient):
        data = client.post("/api/predictions", json={"history": []}).json()

        assert data["graduation_probability"] == 0.5
        assert data["confidence"] == 0.1
        assert data["factors"]["negative"] == ["insufficient data"]
        assert data["metadata"]["model_version"] == "1.0.0-rule-based"

    def test_posted_history(self, client: TestClient):
        history = [
            {"total_score": 190, "section_ad": 140, "section_bc": 48, "rank": 5, "avg_total_score": 150},
            {"total_score": 160, "section_ad": 125, "section_bc": 40, "rank": 15, "avg_total_score": 150},
            {"total_score": 145, "section_ad": 110, "section_bc": 35, "rank": 25, "avg_total_score": 150},
        ]

        data = client.post("/api/predictions", json={"history": history}).json()

        assert data["graduation_probability"] == pytest.approx(0.95)
        assert data["confidence"] == pytest.approx(0.6)
        assert data["recommendations"] == ["consolidate fundamentals"]

    def test_rank_must_be_positive(self, client: TestClient):
        response = client.post("/api/predictions", json={"history": [
            {"total_score": 150, "section_ad": 130, "section_bc": 44, "rank": 0},
        ]})
        assert response.status_code == 422
