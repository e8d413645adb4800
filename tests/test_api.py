"""Tests for the prompt preview API."""

import pytest
from fastapi.testclient import TestClient

from srswriter.api.server import create_app


@pytest.fixture
def client(rules_dir):
    """Create a FastAPI test client over the test template tree."""
    return TestClient(create_app(search_dirs=[rules_dir]))


class TestHealth:
    def test_health_reports_master(self, client, rules_dir):
        data = client.get("/api/health").json()
        assert data["status"] == "ok"
        assert data["layout_version"] == "5.0"
        assert data["master_template"] is True
        assert data["search_dirs"] == [str(rules_dir)]

    def test_health_without_master_is_still_ok(self, client, rules_dir):
        (rules_dir / "master.md").unlink()
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["master_template"] is False


class TestAssemble:
    def test_assemble_specialist(self, client, project_dir):
        response = client.post(
            "/api/prompts/assemble",
            json={
                "role": "fr_writer",
                "context": {"userRequirements": "Add login", "projectRoot": str(project_dir)},
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["content"].startswith("You are a functional requirements writer.")
        assert data["role_name"] == "fr_writer"
        assert data["layout_version"] == "5.0"
        assert data["char_count"] == len(data["content"])
        assert len(data["content_hash"]) == 16
        assert data["base_templates"][0] == "base/common-role-definition"
        assert data["validation"]["status"] == "PASS"

    def test_hash_is_stable(self, client):
        body = {"role": "fr_writer", "context": {"userRequirements": "Add login"}}
        first = client.post("/api/prompts/assemble", json=body).json()
        second = client.post("/api/prompts/assemble", json=body).json()
        assert first["content_hash"] == second["content_hash"]

    def test_invalid_context(self, client):
        response = client.post("/api/prompts/assemble", json={"role": "fr_writer", "context": {}})
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_context"

    @pytest.mark.parametrize(
        "extra",
        [
            {"resumeGuidance": "yes"},
            {"structuredContext": "x"},
            {"iterationInfo": {"currentIteration": "abc"}},
        ],
    )
    def test_malformed_context_values(self, client, extra):
        response = client.post(
            "/api/prompts/assemble", json={"role": "fr_writer", "context": {"userInput": "x", **extra}}
        )
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_context"

    @pytest.mark.parametrize("role", ["../../../secret", "content/fr_writer", "..\\fr_writer"])
    def test_path_like_role_rejected(self, client, rules_dir, role):
        (rules_dir.parent / "secret.md").write_text("TOP-SECRET-CONTENT")
        response = client.post("/api/prompts/assemble", json={"role": role, "context": {"userInput": "x"}})
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_role"
        assert "TOP-SECRET-CONTENT" not in response.text

    def test_missing_master(self, client, rules_dir):
        (rules_dir / "master.md").unlink()
        response = client.post(
            "/api/prompts/assemble", json={"role": "fr_writer", "context": {"userInput": "x"}}
        )
        assert response.status_code == 503
        detail = response.json()["detail"]
        assert detail["error"] == "mandatory_template_missing"
        assert detail["key"] == "master"
        assert detail["searched_paths"]


class TestOrchestrator:
    def test_planning_prompt(self, client):
        response = client.post("/api/prompts/orchestrator", json={"user_input": "What is a use case?"})
        assert response.status_code == 200
        data = response.json()
        assert data["caller_category"] == "orchestrator_knowledge_qa"
        assert "Request: What is a use case?" in data["content"]

    def test_missing_orchestrator_template(self, client, rules_dir):
        (rules_dir / "orchestrator.md").unlink()
        response = client.post("/api/prompts/orchestrator", json={"user_input": "Add FR-002"})
        assert response.status_code == 503
        assert response.json()["detail"]["key"] == "orchestrator"


class TestTemplates:
    def test_validate(self, client):
        data = client.get("/api/templates/validate").json()
        assert data["status"] == "PASS"
        assert data["specialists_checked"] == 3
        assert data["missing_templates"] == []

    def test_validate_reports_missing(self, client, rules_dir):
        (rules_dir / "master.md").unlink()
        data = client.get("/api/templates/validate").json()
        assert data["status"] == "FAIL"
        assert data["missing_templates"] == ["master"]

    def test_stats_and_reload(self, client, rules_dir):
        client.post("/api/prompts/assemble", json={"role": "fr_writer", "context": {"userInput": "x"}})
        stats = client.get("/api/templates/stats").json()
        assert stats["cached_count"] > 0
        assert stats["search_dirs"] == [str(rules_dir)]

        assert client.post("/api/templates/reload").json() == {"status": "reloaded"}
        assert client.get("/api/templates/stats").json()["cached_count"] == 0


class TestSpecialists:
    def test_list_all(self, client):
        data = client.get("/api/specialists").json()
        assert data["count"] == 3
        assert [s["id"] for s in data["specialists"]] == ["exporter", "fr_writer", "requirement_syncer"]

    def test_filters(self, client):
        data = client.get("/api/specialists", params={"category": "process", "enabled": "true"}).json()
        assert [s["id"] for s in data["specialists"]] == ["requirement_syncer"]

    def test_bad_category(self, client):
        response = client.get("/api/specialists", params={"category": "editorial"})
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_category"


class TestResults:
    def test_format_results(self, client):
        response = client.post(
            "/api/results/format",
            json={
                "results": [
                    {"toolName": "readMarkdownFile", "success": True, "result": {"output": "ok"}},
                    {"toolName": "listFiles", "success": False, "error": "denied"},
                ]
            },
        )
        data = response.json()
        assert data["summary"] == "1 operation(s) succeeded, 1 failed"
        assert "(1/2 succeeded)" in data["report"]
        assert len(data["details"]) == 2
