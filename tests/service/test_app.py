"""Tests for the FastAPI service mode."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from promptforge.config import ForgeConfig
from promptforge.service import create_app
from promptforge.stores.presets import PRESETS
from promptforge.workbench import Workbench


@pytest.fixture
def workbench(tmp_path: Path, memory_backend, clock, id_factory) -> Workbench:
    return Workbench(
        ForgeConfig(root=tmp_path),
        backend=memory_backend,
        clock=clock,
        id_factory=id_factory,
    )


@pytest.fixture
def client(workbench: Workbench) -> TestClient:
    return TestClient(create_app(lambda: workbench))


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_forge_endpoint_records_history(client: TestClient, workbench: Workbench) -> None:
    response = client.post(
        "/forge",
        json={
            "text": "Review {file} for leaks",
            "target": "agentic",
            "variables": {"file": "db.py"},
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["target"] == "Agentic IDE (Cursor/Windsurf/Copilot)"
    assert payload["resolved_input"] == "Review db.py for leaks"
    assert payload["detected_variables"] == ["file"]
    assert payload["unfilled_variables"] == []
    assert payload["quality_checks"]
    assert len(workbench.recent_history()) == 1


def test_forge_endpoint_rejects_blank_text(client: TestClient) -> None:
    response = client.post("/forge", json={"text": "   "})

    assert response.status_code == 400
    assert response.json()["detail"] == "Enter rough input before forging."


def test_forge_endpoint_rejects_unknown_target(client: TestClient) -> None:
    response = client.post("/forge", json={"text": "hello", "target": "fax"})

    assert response.status_code == 400


def test_optimize_endpoint(client: TestClient) -> None:
    response = client.post(
        "/optimize",
        json={
            "text": "could you make the login page better",
            "scenario": "ide",
            "max_tokens": 900,
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["optimized_text"]
    assert payload["max_tokens"] == 900
    assert payload["advisory"] is None


def test_diff_endpoint(client: TestClient) -> None:
    response = client.post("/diff", json={"old": "a\nb", "new": "a\nc"})

    assert response.status_code == 200
    assert response.json()["lines"] == [
        {"kind": "unchanged", "text": "a"},
        {"kind": "removed", "text": "b"},
        {"kind": "added", "text": "c"},
    ]


def test_library_create_version_and_rollback(client: TestClient) -> None:
    created = client.post("/library/prompts", json={"title": "Greeting", "body": "Hi"})
    assert created.status_code == 200
    prompt = created.json()
    assert prompt["category_name"] == "Uncategorized"
    original_version = prompt["versions"][0]["id"]

    updated = client.post(
        f"/library/prompts/{prompt['id']}/versions", json={"content": "Hello there"}
    )
    assert updated.json()["body"] == "Hello there"

    rolled = client.post(
        f"/library/prompts/{prompt['id']}/rollback", json={"version_id": original_version}
    )
    assert rolled.status_code == 200
    restored = rolled.json()
    assert restored["body"] == "Hi"
    assert [version["content"] for version in restored["versions"]] == ["Hi", "Hello there", "Hi"]

    listed = client.get("/library/prompts", params={"query": "greet"})
    assert [item["id"] for item in listed.json()] == [prompt["id"]]


def test_library_unknown_prompt_is_404(client: TestClient) -> None:
    response = client.post("/library/prompts/missing/versions", json={"content": "x"})

    assert response.status_code == 404
    assert response.json()["detail"] == "Prompt not found: missing"


def test_library_blank_title_is_400(client: TestClient) -> None:
    response = client.post("/library/prompts", json={"title": " ", "body": "text"})

    assert response.status_code == 400


def test_templates_endpoint_lists_presets(client: TestClient) -> None:
    response = client.get("/templates", params={"sort": "name"})

    assert response.status_code == 200
    names = [item["name"] for item in response.json()]
    assert len(names) == len(PRESETS)
    assert names == sorted(names, key=str.casefold)
