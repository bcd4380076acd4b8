"""
Tests for FastAPI application.
"""
import json
import time

import pytest
from fastapi.testclient import TestClient

from fakes import FakeCompletionService, examples_reply
from src.api.dependencies import get_question_analyzer
from src.api.main import app
from src.models.document import DocumentInfo, FileType
from src.models.question import Question, QuestionType


def write_meta(storage_dir, file_id="doc1", total_pages=2):
    file_dir = storage_dir / file_id
    file_dir.mkdir(parents=True, exist_ok=True)
    info = DocumentInfo(id=file_id, name=f"{file_id}.pdf", file_type=FileType.PDF, total_pages=total_pages)
    (file_dir / "meta.json").write_text(info.model_dump_json(), encoding="utf-8")


def write_questions(question_store, file_id="doc1"):
    questions = [
        Question(
            id=f"{file_id}_1_example_0",
            file_id=file_id,
            question_type=QuestionType.EXAMPLE,
            question_text="求导 x^2",
            answer="2x",
            page_number=1,
            has_original_answer=True
        ),
        Question(
            id=f"{file_id}_2_exercise_0",
            file_id=file_id,
            question_type=QuestionType.EXERCISE,
            question_text="求导 x^3",
            answer="3x^2",
            page_number=2
        ),
    ]
    path = question_store.snapshot_path(file_id)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps([q.to_dict() for q in questions], ensure_ascii=False), encoding="utf-8")


@pytest.fixture
def analyzer_parts(make_analyzer):
    completion = FakeCompletionService(
        example_replies={"例1 求导 x^2": examples_reply({"question": "求导 x^2", "answer": "2x"})}
    )
    return make_analyzer({1: "例1 求导 x^2", 2: "习题 求导 x^3"}, completion)


@pytest.fixture
def client(analyzer_parts, tmp_path, monkeypatch):
    """Create test client."""
    monkeypatch.chdir(tmp_path)
    analyzer, _ = analyzer_parts
    app.dependency_overrides[get_question_analyzer] = lambda: analyzer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_root_endpoint(client):
    """Test root endpoint."""
    response = client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert "message" in data
    assert "version" in data
    assert data["status"] == "running"


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data
    assert data["storage_available"] is True
    assert "analysis_model_configured" in data
    assert "X-Process-Time" in response.headers
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_404_endpoint(client):
    """Test non-existent endpoint returns 404."""
    response = client.get("/nonexistent")

    assert response.status_code == 404


class TestAnalysisEndpoints:
    """分析控制接口测试"""

    def test_progress_of_unknown_file_is_idle(self, client):
        response = client.get("/api/v1/analysis/doc1/progress")

        assert response.status_code == 200
        assert response.json()["status"] == "idle"

    def test_start_unknown_file(self, client):
        response = client.post("/api/v1/analysis/missing/start")
        assert response.status_code == 404

    def test_start_runs_in_background(self, client, storage_dir):
        write_meta(storage_dir, total_pages=2)

        response = client.post("/api/v1/analysis/doc1/start")
        assert response.status_code == 202
        assert response.json()["status"] == "analyzing"

        for _ in range(200):
            progress = client.get("/api/v1/analysis/doc1/progress").json()
            if progress["status"] != "analyzing":
                break
            time.sleep(0.02)

        assert progress["status"] == "completed"
        questions = client.get("/api/v1/files/doc1/questions").json()
        assert [q["id"] for q in questions] == ["doc1_1_example_0"]

    def test_start_while_running_conflicts(self, client, storage_dir, sessions):
        write_meta(storage_dir)
        sessions.start("doc1", total_pages=2)

        response = client.post("/api/v1/analysis/doc1/start")
        assert response.status_code == 409

    def test_stop(self, client, sessions):
        sessions.start("doc1", total_pages=2)

        response = client.post("/api/v1/analysis/doc1/stop")

        assert response.status_code == 200
        assert response.json()["status"] == "stopped"
        assert sessions.should_stop("doc1")


class TestQuestionEndpoints:
    """题目接口测试"""

    def test_list_and_filter(self, client, question_store):
        write_questions(question_store)

        all_questions = client.get("/api/v1/files/doc1/questions").json()
        exercises = client.get(
            "/api/v1/files/doc1/questions", params={"question_type": "exercise"}
        ).json()

        assert len(all_questions) == 2
        assert [q["id"] for q in exercises] == ["doc1_2_exercise_0"]

    def test_invalid_filter(self, client):
        response = client.get("/api/v1/files/doc1/questions", params={"question_type": "quiz"})
        assert response.status_code == 422

    def test_get_question(self, client, question_store):
        write_questions(question_store)

        response = client.get("/api/v1/files/doc1/questions/doc1_1_example_0")
        assert response.status_code == 200
        assert response.json()["has_original_answer"] is True

        missing = client.get("/api/v1/files/doc1/questions/doc1_9_example_0")
        assert missing.status_code == 404

    def test_invalid_file_id(self, client):
        response = client.get("/api/v1/files/bad.id/questions/q1")
        assert response.status_code == 404


class TestSystemEndpoints:
    """系统接口测试"""

    def test_knowledge_search(self, client, storage_dir):
        write_meta(storage_dir)
        index = [{
            "id": "doc1_1_0",
            "content": "导数的定义",
            "metadata": {"file_id": "doc1", "page_number": 1, "doc_type": "knowledge"}
        }]
        (storage_dir / "doc1" / "rag_index.json").write_text(
            json.dumps(index, ensure_ascii=False), encoding="utf-8"
        )

        response = client.get("/api/v1/files/doc1/knowledge/search", params={"query": "导数"})

        assert response.status_code == 200
        data = response.json()
        assert data["query"] == "导数"
        assert data["results"][0]["fragment"]["id"] == "doc1_1_0"
        assert data["results"][0]["score"] == pytest.approx(1.2)

    def test_knowledge_search_unknown_file(self, client):
        response = client.get("/api/v1/files/missing/knowledge/search", params={"query": "x"})
        assert response.status_code == 404

    def test_performance_metrics(self, client):
        assert client.get("/api/v1/system/performance").status_code == 200

        response = client.post("/api/v1/system/performance/reset")
        assert response.status_code == 200
        assert client.get("/api/v1/system/performance").json() == {}

    def test_logs(self, client):
        response = client.get("/api/v1/system/logs")
        assert response.status_code == 200
        assert isinstance(response.json(), list)

        assert client.delete("/api/v1/system/logs").status_code == 200


def test_corrupt_snapshot_reports_domain_error(client, question_store):
    path = question_store.snapshot_path("doc1")
    path.parent.mkdir(parents=True)
    path.write_text("{broken", encoding="utf-8")

    response = client.get("/api/v1/files/doc1/questions")

    assert response.status_code == 500
    assert response.json()["error"] == "DataValidationError"
