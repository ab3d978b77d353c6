"""Tests for the HTTP API: health, session creation and the SSE run stream."""

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from course_creator import config
from course_creator.api.schemas import RunStreamQuery, SessionCreateBody
from course_creator.dependencies import (
    get_pipeline_settings,
    get_reasoning_service,
    get_session_service,
    reset_dependencies,
)
from course_creator.main import app
from course_creator.sessions import InMemorySessionService
from tests.fixtures.recording_transport import parse_data_frame
from tests.fixtures.scripted_reasoning import ScriptedReasoning, verdict


def long(n: int) -> str:
    return "a" * n


VALID_QUERY = {"userId": "user-1", "sessionId": "session-1", "q": "Create a course on Coffee."}


@pytest.fixture
def store():
    return InMemorySessionService()


@pytest.fixture
def reasoning():
    return ScriptedReasoning({
        "researcher": ["Coffee originated in Ethiopia."],
        "judge": [verdict("fail"), verdict("pass")],
    })


@pytest.fixture
def client(store, reasoning, pipeline_settings):
    app.dependency_overrides[get_session_service] = lambda: store
    app.dependency_overrides[get_reasoning_service] = lambda: reasoning
    app.dependency_overrides[get_pipeline_settings] = lambda: pipeline_settings
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def data_frames(body: bytes):
    return [parse_data_frame(chunk + b"\n\n") for chunk in body.split(b"\n\n") if chunk.startswith(b"data: ")]


@pytest.mark.unit
class TestDependencies:

    def test_session_service_is_shared_until_reset(self):
        first = get_session_service()
        assert get_session_service() is first

        reset_dependencies()

        assert get_session_service() is not first

    def test_pipeline_settings_are_loaded_once(self):
        settings = get_pipeline_settings()
        assert get_pipeline_settings() is settings
        assert settings.loop.name == "research_loop"


@pytest.mark.unit
class TestSessionCreateBody:

    def test_accepts_user_id_alone(self):
        assert SessionCreateBody.model_validate({"userId": "user-1"}).session_id is None

    def test_accepts_user_id_and_session_id(self):
        body = SessionCreateBody.model_validate({"userId": "user-1", "sessionId": "session-1"})
        assert body.session_id == "session-1"

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"userId": ""},
            {"userId": long(129)},
            {"userId": "user-1", "sessionId": long(129)},
        ],
    )
    def test_rejects_invalid(self, payload):
        with pytest.raises(ValidationError):
            SessionCreateBody.model_validate(payload)

    def test_accepts_user_id_of_128_chars(self):
        assert SessionCreateBody.model_validate({"userId": long(128)}).user_id == long(128)


@pytest.mark.unit
class TestRunStreamQuery:

    def test_accepts_valid_query(self):
        query = RunStreamQuery.model_validate(VALID_QUERY)
        assert query.max_iterations is None
        assert query.model is None

    @pytest.mark.parametrize("missing", ["userId", "sessionId", "q"])
    def test_rejects_missing_field(self, missing):
        payload = {k: v for k, v in VALID_QUERY.items() if k != missing}
        with pytest.raises(ValidationError):
            RunStreamQuery.model_validate(payload)

    @pytest.mark.parametrize(
        "override",
        [
            {"q": ""},
            {"q": long(2001)},
            {"userId": long(129)},
            {"sessionId": long(129)},
            {"maxIterations": "0"},
            {"maxIterations": "11"},
            {"maxIterations": "three"},
        ],
    )
    def test_rejects_invalid(self, override):
        with pytest.raises(ValidationError):
            RunStreamQuery.model_validate({**VALID_QUERY, **override})

    def test_accepts_q_of_2000_chars(self):
        assert len(RunStreamQuery.model_validate({**VALID_QUERY, "q": long(2000)}).q) == 2000

    def test_coerces_max_iterations(self):
        query = RunStreamQuery.model_validate({**VALID_QUERY, "maxIterations": "2"})
        assert query.max_iterations == 2


@pytest.mark.integration
class TestSessionsEndpoint:

    def test_healthz(self, client):
        response = client.get("/healthz")
        assert response.status_code == 200
        assert response.text == "ok"

    def test_create_session_with_id(self, client):
        response = client.post("/api/sessions", json={"userId": "user-1", "sessionId": "s-1"})

        assert response.status_code == 200
        assert response.json() == {"id": "s-1", "userId": "user-1", "appName": config.APP_NAME}

    def test_create_session_generates_id(self, client):
        response = client.post("/api/sessions", json={"userId": "user-1"})

        assert response.status_code == 200
        assert response.json()["id"]

    def test_duplicate_session_is_conflict(self, client):
        client.post("/api/sessions", json={"userId": "user-1", "sessionId": "s-1"})
        response = client.post("/api/sessions", json={"userId": "user-1", "sessionId": "s-1"})

        assert response.status_code == 409
        assert "error" in response.json()

    @pytest.mark.parametrize("payload", [{}, {"userId": ""}, {"userId": long(129)}])
    def test_invalid_body_is_bad_request(self, client, payload):
        response = client.post("/api/sessions", json=payload)

        assert response.status_code == 400
        assert "userId" in response.json()["error"]


@pytest.mark.integration
class TestRunStreamEndpoint:

    def test_streams_pipeline_events(self, client, store):
        response = client.get("/api/run/stream", params=VALID_QUERY)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache, no-transform"
        assert response.headers["x-accel-buffering"] == "no"

        frames = data_frames(response.content)
        assert [f["author"] for f in frames] == ["researcher", "judge", "checker"] * 2
        assert frames[1]["judge_output"]["status"] == "fail"
        assert frames[4]["judge_output"]["status"] == "pass"
        assert frames[-1]["escalate"] is True
        assert "judge_output" not in frames[2]

    def test_creates_session_on_first_use(self, client, store):
        client.get("/api/run/stream", params=VALID_QUERY)

        session = store._sessions[(config.APP_NAME, "user-1", "session-1")]
        assert session.events[0].author == "user"
        assert session.events[0].text == VALID_QUERY["q"]

    def test_reuses_existing_session(self, client, store):
        client.post("/api/sessions", json={"userId": "user-1", "sessionId": "session-1"})

        response = client.get("/api/run/stream", params=VALID_QUERY)

        assert response.status_code == 200
        assert len(store._sessions) == 1

    def test_max_iterations_override(self, client, reasoning):
        reasoning.script["judge"] = [verdict("fail")]

        response = client.get("/api/run/stream", params={**VALID_QUERY, "maxIterations": "1"})

        frames = data_frames(response.content)
        assert [f["author"] for f in frames] == ["researcher", "judge", "checker"]
        assert not frames[-1]["escalate"]

    def test_delegation_failure_is_error_frame(self, client, reasoning):
        reasoning.script["researcher"] = [RuntimeError("model unavailable")]

        response = client.get("/api/run/stream", params=VALID_QUERY)

        assert response.status_code == 200
        assert data_frames(response.content) == [
            {"error": "model unavailable", "code": "DELEGATION_FAILED"}
        ]

    @pytest.mark.parametrize(
        "override",
        [{"q": ""}, {"q": long(2001)}, {"userId": long(129)}, {"maxIterations": "0"}],
    )
    def test_invalid_query_is_bad_request(self, client, store, override):
        response = client.get("/api/run/stream", params={**VALID_QUERY, **override})

        assert response.status_code == 400
        assert "error" in response.json()
        assert store._sessions == {}

    def test_missing_query_is_bad_request(self, client):
        response = client.get("/api/run/stream", params={"userId": "user-1"})

        assert response.status_code == 400
        assert "sessionId" in response.json()["error"]
