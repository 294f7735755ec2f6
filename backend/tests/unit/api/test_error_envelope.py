from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel
import pytest

from lingualink.core.exceptions import (
    ErrorCode,
    NotFoundError,
    ResourceLocked,
    SchedulingConflict,
)
from lingualink.errors import ENVELOPE_VERSION, REQUEST_ID_HEADER, error_envelope, register_error_handlers


class _Body(BaseModel):
    duration: int


@pytest.fixture
def client():
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/conflict")
    def conflict():
        raise SchedulingConflict("INT1", "S001")

    @app.get("/locked")
    def locked():
        raise ResourceLocked("interpreter:INT1")

    @app.get("/missing")
    def missing():
        raise NotFoundError("Session not found", code=ErrorCode.SES_NOT_FOUND)

    @app.post("/body")
    def body(payload: _Body):
        return {"duration": payload.duration}

    return TestClient(app)


class TestErrorEnvelope:
    def test_conflict_envelope(self, client):
        response = client.get("/conflict", headers={REQUEST_ID_HEADER: "req-123"})

        assert response.status_code == 409
        assert response.headers[REQUEST_ID_HEADER] == "req-123"
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == ErrorCode.SES_INTERPRETER_NOT_AVAILABLE
        assert body["error"]["details"]["conflicting_session_id"] == "S001"
        assert body["meta"]["version"] == ENVELOPE_VERSION
        assert body["meta"]["request_id"] == "req-123"

    def test_locked_is_423(self, client):
        response = client.get("/locked")
        assert response.status_code == 423
        assert response.json()["error"]["code"] == ErrorCode.REQ_RESOURCE_LOCKED
        assert response.headers[REQUEST_ID_HEADER]

    def test_not_found(self, client):
        response = client.get("/missing")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == ErrorCode.SES_NOT_FOUND

    def test_request_validation_is_400(self, client):
        response = client.post("/body", json={"duration": "long"})
        assert response.status_code == 400
        body = response.json()
        assert body["error"]["code"] == ErrorCode.VAL_INVALID_INPUT
        assert body["error"]["details"]["errors"]


def test_error_envelope_generates_request_id():
    envelope = error_envelope(ResourceLocked("interpreter:INT1"))
    assert envelope["error"]["details"] == {"resource": "interpreter:INT1"}
    assert envelope["meta"]["request_id"]
    assert envelope["meta"]["timestamp"].endswith("+00:00")
