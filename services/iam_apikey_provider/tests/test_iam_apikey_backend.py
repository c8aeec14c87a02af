"""Tests for the IAM API key backend."""

from __future__ import annotations

import json

import httpx
import pytest

from libs.credentials.context import DELETE_CREDENTIALS
from libs.credentials.errors import (
    BackendRejectedError,
    BackendUnavailableError,
    ErrorCode,
    ReportError,
    SecretTypeMismatchError,
)
from libs.credentials.retry import RetryingSession
from libs.credentials.saga import ProvisioningSaga, SagaState
from libs.secrets_manager.models import ARBITRARY, CUSTOM_CREDENTIALS, TASK_CREDENTIALS_CREATED
from services.iam_apikey_provider.app.backend import IamApiKeyBackend, build_session, load_backend
from services.iam_apikey_provider.app.config import Settings

APIKEY_RESPONSE = {
    "id": "ApiKey-0d2a6e1c-9c8b-4e55-8f6a-1c2b3d4e5f60",
    "crn": "crn:v1:bluemix:public:iam-identity::a/acc::apikey:ApiKey-0d2a6e1c",
    "iam_id": "IBMid-123",
    "account_id": "acc",
    "apikey": "generated-key",
}


def make_backend(handler, **kwargs) -> IamApiKeyBackend:
    session = RetryingSession(
        base_url="https://iam.test",
        transport=httpx.MockTransport(handler),
        sleep=lambda _seconds: None,
    )
    return IamApiKeyBackend(session, iam_id="IBMid-123", account_id="acc", **kwargs)


def test_create_posts_locked_key(make_context) -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(201, json=APIKEY_RESPONSE)

    backend = make_backend(handler, action_when_leaked="disable")
    context = make_context()

    credential = backend.create(context)

    assert credential.id == APIKEY_RESPONSE["id"]
    assert credential.payload["apikey"] == "generated-key"
    request = captured[0]
    assert request.url.path == "/v1/apikeys"
    assert request.headers["Entity-Lock"] == "true"
    assert request.headers["Entity-Disable"] == "false"
    body = json.loads(request.content)
    assert body["name"] == "ci-pipeline-9f0e21"
    assert body["iam_id"] == "IBMid-123"
    assert body["support_sessions"] is False
    assert body["action_when_leaked"] == "disable"
    assert context.secret_task_id in body["description"]


def test_create_omits_leak_action_when_unset(make_context) -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json=APIKEY_RESPONSE)

    make_backend(handler).create(make_context())

    assert "action_when_leaked" not in bodies[0]


def test_create_rejected_is_not_retried(make_context) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(400, json={"errors": [{"code": "bad", "message": "invalid iam_id"}]})

    with pytest.raises(BackendRejectedError, match="invalid iam_id"):
        make_backend(handler).create(make_context())
    assert len(calls) == 1


def test_create_html_response_is_rejected(make_context) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, text="<html>maintenance</html>")

    with pytest.raises(BackendRejectedError, match="cannot decode IAM response") as excinfo:
        make_backend(handler).create(make_context())
    assert excinfo.value.status_code == 201


def make_authenticated_backend(handler) -> IamApiKeyBackend:
    session = build_session(
        "login-key",
        "https://iam.test",
        transport=httpx.MockTransport(handler),
        sleep=lambda _seconds: None,
    )
    return IamApiKeyBackend(session, iam_id="IBMid-123", account_id="acc")


def test_token_outage_is_retried_then_unreachable(
    secrets_manager, make_context, task_logger
) -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(503, json={"errorMessage": "IAM unavailable"})

    backend = make_authenticated_backend(handler)
    saga = ProvisioningSaga(secrets_manager, lambda: backend, make_context(), task_logger)

    outcome = saga.create()

    assert paths == ["/identity/token"] * 4
    assert outcome.state is SagaState.REPORTED_ERROR
    assert outcome.error_code is ErrorCode.BACKEND_UNREACHABLE


def test_token_rejection_is_not_retried(make_context) -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(400, json={"errorMessage": "Provided API key could not be found"})

    with pytest.raises(BackendRejectedError, match="could not be found"):
        make_authenticated_backend(handler).create(make_context())
    assert paths == ["/identity/token"]


def test_authenticated_create_sends_bearer_token(make_context) -> None:
    seen: list[str | None] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/identity/token":
            return httpx.Response(200, json={"access_token": "bearer-1", "expires_in": 3600})
        seen.append(request.headers.get("Authorization"))
        return httpx.Response(201, json=APIKEY_RESPONSE)

    credential = make_authenticated_backend(handler).create(make_context())

    assert credential.id == APIKEY_RESPONSE["id"]
    assert seen == ["Bearer bearer-1"]


def test_revoke_unlocks_then_deletes() -> None:
    calls: list[tuple[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.path))
        return httpx.Response(204)

    make_backend(handler).revoke("ApiKey-1")

    assert calls == [
        ("POST", "/v1/apikeys/ApiKey-1/unlock"),
        ("DELETE", "/v1/apikeys/ApiKey-1"),
    ]


def test_revoke_missing_key_is_a_no_op() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        return httpx.Response(404, json={"errors": [{"code": "not_found", "message": "gone"}]})

    make_backend(handler).revoke("ApiKey-1")

    assert calls == ["POST"]


def test_revoke_server_errors_exhaust_retries() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        return httpx.Response(503, text="unavailable")

    with pytest.raises(BackendUnavailableError):
        make_backend(handler).revoke("ApiKey-1")
    assert calls == ["POST"] * 4


def test_unreported_key_is_deleted_again(secrets_manager, make_context, task_logger) -> None:
    calls: list[tuple[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.path))
        if request.url.path == "/v1/apikeys":
            return httpx.Response(201, json=APIKEY_RESPONSE)
        return httpx.Response(204)

    secrets_manager.fail_report(TASK_CREDENTIALS_CREATED, ReportError("status code 500"))
    backend = make_backend(handler)
    saga = ProvisioningSaga(secrets_manager, lambda: backend, make_context(), task_logger)

    outcome = saga.create()

    assert outcome.state is SagaState.REPORTED_ERROR
    assert outcome.error_code is ErrorCode.REPORT_FAILED_AFTER_CREATE
    assert ("DELETE", f"/v1/apikeys/{APIKEY_RESPONSE['id']}") in calls


def test_load_backend_reads_apikey_from_custom_credentials(secrets_manager, task_logger) -> None:
    secrets_manager.add_secret(
        "login", CUSTOM_CREDENTIALS, credentials_content={"apikey": "login-key"}
    )
    settings = Settings(apikey_secret_id="login", iam_id="IBMid-123", account_id="acc")

    backend = load_backend(settings, secrets_manager, task_logger)

    assert isinstance(backend, IamApiKeyBackend)
    assert backend.account_id == "acc"
    backend.close()


def test_load_backend_rejects_empty_login_secret(secrets_manager, task_logger) -> None:
    secrets_manager.add_secret("login", ARBITRARY, payload="")
    settings = Settings(apikey_secret_id="login", iam_id="IBMid-123", account_id="acc")

    with pytest.raises(SecretTypeMismatchError):
        load_backend(settings, secrets_manager, task_logger)


def test_delete_without_credentials_id_reports_configuration_error(
    secrets_manager, make_context, task_logger
) -> None:
    def fail_loading():
        raise AssertionError("backend must not be loaded")

    saga = ProvisioningSaga(
        secrets_manager, fail_loading, make_context(DELETE_CREDENTIALS), task_logger
    )

    outcome = saga.delete()

    assert outcome.error_code is ErrorCode.INVALID_CONFIGURATION
    assert secrets_manager.statuses() == ["failed"]
