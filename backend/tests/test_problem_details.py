from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from purchase_tracking.domain_errors import (
    DomainError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceFailureError,
)
from purchase_tracking.problem_details import build_problem_details_response, domain_error_handler


def test_problem_details_payload_contains_stable_code_and_rfc7807_fields() -> None:
    response = build_problem_details_response(
        DomainError(
            code="PROBE_ERROR",
            http_status=409,
            message="probe failed",
            details={"probe": True},
        )
    )

    assert response.status_code == 409
    assert response.media_type == "application/problem+json"

    body = response.body.decode("utf-8")
    assert '"type":"https://api.purchasing.local/problems/probe_error"' in body
    assert '"title":"Conflict"' in body
    assert '"status":409' in body
    assert '"detail":"probe failed"' in body
    assert '"code":"PROBE_ERROR"' in body
    assert '"details":{"probe":true}' in body


def test_problem_details_omits_details_when_none() -> None:
    response = build_problem_details_response(
        InvalidInputError(
            code="NO_DETAILS",
            http_status=422,
            message="validation failed",
        )
    )

    body = response.body.decode("utf-8")
    assert response.status_code == 422
    assert '"code":"NO_DETAILS"' in body
    assert '"details"' not in body


def test_error_kinds_share_domain_error_base() -> None:
    for kind in (NotFoundError, InvalidTransitionError, InvalidInputError, PersistenceFailureError):
        assert issubclass(kind, DomainError)

    error = PersistenceFailureError(code="PURCHASE_PERSISTENCE_FAILURE", http_status=503, message="down")
    assert str(error) == "down"
    assert build_problem_details_response(error).status_code == 503


def test_fastapi_exception_handler_maps_domain_error_to_problem_details() -> None:
    app = FastAPI()
    app.add_exception_handler(DomainError, domain_error_handler)

    @app.get("/boom")
    def _boom():
        raise NotFoundError(
            code="PURCHASE_ITEM_NOT_FOUND",
            http_status=404,
            message="Purchase order item not found",
            details={"item_ids": ["x"]},
        )

    client = TestClient(app)
    response = client.get("/boom")

    assert response.status_code == 404
    assert response.headers["content-type"].startswith("application/problem+json")
    payload = response.json()
    assert payload["code"] == "PURCHASE_ITEM_NOT_FOUND"
    assert payload["details"] == {"item_ids": ["x"]}
