"""HTTP surface for assignment submissions and instructor review."""

from __future__ import annotations

from fastapi.testclient import TestClient

from assessflow.models.assessment import AssignmentDefinition
from tests.conftest import auth, mint_token


def _submit(client: TestClient, assignment_id, token: str, **body):
    payload = body or {"text": "Recursion is a function calling itself."}
    return client.post(
        f"/v1/assignments/{assignment_id}/submissions",
        json=payload,
        headers=auth(token),
    )


# ---- create ----


def test_create_submission_returns_201(
    client: TestClient, token: str, assignment: AssignmentDefinition
) -> None:
    resp = _submit(client, assignment.id, token)
    assert resp.status_code == 201
    body = resp.json()
    assert body["review_status"] == "pending"
    assert body["late"] is False
    assert body["grade"] is None
    assert body["deleted"] is False


def test_duplicate_submission_is_409(
    client: TestClient, token: str, assignment: AssignmentDefinition
) -> None:
    first = _submit(client, assignment.id, token)
    resp = _submit(client, assignment.id, token)
    assert resp.status_code == 409
    assert resp.json()["detail"]["outcome"] == "already_submitted"
    assert first.status_code == 201


def test_empty_submission_is_422(
    client: TestClient, token: str, assignment: AssignmentDefinition
) -> None:
    resp = _submit(client, assignment.id, token, text="   ")
    assert resp.status_code == 422
    assert resp.json()["detail"]["outcome"] == "submission_empty"


def test_url_only_submission_is_accepted(
    client: TestClient, token: str, assignment: AssignmentDefinition
) -> None:
    resp = _submit(client, assignment.id, token, url="https://example.org/repo")
    assert resp.status_code == 201
    assert resp.json()["url"] == "https://example.org/repo"


# ---- read ----


def test_owner_and_instructor_can_read(
    client: TestClient,
    token: str,
    instructor_token: str,
    assignment: AssignmentDefinition,
) -> None:
    sub_id = _submit(client, assignment.id, token).json()["id"]
    assert client.get(f"/v1/submissions/{sub_id}", headers=auth(token)).status_code == 200
    assert (
        client.get(f"/v1/submissions/{sub_id}", headers=auth(instructor_token)).status_code
        == 200
    )
    other = mint_token(username="learner-2")
    assert client.get(f"/v1/submissions/{sub_id}", headers=auth(other)).status_code == 403


def test_instructor_lists_submissions(
    client: TestClient,
    token: str,
    instructor_token: str,
    assignment: AssignmentDefinition,
) -> None:
    _submit(client, assignment.id, token)
    _submit(client, assignment.id, mint_token(username="learner-2"))

    resp = client.get(
        f"/v1/assignments/{assignment.id}/submissions", headers=auth(instructor_token)
    )
    assert resp.status_code == 200
    assert {s["submitter_id"] for s in resp.json()} == {"learner-1", "learner-2"}

    denied = client.get(f"/v1/assignments/{assignment.id}/submissions", headers=auth(token))
    assert denied.status_code == 403


# ---- review ----


def test_learner_cannot_review(
    client: TestClient, token: str, assignment: AssignmentDefinition
) -> None:
    sub_id = _submit(client, assignment.id, token).json()["id"]
    resp = client.post(f"/v1/submissions/{sub_id}/approve", headers=auth(token))
    assert resp.status_code == 403


def test_view_then_approve(
    client: TestClient,
    token: str,
    instructor_token: str,
    assignment: AssignmentDefinition,
) -> None:
    sub_id = _submit(client, assignment.id, token).json()["id"]

    viewed = client.post(f"/v1/submissions/{sub_id}/view", headers=auth(instructor_token))
    assert viewed.status_code == 200
    assert viewed.json()["review_status"] == "viewed"

    again = client.post(f"/v1/submissions/{sub_id}/view", headers=auth(instructor_token))
    assert again.json()["outcome"] == "noop"

    approved = client.post(
        f"/v1/submissions/{sub_id}/approve",
        json={"feedback": "Well argued."},
        headers=auth(instructor_token),
    )
    assert approved.status_code == 200
    assert approved.json()["review_status"] == "approved"
    assert approved.json()["feedback"] == "Well argued."


def test_disapprove_requires_feedback(
    client: TestClient,
    token: str,
    instructor_token: str,
    assignment: AssignmentDefinition,
) -> None:
    sub_id = _submit(client, assignment.id, token).json()["id"]
    resp = client.post(
        f"/v1/submissions/{sub_id}/disapprove",
        json={"feedback": "  "},
        headers=auth(instructor_token),
    )
    assert resp.status_code == 422
    assert resp.json()["detail"]["outcome"] == "feedback_required"


def test_approve_after_disapprove_is_409(
    client: TestClient,
    token: str,
    instructor_token: str,
    assignment: AssignmentDefinition,
) -> None:
    sub_id = _submit(client, assignment.id, token).json()["id"]
    resp = client.post(
        f"/v1/submissions/{sub_id}/disapprove",
        json={"feedback": "Missing the base case discussion."},
        headers=auth(instructor_token),
    )
    assert resp.json()["review_status"] == "disapproved"

    resp = client.post(f"/v1/submissions/{sub_id}/approve", headers=auth(instructor_token))
    assert resp.status_code == 409
    assert resp.json()["detail"]["outcome"] == "invalid_transition"


def test_grade_and_regrade(
    client: TestClient,
    token: str,
    instructor_token: str,
    assignment: AssignmentDefinition,
) -> None:
    sub_id = _submit(client, assignment.id, token).json()["id"]

    resp = client.post(
        f"/v1/submissions/{sub_id}/grade",
        json={"grade": 85},
        headers=auth(instructor_token),
    )
    assert resp.status_code == 200
    assert resp.json()["grade"] == 85
    assert resp.json()["grade_revision"] == 1
    assert resp.json()["review_status"] == "pending"

    resp = client.post(
        f"/v1/submissions/{sub_id}/grade",
        json={"grade": 90, "feedback": "Revised after re-read."},
        headers=auth(instructor_token),
    )
    assert resp.json()["grade"] == 90
    assert resp.json()["grade_revision"] == 2


def test_grade_out_of_range_is_422(
    client: TestClient,
    token: str,
    instructor_token: str,
    assignment: AssignmentDefinition,
) -> None:
    sub_id = _submit(client, assignment.id, token).json()["id"]
    resp = client.post(
        f"/v1/submissions/{sub_id}/grade",
        json={"grade": 150},
        headers=auth(instructor_token),
    )
    assert resp.status_code == 422
    assert resp.json()["detail"]["outcome"] == "grade_out_of_range"


# ---- delete ----


def test_delete_frees_the_slot(
    client: TestClient,
    token: str,
    instructor_token: str,
    assignment: AssignmentDefinition,
) -> None:
    sub_id = _submit(client, assignment.id, token).json()["id"]

    resp = client.delete(f"/v1/submissions/{sub_id}", headers=auth(instructor_token))
    assert resp.status_code == 200
    assert resp.json()["deleted"] is True

    review = client.post(f"/v1/submissions/{sub_id}/view", headers=auth(instructor_token))
    assert review.json()["outcome"] == "stale"

    assert _submit(client, assignment.id, token).status_code == 201


def test_reapprove_replaces_feedback(
    client: TestClient,
    token: str,
    instructor_token: str,
    assignment: AssignmentDefinition,
) -> None:
    sub_id = _submit(client, assignment.id, token).json()["id"]
    client.post(
        f"/v1/submissions/{sub_id}/approve",
        json={"feedback": "good"},
        headers=auth(instructor_token),
    )
    resp = client.post(
        f"/v1/submissions/{sub_id}/approve",
        json={"feedback": "great, revised"},
        headers=auth(instructor_token),
    )
    assert resp.status_code == 200
    assert resp.json()["outcome"] == "committed"
    assert resp.json()["feedback"] == "great, revised"
