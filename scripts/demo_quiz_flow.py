"""Demo: one learner takes a quiz and hands in an assignment, then an
instructor grades both, using FastAPI TestClient.

Run with:
    python scripts/demo_quiz_flow.py
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from assessflow.main import app
from assessflow.repos.content_provider import (
    SAMPLE_ASSIGNMENT_ID,
    SAMPLE_QUIZ_ID,
    seed_sample_content,
)
from assessflow.services import token_service
from assessflow.services.workflow_coordinator import content_provider

LEARNER = "demo-learner"
INSTRUCTOR = "instructor-1"


def _auth(sub: str, roles: list[str] | None = None) -> dict[str, str]:
    token = token_service.create_access_token(sub=sub, roles=roles)
    return {"Authorization": f"Bearer {token}"}


def main() -> None:
    client = TestClient(app)
    learner = _auth(LEARNER)
    instructor = _auth(INSTRUCTOR, ["instructor"])

    seed_sample_content(content_provider)

    # ── Step 1: start the timed quiz ────────────────────────────────
    r = client.post(f"/v1/assessments/{SAMPLE_QUIZ_ID}/attempts", headers=learner)
    print(f"1. POST start attempt      → {r.status_code}")
    attempt_id = r.json()["id"]

    # ── Step 2: autosave an answer ──────────────────────────────────
    r = client.put(
        f"/v1/attempts/{attempt_id}/answers/0",
        json={"answer": "def"},
        headers=learner,
    )
    print(f"2. PUT  answer 0           → {r.status_code}  outcome={r.json()['outcome']}")

    r = client.get(f"/v1/attempts/{attempt_id}/time-remaining", headers=learner)
    print(f"   time remaining          → {r.json()['seconds_remaining']:.0f}s")

    # ── Step 3: submit with the rest of the answers ────────────────
    r = client.post(
        f"/v1/attempts/{attempt_id}/submit",
        json={"answers": {"1": "false", "2": "A generator yields lazily."}},
        headers=learner,
    )
    body = r.json()
    print(
        f"3. POST submit             → {r.status_code}  "
        f"score={body['score']}/{body['total_points']} status={body['status']}"
    )

    # ── Step 4: a second submit loses quietly ──────────────────────
    r = client.post(f"/v1/attempts/{attempt_id}/submit", headers=learner)
    print(f"4. POST submit again       → {r.status_code}  outcome={r.json()['outcome']}")

    # ── Step 5: instructor grades the essay ─────────────────────────
    r = client.post(
        f"/v1/attempts/{attempt_id}/grades",
        json={"scores": {"2": 15}},
        headers=instructor,
    )
    body = r.json()
    print(
        f"5. POST grades             → {r.status_code}  "
        f"percentage={body['percentage']} passed={body['passed']}"
    )

    # ── Step 6: assignment submission and review ────────────────────
    r = client.post(
        f"/v1/assignments/{SAMPLE_ASSIGNMENT_ID}/submissions",
        json={"url": "https://example.org/demo-learner/todo"},
        headers=learner,
    )
    print(f"6. POST submission         → {r.status_code}")
    submission_id = r.json()["id"]

    r = client.post(
        f"/v1/submissions/{submission_id}/disapprove",
        json={"feedback": "Add tests for the delete command."},
        headers=instructor,
    )
    print(f"7. POST disapprove         → {r.status_code}  status={r.json()['review_status']}")

    r = client.post(
        f"/v1/submissions/{submission_id}/approve",
        headers=instructor,
    )
    print(f"8. POST approve (rejected) → {r.status_code}  {r.json()['detail']['outcome']}")

    r = client.post(
        f"/v1/submissions/{submission_id}/grade",
        json={"grade": 72},
        headers=instructor,
    )
    print(f"9. POST grade              → {r.status_code}  grade={r.json()['grade']}")

    print("\nAll steps completed.")


if __name__ == "__main__":
    main()
