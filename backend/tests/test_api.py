"""HTTP tests for the leave request and balance endpoints.

Walks requests through the actions endpoint end to end and checks the
error envelope, header auth and the read model filters.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from httpx import AsyncClient

# Far enough ahead that nothing here is ever backdated.
YEAR = 2039
START = f"{YEAR}-03-02"
END = f"{YEAR}-03-06"

REQUESTS_URL = "/leave-requests"


def _headers(user_id: str, role: str = "EMPLOYEE") -> dict[str, str]:
    return {"X-User-Id": user_id, "X-Role": role}


EMPLOYEE = _headers("emp-1")
SUPERVISOR = _headers("sup-1", "SUPERVISOR")
MANAGER = _headers("hr-mgr", "HR_MANAGER")
STAFF = _headers("hr-staff", "HR_STAFF")


async def _provision(client: AsyncClient, employee_id: str = "emp-1", earned: str = "10") -> None:
    resp = await client.post(
        f"/employees/{employee_id}/balances",
        json={"leave_type_code": "VL", "year": YEAR, "earned_days": earned},
        headers=MANAGER,
    )
    assert resp.status_code == 201, resp.text


async def _submit(client: AsyncClient, employee_id: str = "emp-1", start: str = START, end: str = END) -> Any:
    return await client.post(
        REQUESTS_URL,
        json={
            "employee_id": employee_id,
            "leave_type_code": "VL",
            "start_date": start,
            "end_date": end,
            "reason": "Holy week",
        },
        headers=_headers(employee_id),
    )


async def _act(client: AsyncClient, request_id: str, event: str, headers: dict[str, str]) -> Any:
    return await client.post(f"{REQUESTS_URL}/{request_id}/actions", json={"event": event}, headers=headers)


async def _balance(client: AsyncClient, employee_id: str = "emp-1") -> dict[str, Any]:
    resp = await client.get(f"/employees/{employee_id}/balances/VL/{YEAR}", headers=_headers(employee_id))
    assert resp.status_code == 200
    return resp.json()


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


async def test_submit_leave_request(async_client: AsyncClient) -> None:
    await _provision(async_client)

    resp = await _submit(async_client)

    assert resp.status_code == 201
    data = resp.json()
    assert data["state"] == "PENDING_SUPERVISOR"
    assert Decimal(data["days_requested"]) == Decimal(5)
    assert data["supervisor_id"] == "sup-1"
    assert data["department"] == "Rolling Mill 1"
    assert data["hold_id"] is not None
    assert [t["event"] for t in data["transitions"]] == ["SUBMIT"]

    balance = await _balance(async_client)
    assert Decimal(balance["held_days"]) == Decimal(5)
    assert Decimal(balance["available_days"]) == Decimal(5)


async def test_submit_end_before_start(async_client: AsyncClient) -> None:
    await _provision(async_client)

    resp = await _submit(async_client, start=END, end=START)

    assert resp.status_code == 422
    assert resp.json()["error"] == "InvalidDates"


async def test_submit_insufficient_balance(async_client: AsyncClient) -> None:
    await _provision(async_client, earned="3")

    resp = await _submit(async_client)

    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "InsufficientBalance"
    assert body["status_code"] == 400
    assert Decimal(body["details"]["requested_days"]) == Decimal(5)
    assert Decimal(body["details"]["available_days"]) == Decimal(3)


async def test_submit_overlap_conflict(async_client: AsyncClient) -> None:
    await _provision(async_client)
    await _submit(async_client)

    resp = await _submit(async_client, start=END, end=END)

    assert resp.status_code == 409
    assert resp.json()["error"] == "DateConflict"


async def test_submit_for_someone_else_forbidden(async_client: AsyncClient) -> None:
    await _provision(async_client)

    resp = await async_client.post(
        REQUESTS_URL,
        json={"employee_id": "emp-1", "leave_type_code": "VL", "start_date": START, "end_date": END},
        headers=_headers("emp-2"),
    )

    assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


async def test_full_chain_through_actions_endpoint(async_client: AsyncClient) -> None:
    await _provision(async_client)
    request_id = (await _submit(async_client)).json()["id"]

    resp = await _act(async_client, request_id, "SUPERVISOR_APPROVE", SUPERVISOR)
    assert resp.status_code == 200
    assert resp.json()["state"] == "PENDING_HR_MANAGER"

    resp = await _act(async_client, request_id, "MANAGER_APPROVE", MANAGER)
    assert resp.json()["state"] == "APPROVED"

    resp = await _act(async_client, request_id, "PROCESS", STAFF)
    data = resp.json()
    assert data["state"] == "PROCESSED"
    assert [t["sequence"] for t in data["transitions"]] == [1, 2, 3, 4]
    assert [t["actor_id"] for t in data["transitions"]] == ["emp-1", "sup-1", "hr-mgr", "hr-staff"]

    balance = await _balance(async_client)
    assert Decimal(balance["used_days"]) == Decimal(5)
    assert Decimal(balance["held_days"]) == Decimal(0)
    assert Decimal(balance["available_days"]) == Decimal(5)


async def test_reject_releases_days(async_client: AsyncClient) -> None:
    await _provision(async_client)
    request_id = (await _submit(async_client)).json()["id"]

    resp = await async_client.post(
        f"{REQUESTS_URL}/{request_id}/actions",
        json={"event": "SUPERVISOR_REJECT", "comment": "Peak production week"},
        headers=SUPERVISOR,
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["state"] == "REJECTED"
    assert data["transitions"][-1]["comment"] == "Peak production week"
    balance = await _balance(async_client)
    assert Decimal(balance["available_days"]) == Decimal(10)


async def test_action_errors(async_client: AsyncClient) -> None:
    await _provision(async_client)
    request_id = (await _submit(async_client)).json()["id"]

    wrong_approver = await _act(async_client, request_id, "SUPERVISOR_APPROVE", _headers("sup-9", "SUPERVISOR"))
    assert wrong_approver.status_code == 403
    assert wrong_approver.json()["error"] == "Forbidden"

    out_of_order = await _act(async_client, request_id, "PROCESS", STAFF)
    assert out_of_order.status_code == 409
    assert out_of_order.json()["error"] == "InvalidTransition"

    unknown_event = await _act(async_client, request_id, "ESCALATE", SUPERVISOR)
    assert unknown_event.status_code == 422


async def test_cancelled_request_is_final(async_client: AsyncClient) -> None:
    await _provision(async_client)
    request_id = (await _submit(async_client)).json()["id"]

    assert (await _act(async_client, request_id, "CANCEL", EMPLOYEE)).json()["state"] == "CANCELLED"

    resp = await _act(async_client, request_id, "CANCEL", EMPLOYEE)
    assert resp.status_code == 409
    assert resp.json()["details"]["state"] == "CANCELLED"


# ---------------------------------------------------------------------------
# Read model
# ---------------------------------------------------------------------------


async def test_get_request(async_client: AsyncClient) -> None:
    await _provision(async_client)
    request_id = (await _submit(async_client)).json()["id"]

    resp = await async_client.get(f"{REQUESTS_URL}/{request_id}", headers=EMPLOYEE)

    assert resp.status_code == 200
    assert resp.json()["reason"] == "Holy week"


async def test_get_unknown_request(async_client: AsyncClient) -> None:
    resp = await async_client.get(f"{REQUESTS_URL}/{uuid.uuid4()}", headers=EMPLOYEE)
    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFound"


async def test_next_approver_endpoint(async_client: AsyncClient) -> None:
    await _provision(async_client)
    request_id = (await _submit(async_client)).json()["id"]
    url = f"{REQUESTS_URL}/{request_id}/next-approver"

    resp = await async_client.get(url, headers=EMPLOYEE)
    assert resp.json() == {"actor_role": "SUPERVISOR", "actor_id": "sup-1"}

    await _act(async_client, request_id, "SUPERVISOR_APPROVE", SUPERVISOR)
    resp = await async_client.get(url, headers=EMPLOYEE)
    assert resp.json() == {"actor_role": "HR_MANAGER", "actor_id": None}

    await _act(async_client, request_id, "CANCEL", EMPLOYEE)
    resp = await async_client.get(url, headers=EMPLOYEE)
    assert resp.status_code == 200
    assert resp.json() is None


async def test_list_filters(async_client: AsyncClient) -> None:
    await _provision(async_client, "emp-1")
    await _provision(async_client, "emp-2")
    first = (await _submit(async_client, "emp-1")).json()["id"]
    await _submit(async_client, "emp-2", start=f"{YEAR}-04-06", end=f"{YEAR}-04-07")
    await _act(async_client, first, "SUPERVISOR_APPROVE", SUPERVISOR)

    async def _ids(**params: Any) -> list[str]:
        resp = await async_client.get(REQUESTS_URL, params=params, headers=MANAGER)
        assert resp.status_code == 200
        return [item["id"] for item in resp.json()["items"]]

    assert len(await _ids(department="Rolling Mill 1")) == 2
    assert await _ids(status="PENDING_HR_MANAGER") == [first]
    assert len(await _ids(employee_id="emp-2")) == 1
    assert await _ids(date_from=f"{YEAR}-03-06", date_to=f"{YEAR}-03-10") == [first]
    assert await _ids(date_from=f"{YEAR}-05-01") == []
    assert len(await _ids(limit=1)) == 1

    page = await async_client.get(REQUESTS_URL, params={"limit": 1, "offset": 1}, headers=MANAGER)
    assert page.json()["total"] == 2
    assert len(page.json()["items"]) == 1


async def test_list_rejects_bad_limit(async_client: AsyncClient) -> None:
    resp = await async_client.get(REQUESTS_URL, params={"limit": 500}, headers=MANAGER)
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Balances
# ---------------------------------------------------------------------------


async def test_provision_balance_endpoint(async_client: AsyncClient) -> None:
    url = "/employees/emp-2/balances"

    resp = await async_client.post(url, json={"leave_type_code": "SL", "year": YEAR}, headers=MANAGER)
    assert resp.status_code == 201
    data = resp.json()
    assert Decimal(data["earned_days"]) == Decimal(10)
    assert data["version"] == 1

    duplicate = await async_client.post(url, json={"leave_type_code": "SL", "year": YEAR}, headers=MANAGER)
    assert duplicate.status_code == 409

    not_allowed = await async_client.post(url, json={"leave_type_code": "VL", "year": YEAR}, headers=STAFF)
    assert not_allowed.status_code == 403

    listing = await async_client.get(url, params={"year": YEAR}, headers=_headers("emp-2"))
    assert [item["leave_type_code"] for item in listing.json()["items"]] == ["SL"]


async def test_unknown_balance(async_client: AsyncClient) -> None:
    resp = await async_client.get(f"/employees/emp-1/balances/ML/{YEAR}", headers=EMPLOYEE)
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Header auth
# ---------------------------------------------------------------------------


async def test_unknown_role_forbidden(async_client: AsyncClient) -> None:
    resp = await async_client.get(REQUESTS_URL, headers=_headers("emp-1", "JANITOR"))
    assert resp.status_code == 403


async def test_role_header_is_case_insensitive(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        "/employees/emp-2/balances", json={"leave_type_code": "EL", "year": YEAR}, headers=_headers("hr-mgr", "hr_manager")
    )
    assert resp.status_code == 201


async def test_missing_user_header(async_client: AsyncClient) -> None:
    resp = await async_client.get(REQUESTS_URL)
    assert resp.status_code == 422
    assert resp.json()["error"] == "ValidationError"
