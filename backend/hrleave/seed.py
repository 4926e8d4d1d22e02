"""Seed script for development data.

Run with:  python -m hrleave.seed
Needs a running API (uvicorn hrleave.main:app). Employees live in the
in-memory directory, so re-run after every API restart.
"""

from __future__ import annotations

import asyncio
import sys
from datetime import date, timedelta

import httpx

from hrleave.services.policy import DEFAULT_LEAVE_TYPES

BASE_URL = "http://localhost:8000"

HR_MANAGER_ID = "hr-001"
HR_STAFF_ID = "hr-002"
SUPERVISOR_ID = "emp-100"
JUAN_ID = "emp-101"
ANA_ID = "emp-102"
PEDRO_ID = "emp-103"


def _headers(user_id: str, role: str) -> dict[str, str]:
    return {"Content-Type": "application/json", "X-User-Id": user_id, "X-Role": role}


HR_MANAGER = _headers(HR_MANAGER_ID, "HR_MANAGER")
HR_STAFF = _headers(HR_STAFF_ID, "HR_STAFF")
SUPERVISOR = _headers(SUPERVISOR_ID, "SUPERVISOR")

EMPLOYEES = [
    {
        "id": HR_MANAGER_ID,
        "first_name": "Maria",
        "last_name": "Reyes",
        "email": "maria.reyes@example.com",
        "department": "Human Resources",
        "hire_date": "2019-02-01",
    },
    {
        "id": HR_STAFF_ID,
        "first_name": "Liza",
        "last_name": "Cruz",
        "email": "liza.cruz@example.com",
        "department": "Human Resources",
        "supervisor_id": HR_MANAGER_ID,
        "hire_date": "2021-07-12",
    },
    {
        "id": SUPERVISOR_ID,
        "first_name": "Ramon",
        "last_name": "Garcia",
        "email": "ramon.garcia@example.com",
        "department": "Rolling Mill 1",
        "supervisor_id": HR_MANAGER_ID,
        "hire_date": "2018-05-21",
    },
    {
        "id": JUAN_ID,
        "first_name": "Juan",
        "last_name": "Dela Cruz",
        "email": "juan.delacruz@example.com",
        "department": "Rolling Mill 1",
        "supervisor_id": SUPERVISOR_ID,
        "hire_date": "2022-01-10",
    },
    {
        "id": ANA_ID,
        "first_name": "Ana",
        "last_name": "Santos",
        "email": "ana.santos@example.com",
        "department": "Rolling Mill 1",
        "supervisor_id": SUPERVISOR_ID,
        "hire_date": "2023-03-15",
    },
    {
        "id": PEDRO_ID,
        "first_name": "Pedro",
        "last_name": "Lim",
        "email": "pedro.lim@example.com",
        "department": "Accounting",
        "supervisor_id": HR_MANAGER_ID,
        "hire_date": "2024-08-01",
    },
]

# Balances opened at the annual entitlement: (employee_id, leave_type_code)
BALANCES = [
    (JUAN_ID, "VL"),
    (JUAN_ID, "SL"),
    (ANA_ID, "VL"),
    (ANA_ID, "SL"),
    (ANA_ID, "EL"),
    (PEDRO_ID, "VL"),
    (PEDRO_ID, "PL"),
]


async def _safe_post(
    client: httpx.AsyncClient,
    url: str,
    json: dict,
    label: str,
    headers: dict[str, str] = HR_MANAGER,
) -> dict | None:
    """POST with 409-conflict tolerance for idempotency."""
    resp = await client.post(url, json=json, headers=headers)
    if resp.status_code in (200, 201):
        print(f"  [OK] {label}")
        return resp.json()
    if resp.status_code == 409:
        print(f"  [SKIP] {label} ({resp.json().get('detail')})")
        return None
    print(f"  [ERROR] {label}: {resp.status_code} {resp.text[:200]}")
    return None


async def _safe_put(client: httpx.AsyncClient, url: str, json: dict, label: str) -> dict | None:
    """PUT (upsert), naturally idempotent."""
    resp = await client.put(url, json=json, headers=HR_MANAGER)
    if resp.status_code in (200, 201):
        print(f"  [OK] {label}")
        return resp.json()
    print(f"  [ERROR] {label}: {resp.status_code} {resp.text[:200]}")
    return None


async def seed_leave_types(client: httpx.AsyncClient) -> None:
    """Seed the default leave type catalog."""
    print("\n--- Seeding leave types ---")
    for definition in DEFAULT_LEAVE_TYPES:
        body = {k: str(v) if not isinstance(v, (bool, str)) else v for k, v in definition.items()}
        await _safe_post(client, f"{BASE_URL}/leave-types", body, f"Leave type: {definition['code']}")


async def seed_employees(client: httpx.AsyncClient) -> None:
    """Seed employees via PUT (upsert)."""
    print("\n--- Seeding employees ---")
    for emp in EMPLOYEES:
        body = {k: v for k, v in emp.items() if k != "id"}
        await _safe_put(
            client,
            f"{BASE_URL}/employees/{emp['id']}",
            body,
            f"{emp['first_name']} {emp['last_name']}",
        )


async def seed_balances(client: httpx.AsyncClient, year: int) -> None:
    """Open this year's ledger rows."""
    print(f"\n--- Seeding {year} balances ---")
    for employee_id, code in BALANCES:
        await _safe_post(
            client,
            f"{BASE_URL}/employees/{employee_id}/balances",
            {"leave_type_code": code, "year": year},
            f"Balance: {employee_id} {code} {year}",
        )


def _next_weekday(start: date, days_ahead: int) -> date:
    """First Mon-Fri at least ``days_ahead`` days after ``start``."""
    candidate = start + timedelta(days=days_ahead)
    while candidate.weekday() >= 5:
        candidate += timedelta(days=1)
    return candidate


async def _act(client: httpx.AsyncClient, request_id: str, event: str, headers: dict[str, str], label: str) -> None:
    resp = await client.post(
        f"{BASE_URL}/leave-requests/{request_id}/actions",
        json={"event": event, "comment": label},
        headers=headers,
    )
    if resp.status_code == 200:
        print(f"  [OK] {label}")
    elif resp.status_code == 409:
        print(f"  [SKIP] {label} (already decided)")
    else:
        print(f"  [ERROR] {label}: {resp.status_code} {resp.text[:200]}")


async def seed_requests(client: httpx.AsyncClient, today: date) -> None:
    """Seed leave requests in a spread of workflow states.

    Requests are placed in the future and inside the current year; near the
    end of December some may fall outside it and are skipped by the API.
    """
    print("\n--- Seeding requests ---")

    # Juan: 3 days VL, stays with the supervisor
    start = _next_weekday(today, 7)
    await _safe_post(
        client,
        f"{BASE_URL}/leave-requests",
        {
            "employee_id": JUAN_ID,
            "leave_type_code": "VL",
            "start_date": start.isoformat(),
            "end_date": (start + timedelta(days=2)).isoformat(),
            "reason": "Family vacation",
        },
        "Request: Juan 3-day vacation (PENDING_SUPERVISOR)",
        headers=_headers(JUAN_ID, "EMPLOYEE"),
    )

    # Ana: 1 day SL, approved through the whole chain and processed
    start = _next_weekday(today, 3)
    result = await _safe_post(
        client,
        f"{BASE_URL}/leave-requests",
        {
            "employee_id": ANA_ID,
            "leave_type_code": "SL",
            "start_date": start.isoformat(),
            "end_date": start.isoformat(),
            "reason": "Doctor appointment",
        },
        "Request: Ana 1-day sick leave",
        headers=_headers(ANA_ID, "EMPLOYEE"),
    )
    if result:
        await _act(client, result["id"], "SUPERVISOR_APPROVE", SUPERVISOR, "Supervisor approved Ana's sick leave")
        await _act(client, result["id"], "MANAGER_APPROVE", HR_MANAGER, "HR Manager approved Ana's sick leave")
        await _act(client, result["id"], "PROCESS", HR_STAFF, "Processed Ana's sick leave for payroll")

    # Pedro: 2 days PL, rejected by his supervisor (the HR manager)
    start = _next_weekday(today, 14)
    result = await _safe_post(
        client,
        f"{BASE_URL}/leave-requests",
        {
            "employee_id": PEDRO_ID,
            "leave_type_code": "PL",
            "start_date": start.isoformat(),
            "end_date": (start + timedelta(days=1)).isoformat(),
            "reason": "Personal errand",
        },
        "Request: Pedro 2-day privilege leave",
        headers=_headers(PEDRO_ID, "EMPLOYEE"),
    )
    if result:
        await _act(client, result["id"], "SUPERVISOR_REJECT", HR_MANAGER, "Rejected Pedro's request: month-end close")


async def main() -> None:
    print("=" * 60)
    print("  HR Leave: Development Seed Script")
    print("=" * 60)

    today = date.today()
    async with httpx.AsyncClient(timeout=30.0) as client:
        # Health check
        try:
            resp = await client.get(f"{BASE_URL}/health")
            if resp.status_code != 200:
                print(f"API health check failed: {resp.status_code}")
                sys.exit(1)
            print("\n[OK] API is healthy")
        except httpx.ConnectError:
            print("ERROR: Cannot connect to API at", BASE_URL)
            print("Make sure the API is running (uvicorn hrleave.main:app)")
            sys.exit(1)

        await seed_leave_types(client)
        await seed_employees(client)
        await seed_balances(client, today.year)
        await seed_requests(client, today)

    print("\n" + "=" * 60)
    print("  Seeding complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
