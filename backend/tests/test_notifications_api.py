"""HTTP tests for the notification inbox and the audit log endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from support import Org, headers_for

if TYPE_CHECKING:
    from httpx import AsyncClient

    from leave_core.schemas.auth import AuthContext


async def _create_request(client: AsyncClient, owner: AuthContext) -> dict[str, Any]:
    resp = await client.post(
        "/leave-requests",
        json={
            "user_id": str(owner.user_id),
            "leave_type": "vacation",
            "start_date": "2024-06-03",
            "end_date": "2024-06-07",
        },
        headers=headers_for(owner),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


async def test_pending_request_lands_in_manager_inbox(async_client: AsyncClient, org: Org) -> None:
    created = await _create_request(async_client, org.employee_a)

    resp = await async_client.get("/notifications", headers=headers_for(org.supervisor))

    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 1
    assert data["unread"] == 1
    note = data["items"][0]
    assert note["title"] == "Leave Request Pending Approval"
    assert note["related_id"] == created["id"]


async def test_decision_lands_in_owner_inbox(async_client: AsyncClient, org: Org) -> None:
    created = await _create_request(async_client, org.employee_a)
    await async_client.post(f"/leave-requests/{created['id']}/approve", headers=headers_for(org.supervisor))

    count = await async_client.get("/notifications/unread-count", headers=headers_for(org.employee_a))
    inbox = await async_client.get("/notifications", headers=headers_for(org.employee_a))

    assert count.json() == {"unread": 1}
    assert inbox.json()["items"][0]["type"] == "success"


async def test_mark_read_and_delete(async_client: AsyncClient, org: Org) -> None:
    await _create_request(async_client, org.employee_a)
    inbox = await async_client.get("/notifications", headers=headers_for(org.supervisor))
    note_id = inbox.json()["items"][0]["id"]

    foreign = await async_client.post(f"/notifications/{note_id}/read", headers=headers_for(org.employee_a))
    marked = await async_client.post(f"/notifications/{note_id}/read", headers=headers_for(org.supervisor))
    unread = await async_client.get(
        "/notifications",
        params={"is_read": False},
        headers=headers_for(org.supervisor),
    )

    assert foreign.status_code == 403
    assert marked.status_code == 200
    assert marked.json()["is_read"] is True
    assert unread.json()["total"] == 0

    deleted = await async_client.delete(f"/notifications/{note_id}", headers=headers_for(org.supervisor))
    missing = await async_client.delete(f"/notifications/{note_id}", headers=headers_for(org.supervisor))
    assert deleted.status_code == 204
    assert missing.status_code == 404


async def test_mark_all_read(async_client: AsyncClient, org: Org) -> None:
    await _create_request(async_client, org.employee_a)
    await _create_request(async_client, org.employee_c)

    resp = await async_client.post("/notifications/read-all", headers=headers_for(org.supervisor))
    count = await async_client.get("/notifications/unread-count", headers=headers_for(org.supervisor))

    assert resp.json() == {"updated": 2}
    assert count.json() == {"unread": 0}


# ---------------------------------------------------------------------------
# Audit logs
# ---------------------------------------------------------------------------


async def test_audit_logs_are_admin_and_hr_only(async_client: AsyncClient, org: Org) -> None:
    await _create_request(async_client, org.employee_a)

    employee = await async_client.get("/audit-logs", headers=headers_for(org.employee_a))
    supervisor = await async_client.get("/audit-logs", headers=headers_for(org.supervisor))
    hr = await async_client.get("/audit-logs", headers=headers_for(org.hr))

    assert employee.status_code == 403
    assert supervisor.status_code == 403
    assert hr.status_code == 200
    assert hr.json()["total"] == 1


async def test_audit_trail_for_request(async_client: AsyncClient, org: Org) -> None:
    created = await _create_request(async_client, org.employee_a)
    await async_client.post(
        f"/leave-requests/{created['id']}/reject",
        json={"reason": "Release week"},
        headers=headers_for(org.supervisor),
    )

    resp = await async_client.get(
        "/audit-logs",
        params={"resource_id": created["id"]},
        headers=headers_for(org.admin),
    )

    assert resp.status_code == 200
    entries = resp.json()["items"]
    assert {e["action"] for e in entries} == {"CREATE_LEAVE_REQUEST", "REJECT_LEAVE_REQUEST"}
    reject = next(e for e in entries if e["action"] == "REJECT_LEAVE_REQUEST")
    assert reject["user_id"] == str(org.supervisor.user_id)
    assert reject["details"]["reason"] == "Release week"
    assert reject["user_agent"].startswith("python-httpx")

    by_action = await async_client.get(
        "/audit-logs",
        params={"action": "CREATE_LEAVE_REQUEST"},
        headers=headers_for(org.admin),
    )
    assert by_action.json()["total"] == 1


async def test_audit_logs_reject_bad_windows(async_client: AsyncClient, org: Org) -> None:
    reversed_window = await async_client.get(
        "/audit-logs",
        params={"start": "2024-06-30", "end": "2024-06-01"},
        headers=headers_for(org.admin),
    )
    half_open = await async_client.get("/audit-logs", params={"start": "2024-06-01"}, headers=headers_for(org.admin))

    assert reversed_window.status_code == 422
    assert half_open.status_code == 422
    assert half_open.json()["error"] == "LeaveValidationError"
