"""Leave inbox — workflow messages, per-request filtering and read state."""

from __future__ import annotations

from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.common.constants import LeaveType, NotificationType, UserRole
from leavedesk.common.pagination import PaginationParams
from leavedesk.leave.schemas import LeaveRequestCreate
from leavedesk.leave.service import LeaveService
from leavedesk.notifications.service import NotificationService
from tests.conftest import seed_employee, seed_quotas


def _page() -> PaginationParams:
    return PaginationParams(page=1, page_size=50, sort=None)


async def _team(db: AsyncSession):
    await seed_quotas(db)
    manager = await seed_employee(db, first_name="Mana", role=UserRole.manager)
    employee = await seed_employee(db, first_name="Emma", manager_id=manager.id)
    hr = await seed_employee(db, first_name="Hana", role=UserRole.hr)
    return manager, employee, hr


async def _apply(db: AsyncSession, employee, on: date):
    return await LeaveService.apply_leave(
        db,
        employee.id,
        LeaveRequestCreate(leave_type=LeaveType.personal, start_date=on, end_date=on),
    )


class TestInbox:

    async def test_filter_by_leave_request(self, db: AsyncSession):
        manager, employee, _ = await _team(db)
        first = await _apply(db, employee, date(2026, 1, 5))
        second = await _apply(db, employee, date(2026, 1, 6))

        page = await NotificationService.get_inbox(
            db, manager.id, _page(), leave_request_id=second.id,
        )

        assert [n.leave_request_id for n in page.data] == [second.id]
        assert page.data[0].link == f"/leave/requests/{second.id}"
        assert page.meta.total == 1
        assert page.meta.unread == 2
        assert first.id != second.id

    async def test_hr_cancellation_tells_owner_and_manager(self, db: AsyncSession):
        manager, employee, hr = await _team(db)
        req = await _apply(db, employee, date(2026, 1, 5))

        await LeaveService.cancel_leave(db, req.id, hr, "Duplicate entry")

        owner_inbox = await NotificationService.get_inbox(db, employee.id, _page())
        assert [n.title for n in owner_inbox.data] == ["Leave Request Cancelled"]

        manager_inbox = await NotificationService.get_inbox(
            db, manager.id, _page(), notification_type=NotificationType.info,
        )
        assert [n.title for n in manager_inbox.data] == ["Leave Cancelled"]
        assert "Duplicate entry" in manager_inbox.data[0].message
        assert manager_inbox.data[0].leave_request_id == req.id

    async def test_mark_request_read_leaves_others_unread(self, db: AsyncSession):
        manager, employee, _ = await _team(db)
        first = await _apply(db, employee, date(2026, 1, 5))
        await _apply(db, employee, date(2026, 1, 6))

        cleared = await NotificationService.mark_request_read(db, manager.id, first.id)

        assert cleared == 1
        assert await NotificationService.unread_count(db, manager.id) == 1
        unread = await NotificationService.get_inbox(db, manager.id, _page(), unread_only=True)
        assert first.id not in {n.leave_request_id for n in unread.data}

    async def test_mark_read_keeps_first_read_time(self, db: AsyncSession):
        manager, employee, _ = await _team(db)
        await _apply(db, employee, date(2026, 1, 5))
        page = await NotificationService.get_inbox(db, manager.id, _page())
        note_id = page.data[0].id

        first = await NotificationService.mark_read(db, note_id, manager.id)
        read_at = first.read_at
        again = await NotificationService.mark_read(db, note_id, manager.id)

        assert again.is_read is True
        assert again.read_at == read_at
        assert await NotificationService.unread_count(db, manager.id) == 0
