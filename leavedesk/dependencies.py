"""Shared FastAPI dependencies."""

from fastapi import Request

from leavedesk.leave.ledger import QuotaSettingsCache


def get_quota_cache(request: Request) -> QuotaSettingsCache:
    """The application-wide quota cache created in ``create_app``."""
    return request.app.state.quota_cache
