"""Request-scoped dependencies shared by the v1 endpoints."""

from typing import Optional

from fastapi import Request

from estate_ledger.services.settlement_service import Notifier


def get_notifier(request: Request) -> Optional[Notifier]:
    """``notify`` of the app's outbox dispatcher, when one is running."""
    dispatcher = getattr(request.app.state, "dispatcher", None)
    return dispatcher.notify if dispatcher is not None else None
