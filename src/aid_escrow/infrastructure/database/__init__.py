"""Database infrastructure — engine, ORM models, error translation and repositories."""

from aid_escrow.infrastructure.database.engine import (
    close_db,
    get_async_session,
    init_db,
    ping_db,
    session_scope,
)
from aid_escrow.infrastructure.database.errors import (
    translate_db_error,
    translate_db_errors,
)
from aid_escrow.infrastructure.database.orm_models import (
    AuditEvent,
    Base,
    Campaign,
    Claim,
)
from aid_escrow.infrastructure.database.repositories import (
    AuditOutboxRepository,
    CampaignRepository,
    ClaimRepository,
)

__all__ = [
    "Base",
    "AuditEvent",
    "Campaign",
    "Claim",
    "AuditOutboxRepository",
    "CampaignRepository",
    "ClaimRepository",
    "translate_db_error",
    "translate_db_errors",
    "get_async_session",
    "session_scope",
    "init_db",
    "ping_db",
    "close_db",
]
