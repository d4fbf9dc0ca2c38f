"""
Audit trail

Security-relevant outcomes are written as one JSON document per event to the
``audit`` logger, rendered by structlog. Callers must never pass passwords,
OTPs or raw tokens.
"""

import logging
from typing import Any, Optional
from uuid import UUID

import structlog

from .crypto import truncate_user_agent

audit_logger = structlog.wrap_logger(
    logging.getLogger("audit"),
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.JSONRenderer(sort_keys=True),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
)


def audit(
    event: str,
    *,
    user_id: Optional[UUID] = None,
    ip: Optional[str] = None,
    user_agent: Optional[str] = None,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    audit_logger.log(
        level,
        event,
        user_id=str(user_id) if user_id else None,
        ip=ip,
        user_agent=truncate_user_agent(user_agent),
        **fields,
    )
