"""
Logging configuration for the Miss Belle backend.

Everything goes through structlog and renders as JSON on stdout. Each HTTP
request binds a ``request_id`` (and, once authenticated, the caller's
profile) into the structlog context so audit lines can be correlated.
"""

import logging
import sys
import uuid
from typing import Any, Dict, Optional
import structlog
from structlog.stdlib import LoggerFactory
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from belle.core.config import settings


def configure_logging():
    """Configure structlog, stdlib logging and, when a DSN is set, Sentry."""

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if settings.debug else logging.INFO,
        stream=sys.stdout
    )
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.debug else logging.WARNING
    )

    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            integrations=[FastApiIntegration(), SqlalchemyIntegration()],
            traces_sample_rate=0.1 if settings.is_production else 1.0,
            environment=settings.app_env,
            release=settings.app_version,
            send_default_pii=False,
        )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def bind_request_context(request_id: Optional[str] = None) -> str:
    """Start a fresh log context for one request and return its id."""
    request_id = request_id or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    return request_id


def bind_caller(profile_id: Any, role: str) -> None:
    structlog.contextvars.bind_contextvars(profile_id=str(profile_id), role=role)


class AuditLogger:
    """Audit trail of clinic data changes, session changes and security events."""

    def __init__(self):
        self.logger = get_logger("audit")

    def log_user_action(
        self,
        user_id: str,
        action: str,
        entity: str,
        entity_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.logger.info(
            "User action",
            user_id=user_id,
            action=action,
            entity=entity,
            entity_id=entity_id,
            details=details or {}
        )

    def log_session_event(self, event: str, profile_id: str, session_id: str):
        """Sign-in, sign-out and token refresh."""
        self.logger.info("Session event", event=event, user_id=profile_id, session_id=session_id)

    def log_security_event(
        self,
        event_type: str,
        user_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.logger.warning(
            "Security event",
            event_type=event_type,
            user_id=user_id,
            ip_address=ip_address,
            details=details or {}
        )


# Global audit logger
audit_logger = AuditLogger()


class RequestLogger:
    """Access log line per HTTP request."""

    def __init__(self):
        self.logger = get_logger("requests")

    async def log_request(self, request, response, process_time: float):
        self.logger.info(
            "HTTP request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            process_time=round(process_time, 4),
            user_agent=request.headers.get("user-agent"),
            ip_address=request.client.host if request.client else None
        )


# Global request logger
request_logger = RequestLogger()
