"""
Logging configuration for safeauth.

Provides structured JSON logging for audit trails and debugging.
"""

import json
import logging
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, List, Optional

# Context variable for correlating nested authorization calls
correlation_id_var: ContextVar[str] = ContextVar('correlation_id', default='')


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs one JSON object per line, suitable for log aggregation.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        correlation_id = correlation_id_var.get()
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data)


class AuditLogger:
    """
    Specialized logger for audit events.

    Records authorization requests and decisions, approval writes, and
    security-relevant events.
    """

    def __init__(self, name: str = "safeauth.audit"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        """Internal logging method with extra fields."""
        if not self._logger.isEnabledFor(level):
            return

        extra = {
            "event_type": event_type,
            "correlation_id": correlation_id_var.get(),
            **kwargs
        }

        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "",
            0,
            f"{event_type}: {kwargs.get('message', '')}",
            (),
            None
        )
        record.extra_fields = extra
        self._logger.handle(record)

    def authorization_request(
        self,
        account: str,
        digest: str,
        required_count: int,
        bundle_length: int
    ) -> None:
        """Log an authorization request."""
        self._log(
            logging.DEBUG,
            "AUTHORIZATION_REQUEST",
            account=account,
            digest=digest,
            required_count=required_count,
            bundle_length=bundle_length,
            message=f"Authorization requested for {digest}"
        )

    def authorization_decision(
        self,
        account: str,
        digest: str,
        accepted: bool,
        failure_code: Optional[str] = None,
        signers: Optional[List[str]] = None,
        detail: Optional[str] = None
    ) -> None:
        """Log an authorization decision."""
        level = logging.INFO if accepted else logging.WARNING
        decision = "ACCEPTED" if accepted else "REJECTED"
        self._log(
            level,
            "AUTHORIZATION_DECISION",
            account=account,
            digest=digest,
            decision=decision,
            failure_code=failure_code,
            signers=signers,
            detail=detail,
            message=f"Authorization decision: {decision}"
        )

    def approval_recorded(
        self,
        account: str,
        owner: str,
        digest: str
    ) -> None:
        """Log an approval record write."""
        self._log(
            logging.INFO,
            "APPROVAL_RECORDED",
            account=account,
            owner=owner,
            digest=digest,
            message=f"Hash {digest} approved by {owner}"
        )

    def security_event(
        self,
        event: str,
        severity: str = "medium",
        **details
    ) -> None:
        """Log a security-relevant event."""
        level = {
            "low": logging.INFO,
            "medium": logging.WARNING,
            "high": logging.ERROR,
            "critical": logging.CRITICAL
        }.get(severity, logging.WARNING)

        self._log(
            level,
            "SECURITY_EVENT",
            security_event=event,
            severity=severity,
            **details,
            message=f"Security event: {event}"
        )


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting (recommended for production)
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    # stderr keeps CLI stdout clean for results
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def get_correlation_id() -> str:
    """Get the current correlation ID."""
    return correlation_id_var.get()


@contextmanager
def correlation_scope(correlation_id: Optional[str] = None) -> Iterator[str]:
    """
    Bind a correlation ID for the duration of a block.

    An ID already bound in the current context is kept, so nested
    authorizations log under the ID of the outermost one.

    Args:
        correlation_id: ID to bind, or None to generate one

    Yields:
        The correlation ID in effect inside the block
    """
    current = correlation_id_var.get()
    if current:
        yield current
        return

    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    token = correlation_id_var.set(correlation_id)
    try:
        yield correlation_id
    finally:
        correlation_id_var.reset(token)


# Global audit logger instance
audit_log = AuditLogger()
