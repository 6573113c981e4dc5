"""Notification backends."""

from .backend import (  # noqa: F401
    EmailBackend,
    InMemoryEmailBackend,
    LoggingEmailBackend,
    SMTPEmailBackend,
    build_email_backend,
)
