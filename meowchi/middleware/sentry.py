"""Sentry error tracking integration.

Business rejections (claims, streaks, auth) are expected outcomes and are
never reported. Without a DSN nothing is initialized.
"""

import logging
import os
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.celery import CeleryIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

EXPECTED_ERRORS = frozenset(
    {
        "ClaimRejectedError",
        "RedeemError",
        "StreakError",
        "TelegramAuthError",
        "UserNotFoundError",
        "RequestValidationError",
        "ValidationError",
    }
)


def init_sentry(
    dsn: str | None = None,
    environment: str = "development",
    release: str | None = None,
    traces_sample_rate: float = 0.05,
    profiles_sample_rate: float = 0.01,
) -> bool:
    """Initialize Sentry SDK.

    Args:
        dsn: Sentry DSN. If None, uses SENTRY_DSN env var.
        environment: Environment name (development, staging, production)
        release: Release version string
        traces_sample_rate: Fraction of transactions to trace
        profiles_sample_rate: Fraction of transactions to profile

    Returns:
        True if Sentry was initialized, False otherwise
    """
    sentry_dsn = dsn or os.getenv("SENTRY_DSN")
    if not sentry_dsn:
        return False

    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=environment,
        release=release or os.getenv("APP_VERSION", "1.0.0"),
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            CeleryIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        traces_sample_rate=traces_sample_rate,
        profiles_sample_rate=profiles_sample_rate,
        send_default_pii=False,
        before_send=_before_send,
        before_send_transaction=_before_send_transaction,
    )
    return True


def _before_send(event: dict, hint: dict) -> dict | None:
    """Drop expected business errors."""
    if "exc_info" in hint:
        exc_type = hint["exc_info"][0]
        if exc_type.__name__ in EXPECTED_ERRORS:
            return None
    return event


def _before_send_transaction(event: dict, hint: dict) -> dict | None:
    """Drop health check and metrics transactions."""
    transaction_name = event.get("transaction", "")
    if any(path in transaction_name for path in ["/health", "/metrics"]):
        return None
    return event


def set_user_context(user_id: int, username: str | None = None) -> None:
    sentry_sdk.set_user({"id": str(user_id), "username": username})


def capture_claim_error(
    error: Exception,
    user_id: int,
    day: str,
    extra: dict[str, Any] | None = None,
) -> str | None:
    """Report an unexpected failure on the claim path."""
    with sentry_sdk.new_scope() as scope:
        scope.set_level("error")
        scope.set_user({"id": str(user_id)})
        scope.set_tag("meow_day", day)
        scope.set_tag("claim_error", "true")
        for key, value in (extra or {}).items():
            scope.set_extra(key, value)
        return sentry_sdk.capture_exception(error)
