"""Prometheus metrics middleware and custom metrics.

Features:
- HTTP request metrics (latency, count, size)
- Meow taps, claim outcomes and redemptions
- Daily reset runs
"""

from fastapi import FastAPI
from prometheus_client import Counter, Gauge, Info
from prometheus_fastapi_instrumentator import Instrumentator, metrics

# =============================================================================
# Custom Metrics
# =============================================================================

APP_INFO = Info("meowchi_app", "Application information")

MEOW_TAPS = Counter(
    "meowchi_meow_taps_total",
    "Meow taps received",
    ["result"],  # counted, capped, throttled
)

MEOW_CLAIMS = Counter(
    "meowchi_meow_claims_total",
    "Claim attempts by outcome",
    ["outcome"],  # granted or a rejection code
)

MEOW_REDEMPTIONS = Counter(
    "meowchi_meow_redemptions_total",
    "Claim redemption attempts by outcome",
    ["outcome"],
)

STREAK_CLAIMS = Counter(
    "meowchi_streak_claims_total",
    "Daily streak claim attempts by outcome",
    ["outcome"],
)

DAILY_RESETS = Counter(
    "meowchi_daily_resets_total",
    "Daily reset job runs",
    ["status"],
)

MEOW_QUOTA_REMAINING = Gauge(
    "meowchi_meow_quota_remaining",
    "Claim slots left today after the last granted claim",
)


# =============================================================================
# Instrumentator Setup
# =============================================================================

def setup_prometheus(app: FastAPI, app_version: str = "1.0.0") -> Instrumentator:
    """Instrument the app and expose ``/metrics``."""
    APP_INFO.info({
        "version": app_version,
        "app_name": "meowchi",
    })

    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/health", "/health/live", "/health/ready", "/metrics"],
        inprogress_name="meowchi_http_requests_inprogress",
        inprogress_labels=True,
    )

    instrumentator.add(
        metrics.default(
            metric_namespace="meowchi",
            metric_subsystem="http",
            latency_highr_buckets=(0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5),
        )
    )
    instrumentator.add(
        metrics.request_size(
            metric_namespace="meowchi",
            metric_subsystem="http",
            should_include_handler=True,
            should_include_method=True,
        )
    )
    instrumentator.add(
        metrics.response_size(
            metric_namespace="meowchi",
            metric_subsystem="http",
            should_include_handler=True,
            should_include_method=True,
        )
    )

    instrumentator.instrument(app)
    instrumentator.expose(app, endpoint="/metrics", include_in_schema=True, tags=["Monitoring"])

    return instrumentator


# =============================================================================
# Metric Helper Functions
# =============================================================================

def record_tap(previous_count: int, cap: int, throttled: bool = False) -> None:
    """Count a tap; the tap that fills the counter still counts as ``counted``."""
    if throttled:
        result = "throttled"
    elif previous_count >= cap:
        result = "capped"
    else:
        result = "counted"
    MEOW_TAPS.labels(result=result).inc()


def record_claim(outcome: str) -> None:
    """Record a claim attempt.

    Args:
        outcome: "granted" or the rejection error code
    """
    MEOW_CLAIMS.labels(outcome=outcome).inc()


def record_redemption(outcome: str) -> None:
    MEOW_REDEMPTIONS.labels(outcome=outcome).inc()


def record_streak_claim(outcome: str) -> None:
    STREAK_CLAIMS.labels(outcome=outcome).inc()


def record_daily_reset(status: str) -> None:
    DAILY_RESETS.labels(status=status).inc()


async def publish_claim(user_id: int, result) -> None:
    """Post-commit claim hook: expose the slots left for the day."""
    MEOW_QUOTA_REMAINING.set(result.remaining_global)
