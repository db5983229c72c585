"""Prometheus metrics for the HTTP layer."""

from prometheus_fastapi_instrumentator import Instrumentator
from fastapi import FastAPI


def setup_monitoring(app: FastAPI) -> None:
    """Instrument request counts and latencies and expose them at ``/metrics``.

    Does nothing unless ENABLE_METRICS=true.
    """
    Instrumentator(
        should_group_status_codes=False,
        should_respect_env_var=True,
        env_var_name="ENABLE_METRICS",
        # Unmatched paths (scanners, typos) are not recorded
        should_ignore_untemplated=True,
        excluded_handlers=["/metrics", "/health", "/favicon.ico"],
    ).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
