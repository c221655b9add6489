"""
Camunda Configuration for the process demo

All connection settings loaded from environment variables.
Zero hardcoding principle applied.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class CamundaConfig:
    """Camunda REST connection and job worker configuration."""

    # Connection
    rest_address: str = "http://localhost:8080"
    api_prefix: str = "/v2"
    request_timeout: float = 30.0  # seconds per blocking REST call
    tenant_id: Optional[str] = None

    # Basic auth (self-managed clusters)
    username: Optional[str] = None
    password: Optional[str] = None

    # Job worker
    worker_name: str = "camunda-demo-worker"
    job_timeout_ms: int = 300_000  # job lock held by this worker
    max_jobs_to_activate: int = 32
    poll_interval: float = 0.1  # seconds between empty activations
    activation_request_timeout_ms: int = 10_000  # long-poll on the broker side
    poll_backoff_max: float = 5.0  # cap on backoff after activation errors

    @property
    def base_url(self) -> str:
        """REST API root, e.g. http://localhost:8080/v2."""
        return self.rest_address.rstrip("/") + self.api_prefix

    @property
    def auth(self) -> Optional[Tuple[str, str]]:
        """Basic auth tuple for requests, if credentials are configured."""
        if self.username and self.password:
            return (self.username, self.password)
        return None

    @classmethod
    def from_env(cls) -> "CamundaConfig":
        """Load configuration from environment variables."""
        return cls(
            rest_address=os.getenv("CAMUNDA_REST_ADDRESS", "http://localhost:8080"),
            request_timeout=float(os.getenv("CAMUNDA_REQUEST_TIMEOUT", "30")),
            tenant_id=os.getenv("CAMUNDA_TENANT_ID") or None,
            username=os.getenv("CAMUNDA_USERNAME") or None,
            password=os.getenv("CAMUNDA_PASSWORD") or None,
            worker_name=os.getenv("CAMUNDA_WORKER_NAME", "camunda-demo-worker"),
            job_timeout_ms=int(os.getenv("CAMUNDA_JOB_TIMEOUT_MS", "300000")),
            max_jobs_to_activate=int(os.getenv("CAMUNDA_MAX_JOBS", "32")),
            poll_interval=float(os.getenv("CAMUNDA_POLL_INTERVAL", "0.1")),
        )
