"""
Camunda Job Worker for the process demo

The worker polls the broker for jobs of one type on a background thread
and hands each activated job to a handler:

    handler(client, job)

The handler runs on the worker thread and is responsible for completing or
failing the job through the client. Exceptions escaping the handler are
logged; the job then stays locked until its timeout expires on the broker.

close() waits for an activation request in flight to return. Jobs that
request brings back are failed with their retries unchanged, so the broker
can hand them to another worker right away.

Usage:
    worker = client.new_worker("processData", handle_job).open()
    ...
    worker.close()
"""

import logging
import threading
from typing import TYPE_CHECKING, List, Optional

from .errors import BrokerError
from .models import ActivatedJob

if TYPE_CHECKING:
    from .client import CamundaClient, JobHandler

logger = logging.getLogger(__name__)


class JobWorker:
    """Background poller that activates jobs of a single type."""

    def __init__(
        self,
        client: "CamundaClient",
        job_type: str,
        handler: "JobHandler",
        *,
        name: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        max_jobs: Optional[int] = None,
        poll_interval: Optional[float] = None,
        request_timeout_ms: Optional[int] = None,
        fetch_variables: Optional[List[str]] = None,
    ):
        config = client.config
        self.client = client
        self.job_type = job_type
        self.handler = handler
        self.name = name or config.worker_name
        self.timeout_ms = config.job_timeout_ms if timeout_ms is None else timeout_ms
        self.max_jobs = config.max_jobs_to_activate if max_jobs is None else max_jobs
        self.poll_interval = config.poll_interval if poll_interval is None else poll_interval
        self.request_timeout_ms = (
            config.activation_request_timeout_ms if request_timeout_ms is None else request_timeout_ms
        )
        self.fetch_variables = fetch_variables
        self._backoff_max = config.poll_backoff_max

        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._jobs_handled = 0

    @property
    def is_open(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def jobs_handled(self) -> int:
        with self._lock:
            return self._jobs_handled

    def open(self) -> "JobWorker":
        """Start polling. Returns self for chaining."""
        if self.is_open:
            logger.warning(f"Job worker for '{self.job_type}' already open")
            return self

        self._stop.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            name=f"job-worker-{self.job_type}",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Job worker '{self.name}' opened for job type '{self.job_type}'")
        return self

    @property
    def stop_timeout(self) -> float:
        """Longest a single activation request can take, in seconds."""
        return self.client.config.request_timeout + self.request_timeout_ms / 1000

    def close(self, timeout: Optional[float] = None) -> None:
        """
        Stop polling and wait for the worker thread to finish.

        Args:
            timeout: Join budget in seconds. Defaults to stop_timeout, so an
                activation request in flight is allowed to return.
        """
        self._stop.set()
        thread = self._thread
        if thread is None:
            return
        if timeout is None:
            timeout = self.stop_timeout
        if thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(
                    f"Job worker for '{self.job_type}' did not stop within {timeout}s"
                )
                return
        logger.info(f"Job worker for '{self.job_type}' closed")

    def __enter__(self) -> "JobWorker":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _poll_loop(self) -> None:
        backoff = self.poll_interval
        logger.debug(f"Polling for '{self.job_type}' jobs (interval={self.poll_interval}s)")

        while not self._stop.is_set():
            try:
                jobs = self.client.activate_jobs(
                    self.job_type,
                    worker=self.name,
                    timeout_ms=self.timeout_ms,
                    max_jobs=self.max_jobs,
                    request_timeout_ms=self.request_timeout_ms,
                    fetch_variables=self.fetch_variables,
                )
            except BrokerError as e:
                backoff = min(max(backoff * 2, 0.1), self._backoff_max)
                logger.error(f"Failed to activate '{self.job_type}' jobs, retrying in {backoff:.1f}s: {e}")
                self._stop.wait(timeout=backoff)
                continue

            backoff = self.poll_interval
            for job in jobs:
                if self._stop.is_set():
                    self._release(job)
                    continue
                self._handle(job)

            if not jobs:
                self._stop.wait(timeout=self.poll_interval)

    def _handle(self, job: ActivatedJob) -> None:
        logger.debug(f"Dispatching job {job.job_key} ({job.type}) to handler")
        try:
            self.handler(self.client, job)
        except Exception:
            logger.exception(f"Handler raised for job {job.job_key}")
        finally:
            with self._lock:
                self._jobs_handled += 1

    def _release(self, job: ActivatedJob) -> None:
        """Hand a job activated after close() back to the broker, retries unchanged."""
        logger.info(f"Worker closed, returning job {job.job_key} to the broker")
        try:
            self.client.fail_job(
                job.job_key,
                retries=job.retries,
                error_message=f"Job worker '{self.name}' closed before handling the job",
            )
        except BrokerError as e:
            logger.warning(f"Could not return job {job.job_key}, it stays locked until its timeout: {e}")

    def __repr__(self) -> str:
        return f"JobWorker(job_type={self.job_type!r}, name={self.name!r}, open={self.is_open})"
