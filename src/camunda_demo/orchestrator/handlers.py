"""
Job handlers for the process demo service task.

Architecture (same split as the activities of a workflow worker):
- mark_processed: pure business logic (testable without a broker)
- ServiceTaskHandler: worker-facing wrapper that completes or fails the job
  and signals the completion gate
"""

import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..broker.client import CamundaClient
from ..broker.errors import BrokerError
from ..broker.models import ActivatedJob
from .gate import CompletionGate

logger = logging.getLogger(__name__)

JobProcessor = Callable[[Dict[str, Any]], Dict[str, Any]]


class JobOutcome(str, Enum):
    """What the handler reported to the broker for a job."""
    COMPLETED = "completed"
    FAILED = "failed"


def mark_processed(
    variables: Dict[str, Any],
    *,
    clock: Callable[[], float] = time.time,
) -> Dict[str, Any]:
    """
    Merge the processing result into the job's variables.

    Args:
        variables: Variables delivered with the job

    Returns:
        New dict: original variables plus processed/processedAt (epoch ms)
    """
    result = dict(variables)
    result["processed"] = True
    result["processedAt"] = int(clock() * 1000)
    return result


class ServiceTaskHandler:
    """
    Handles service task jobs: process, complete, count down.

    If processing or completion raises, the job is failed with zero retries
    so the broker raises an incident instead of rescheduling it. The gate is
    signalled once per invocation in every case.
    """

    def __init__(
        self,
        gate: CompletionGate,
        processor: JobProcessor = mark_processed,
    ):
        self.gate = gate
        self.processor = processor
        self.outcomes: Dict[int, JobOutcome] = {}
        self.errors: List[str] = []

    @property
    def last_outcome(self) -> Optional[JobOutcome]:
        if not self.outcomes:
            return None
        return list(self.outcomes.values())[-1]

    def __call__(self, client: CamundaClient, job: ActivatedJob) -> None:
        try:
            logger.info(f"Processing job with key: {job.job_key}")
            variables = self.processor(dict(job.variables))
            client.complete_job(job.job_key, variables)
            self.outcomes[job.job_key] = JobOutcome.COMPLETED
            logger.info("Service task job completed successfully")
        except Exception as e:
            logger.error(f"Failed to complete job {job.job_key}: {e}")
            self._fail(client, job, e)
        finally:
            self.gate.count_down()

    def _fail(self, client: CamundaClient, job: ActivatedJob, error: Exception) -> None:
        self.outcomes[job.job_key] = JobOutcome.FAILED
        self.errors.append(str(error))
        try:
            client.fail_job(
                job.job_key,
                retries=0,
                error_message=f"Job processing failed: {error}",
            )
        except BrokerError as fail_error:
            logger.error(f"Could not report failure of job {job.job_key}: {fail_error}")
