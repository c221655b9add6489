"""
Process Demo: drives one BPMN process end to end through the broker.

Flow:
1. Deploy the process definition
2. Start a process instance
3. Wait for the user task and query it
4. Assign and complete the user task
5. Run a job worker for the service task (bounded by a completion gate)
6. Query the final process instance state

All process state lives in the broker. Each step is a blocking call;
broker errors propagate, "not found" is None.
"""

import logging
import time
from importlib import resources
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from pydantic import BaseModel

from ..broker.client import CamundaClient
from ..broker.models import (
    DeploymentResult,
    ProcessInstance,
    ProcessInstanceEvent,
    ProcessInstanceState,
    UserTask,
    UserTaskState,
)
from .config import DemoConfig
from .gate import CompletionGate
from .handlers import JobOutcome, ServiceTaskHandler
from .polling import poll_until

logger = logging.getLogger(__name__)

RESOURCE_PACKAGE = "camunda_demo.resources"

CLOSED_TASK_STATES = {
    UserTaskState.COMPLETED,
    UserTaskState.CANCELED,
    UserTaskState.FAILED,
}


class ProcessDemoError(Exception):
    """The demo run was aborted by a failing step."""


class DemoResult(BaseModel):
    """Summary of one demo run."""
    process_id: str
    deployment_key: Optional[int] = None
    process_instance_key: Optional[int] = None
    user_task_key: Optional[int] = None
    job_handled: Optional[bool] = None  # None: no service task step
    job_outcome: Optional[JobOutcome] = None
    final_state: Optional[ProcessInstanceState] = None


class ProcessDemo:
    """
    Runs the demo steps against a connected client.

    Usage:
        with CamundaClient() as client:
            result = ProcessDemo(client, DemoConfig.sample()).run()
    """

    def __init__(
        self,
        client: CamundaClient,
        config: Optional[DemoConfig] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.config = config or DemoConfig.sample()
        self._sleep = sleep

    # =========================================================================
    # Full run
    # =========================================================================

    def run(self) -> DemoResult:
        """Run every step in order. Any failing step aborts the run."""
        result = DemoResult(process_id=self.config.process_id)
        try:
            logger.info("Starting Camunda Process Demo")

            deployment = self.deploy_process_definition()
            result.deployment_key = deployment.key

            instance = self.start_process_instance()
            process_instance_key = instance.process_instance_key
            result.process_instance_key = process_instance_key

            task = self.wait_for_user_task(process_instance_key)
            if task is not None:
                self.assign_and_complete_user_task(task)
                result.user_task_key = task.user_task_key
            else:
                logger.warning(f"No user task found for process instance: {process_instance_key}")

            if self.config.service_task_type:
                handler = ServiceTaskHandler(CompletionGate())
                result.job_handled = self.activate_and_complete_service_task(handler)
                result.job_outcome = handler.last_outcome

            final = self.wait_for_final_state(process_instance_key)
            if final is not None:
                result.final_state = final.state
                logger.info(f"Process instance state: {final.state.value}")
            else:
                logger.warning(f"Process instance not found: {process_instance_key}")

            logger.info("Process demo completed successfully")
            return result

        except Exception as e:
            logger.error(f"Error during process demo execution: {e}")
            raise ProcessDemoError("Process demo failed") from e

    # =========================================================================
    # Deployment
    # =========================================================================

    def load_resource(self) -> Tuple[str, bytes]:
        """
        Locate the BPMN resource: a filesystem path, or a file bundled in
        camunda_demo.resources.

        Raises:
            FileNotFoundError: If neither exists
        """
        name = self.config.resource_name
        path = Path(name)
        if path.is_file():
            return path.name, path.read_bytes()

        bundled = resources.files(RESOURCE_PACKAGE).joinpath(name)
        if not bundled.is_file():
            raise FileNotFoundError(f"Could not find {name} in resources")
        return name, bundled.read_bytes()

    def deploy_process_definition(self) -> DeploymentResult:
        """Deploy the configured process definition."""
        try:
            logger.info("Deploying process definition...")
            name, content = self.load_resource()
            deployment = self.client.deploy_resource(name, content)
            logger.info(f"Process deployed successfully with key: {deployment.key}")
            return deployment
        except Exception as e:
            logger.error(f"Failed to deploy process definition: {e}")
            raise

    # =========================================================================
    # Process instance
    # =========================================================================

    def start_process_instance(
        self,
        variables: Optional[Dict[str, Any]] = None,
    ) -> ProcessInstanceEvent:
        """Start the latest version of the configured process."""
        if variables is None:
            variables = dict(self.config.start_variables)
        try:
            logger.info("Starting process instance...")
            instance = self.client.create_process_instance(self.config.process_id, variables)
            logger.info(f"Process instance started with key: {instance.process_instance_key}")
            return instance
        except Exception as e:
            logger.error(f"Failed to start process instance: {e}")
            raise

    def query_process_instance(self, process_instance_key: int) -> Optional[ProcessInstance]:
        """Look up a process instance; None if the broker does not know it (yet)."""
        instances = self.client.search_process_instances(process_instance_key=process_instance_key)
        return instances[0] if instances else None

    def wait_for_final_state(self, process_instance_key: int) -> Optional[ProcessInstance]:
        """Poll until the instance has left ACTIVE or the wait budget is spent."""
        if self.config.final_state_delay:
            self._sleep(self.config.final_state_delay)
        return poll_until(
            lambda: self.query_process_instance(process_instance_key),
            timeout=self.config.final_state_wait_timeout,
            interval=self.config.poll_interval,
            max_interval=self.config.poll_max_interval,
            condition=lambda instance: not instance.is_active,
            description=f"process instance {process_instance_key} to finish",
            sleep=self._sleep,
        )

    # =========================================================================
    # User task
    # =========================================================================

    def query_user_task(self, process_instance_key: int) -> Optional[UserTask]:
        """
        Query the open user task of a process instance.

        Returns:
            The oldest open task, or None if there is none
        """
        try:
            logger.info(f"Querying user tasks for process instance: {process_instance_key}")
            tasks = self.client.search_user_tasks(
                process_instance_key=process_instance_key,
                element_id=self.config.user_task_id,
            )
        except Exception as e:
            logger.error(f"Failed to query user tasks: {e}")
            raise

        open_tasks = [t for t in tasks if t.state not in CLOSED_TASK_STATES]
        if not open_tasks:
            logger.debug(f"No open user tasks for process instance: {process_instance_key}")
            return None

        task = open_tasks[0]
        logger.info(f"Found user task with key: {task.user_task_key}")
        return task

    def wait_for_user_task(self, process_instance_key: int) -> Optional[UserTask]:
        """Poll until the process instance reaches its user task."""
        if self.config.initial_task_delay:
            logger.info(f"Waiting {self.config.initial_task_delay}s for process to reach user task...")
            self._sleep(self.config.initial_task_delay)
        return poll_until(
            lambda: self.query_user_task(process_instance_key),
            timeout=self.config.task_wait_timeout,
            interval=self.config.poll_interval,
            max_interval=self.config.poll_max_interval,
            description=f"user task of process instance {process_instance_key}",
            sleep=self._sleep,
        )

    def assign_and_complete_user_task(self, task: UserTask) -> None:
        """
        Assign the task to the configured assignee, then complete it.

        The task snapshot may be stale by now; both commands act on the key
        and a broker rejection propagates. No compensation if only the
        assignment went through.
        """
        task_key = task.user_task_key
        try:
            logger.info(f"Assigning and completing user task with key: {task_key}")

            self.client.assign_user_task(task_key, self.config.assignee)
            logger.info(f"Task assigned to: {self.config.assignee}")

            self.client.complete_user_task(task_key, dict(self.config.task_variables))
            logger.info("User task completed successfully")
        except Exception as e:
            logger.error(f"Failed to assign and complete user task: {e}")
            raise

    # =========================================================================
    # Service task
    # =========================================================================

    def activate_and_complete_service_task(
        self,
        handler: Optional[ServiceTaskHandler] = None,
    ) -> bool:
        """
        Open a job worker for the service task and wait for one job.

        The worker is closed whether or not a job arrived in time.

        Returns:
            True if a job was handled before the timeout, False otherwise
        """
        job_type = self.config.service_task_type
        if not job_type:
            raise ValueError("No service task type configured")

        handler = handler or ServiceTaskHandler(CompletionGate())
        logger.info("Activating and completing service task job...")

        worker = self.client.new_worker(
            job_type,
            handler,
            request_timeout_ms=int(self.config.activation_timeout * 1000),
        ).open()
        try:
            completed = handler.gate.wait(timeout=self.config.job_timeout)
            if not completed:
                logger.warning("Service task job was not completed within timeout")
            return completed
        finally:
            worker.close()
