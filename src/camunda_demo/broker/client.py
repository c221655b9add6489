"""
Camunda Client for the process demo

Provides a blocking connection to the Camunda 8 REST API (/v2) and the
commands the demo needs: deploy, start, search, assign, complete, and the
job commands used by workers.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import requests

from .config import CamundaConfig
from .errors import BrokerConnectionError, BrokerRequestError, ClientClosedError
from .models import (
    ActivatedJob,
    DeploymentResult,
    ProcessInstance,
    ProcessInstanceEvent,
    ProcessInstanceState,
    Topology,
    UserTask,
)

logger = logging.getLogger(__name__)

JobHandler = Callable[["CamundaClient", ActivatedJob], None]


class CamundaClient:
    """
    Camunda REST client wrapper.

    One instance holds one HTTP session; create it once and close it on
    shutdown. Every method blocks until the broker has answered.

    Usage:
        with CamundaClient() as client:
            deployment = client.deploy_resource_file("sample-process.bpmn")
            instance = client.create_process_instance("sample-process")
    """

    def __init__(
        self,
        config: Optional[CamundaConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config or CamundaConfig.from_env()
        self._session: Optional[requests.Session] = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})
        if self.config.auth:
            self._session.auth = self.config.auth

    def close(self) -> None:
        """Release the HTTP session."""
        if self._session is not None:
            self._session.close()
            self._session = None
            logger.debug("Camunda client closed")

    def __enter__(self) -> "CamundaClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def session(self) -> requests.Session:
        """Get underlying HTTP session."""
        if self._session is None:
            raise ClientClosedError("Client is closed")
        return self._session

    @property
    def is_closed(self) -> bool:
        return self._session is None

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        files: Optional[List[Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[Dict[str, Any]]:
        """Send one request and return the decoded body (None for 204)."""
        url = f"{self.config.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                json=json,
                files=files,
                data=data,
                timeout=timeout or self.config.request_timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise BrokerConnectionError(f"{method} {url} failed: {e}") from e

        if response.status_code >= 400:
            try:
                problem = response.json()
            except ValueError:
                problem = {"detail": response.text} if response.text else None
            raise BrokerRequestError.from_problem(method, path, response.status_code, problem)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # =========================================================================
    # Cluster
    # =========================================================================

    def topology(self) -> Topology:
        """Get cluster topology (brokers, partitions, gateway version)."""
        return Topology.model_validate(self._request("GET", "/topology"))

    # =========================================================================
    # Deployment
    # =========================================================================

    def deploy_resource(self, name: str, content: bytes) -> DeploymentResult:
        """
        Deploy a single resource (BPMN, DMN, form).

        Args:
            name: Resource file name, e.g. "sample-process.bpmn"
            content: Raw resource bytes

        Returns:
            DeploymentResult with the deployment key
        """
        data = {"tenantId": self.config.tenant_id} if self.config.tenant_id else None
        body = self._request(
            "POST",
            "/deployments",
            files=[("resources", (name, content, "application/octet-stream"))],
            data=data,
        )
        return DeploymentResult.model_validate(body)

    def deploy_resource_file(self, path: Union[str, Path]) -> DeploymentResult:
        """Deploy a resource from the filesystem."""
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Could not find resource {path}")
        return self.deploy_resource(path.name, path.read_bytes())

    # =========================================================================
    # Process instances
    # =========================================================================

    def create_process_instance(
        self,
        process_definition_id: str,
        variables: Optional[Dict[str, Any]] = None,
        *,
        version: Optional[int] = None,
    ) -> ProcessInstanceEvent:
        """
        Start a process instance.

        Args:
            process_definition_id: BPMN process id
            variables: Initial process variables
            version: Definition version (latest if not provided)
        """
        payload: Dict[str, Any] = {
            "processDefinitionId": process_definition_id,
            "variables": variables or {},
        }
        if version is not None:
            payload["processDefinitionVersion"] = version
        if self.config.tenant_id:
            payload["tenantId"] = self.config.tenant_id
        body = self._request("POST", "/process-instances", json=payload)
        return ProcessInstanceEvent.model_validate(body)

    def search_process_instances(
        self,
        *,
        process_instance_key: Optional[int] = None,
        process_definition_id: Optional[str] = None,
        state: Optional[ProcessInstanceState] = None,
        limit: int = 100,
    ) -> List[ProcessInstance]:
        """Search process instances. An empty list means nothing matched."""
        filters: Dict[str, Any] = {}
        if process_instance_key is not None:
            filters["processInstanceKey"] = str(process_instance_key)
        if process_definition_id is not None:
            filters["processDefinitionId"] = process_definition_id
        if state is not None:
            filters["state"] = ProcessInstanceState(state).value
        body = self._request(
            "POST",
            "/process-instances/search",
            json={"filter": filters, "page": {"limit": limit}},
        )
        return [ProcessInstance.model_validate(item) for item in (body or {}).get("items", [])]

    # =========================================================================
    # User tasks
    # =========================================================================

    def search_user_tasks(
        self,
        *,
        process_instance_key: Optional[int] = None,
        user_task_key: Optional[int] = None,
        element_id: Optional[str] = None,
        assignee: Optional[str] = None,
        limit: int = 100,
    ) -> List[UserTask]:
        """Search user tasks, oldest first. An empty list means nothing matched."""
        filters: Dict[str, Any] = {}
        if process_instance_key is not None:
            filters["processInstanceKey"] = str(process_instance_key)
        if user_task_key is not None:
            filters["userTaskKey"] = str(user_task_key)
        if element_id is not None:
            filters["elementId"] = element_id
        if assignee is not None:
            filters["assignee"] = assignee
        body = self._request(
            "POST",
            "/user-tasks/search",
            json={
                "filter": filters,
                "sort": [{"field": "creationDate", "order": "ASC"}],
                "page": {"limit": limit},
            },
        )
        return [UserTask.model_validate(item) for item in (body or {}).get("items", [])]

    def assign_user_task(self, user_task_key: int, assignee: str, *, allow_override: bool = True) -> None:
        """Assign a user task to an actor."""
        self._request(
            "POST",
            f"/user-tasks/{user_task_key}/assignment",
            json={"assignee": assignee, "allowOverride": allow_override},
        )

    def complete_user_task(self, user_task_key: int, variables: Optional[Dict[str, Any]] = None) -> None:
        """Complete a user task, optionally setting output variables."""
        self._request(
            "POST",
            f"/user-tasks/{user_task_key}/completion",
            json={"variables": variables or {}},
        )

    # =========================================================================
    # Jobs
    # =========================================================================

    def activate_jobs(
        self,
        job_type: str,
        *,
        worker: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        max_jobs: Optional[int] = None,
        request_timeout_ms: Optional[int] = None,
        fetch_variables: Optional[List[str]] = None,
    ) -> List[ActivatedJob]:
        """
        Activate jobs of the given type (long poll).

        The broker holds the request for up to request_timeout_ms when no
        job is available, so the HTTP timeout is extended accordingly.
        """
        request_timeout_ms = (
            self.config.activation_request_timeout_ms
            if request_timeout_ms is None else request_timeout_ms
        )
        payload: Dict[str, Any] = {
            "type": job_type,
            "worker": worker or self.config.worker_name,
            "timeout": self.config.job_timeout_ms if timeout_ms is None else timeout_ms,
            "maxJobsToActivate": self.config.max_jobs_to_activate if max_jobs is None else max_jobs,
            "requestTimeout": request_timeout_ms,
        }
        if fetch_variables is not None:
            payload["fetchVariable"] = fetch_variables
        if self.config.tenant_id:
            payload["tenantIds"] = [self.config.tenant_id]
        body = self._request(
            "POST",
            "/jobs/activation",
            json=payload,
            timeout=self.config.request_timeout + request_timeout_ms / 1000,
        )
        return [ActivatedJob.model_validate(item) for item in (body or {}).get("jobs", [])]

    def complete_job(self, job_key: int, variables: Optional[Dict[str, Any]] = None) -> None:
        """Complete a job with result variables."""
        self._request("POST", f"/jobs/{job_key}/completion", json={"variables": variables or {}})

    def fail_job(self, job_key: int, *, retries: int, error_message: str = "") -> None:
        """
        Report a job failure.

        retries=0 raises an incident on the broker instead of rescheduling.
        """
        self._request(
            "POST",
            f"/jobs/{job_key}/failure",
            json={"retries": retries, "errorMessage": error_message},
        )

    def new_worker(self, job_type: str, handler: JobHandler, **options: Any) -> "JobWorker":
        """Create (not yet opened) job worker bound to this client."""
        from .worker import JobWorker

        return JobWorker(self, job_type, handler, **options)
