"""
Shared fixtures: an in-memory broker behind a real CamundaClient.

FakeBrokerClient only replaces the HTTP round trip (_request); payload
building, response parsing and the job worker run for real.
"""

import itertools
import re
import threading
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from camunda_demo.broker.client import CamundaClient
from camunda_demo.broker.config import CamundaConfig
from camunda_demo.broker.errors import BrokerRequestError
from camunda_demo.orchestrator.config import DemoConfig


class FakeBroker:
    """
    Minimal process engine for the two bundled definitions.

    start -> user task -> [service task job] -> end
    """

    # process id -> (user task element id, service task job type or None)
    DEFINITIONS = {
        "sample-process": ("user-task", "processData"),
        "demoProcess": ("userTask_1", None),
    }

    def __init__(self):
        self._keys = itertools.count(2251799813685249)
        self._lock = threading.Lock()
        self.calls: List[Dict[str, Any]] = []
        self.deployed: List[str] = []
        self.instances: Dict[int, Dict[str, Any]] = {}
        self.user_tasks: Dict[int, Dict[str, Any]] = {}
        self.jobs: Dict[int, Dict[str, Any]] = {}
        self.completed_jobs: List[Dict[str, Any]] = []
        self.failed_jobs: List[Dict[str, Any]] = []
        # Number of empty user task searches before the task shows up
        self.user_task_delay_polls = 0
        self.fail_on: Dict[str, int] = {}

    def next_key(self) -> int:
        return next(self._keys)

    def calls_to(self, pattern: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if re.fullmatch(pattern, c["path"])]

    # -------------------------------------------------------------------------

    def handle(self, method: str, path: str, json: Optional[Dict[str, Any]], files: Any) -> Optional[Dict[str, Any]]:
        with self._lock:
            self.calls.append({"method": method, "path": path, "json": json, "files": files})
            for pattern, status in self.fail_on.items():
                if re.fullmatch(pattern, path):
                    raise BrokerRequestError.from_problem(
                        method, path, status, {"title": "Rejected", "detail": f"{path} rejected"}
                    )
            return self._route(method, path, json or {}, files)

    def _route(self, method: str, path: str, body: Dict[str, Any], files: Any) -> Optional[Dict[str, Any]]:
        if method == "GET" and path == "/topology":
            return {
                "brokers": [{"nodeId": 0, "host": "zeebe", "port": 26501, "version": "8.8.0",
                             "partitions": [{"partitionId": 1, "role": "leader", "health": "healthy"}]}],
                "clusterSize": 1,
                "partitionsCount": 1,
                "replicationFactor": 1,
                "gatewayVersion": "8.8.0",
            }
        if path == "/deployments":
            return self._deploy(files)
        if path == "/process-instances":
            return self._create_instance(body)
        if path == "/process-instances/search":
            key = int(body["filter"]["processInstanceKey"])
            instance = self.instances.get(key)
            return {"items": [self._instance_item(key, instance)] if instance else []}
        if path == "/user-tasks/search":
            return self._search_user_tasks(body["filter"])
        match = re.fullmatch(r"/user-tasks/(\d+)/(assignment|completion)", path)
        if match:
            return self._user_task_command(int(match.group(1)), match.group(2), body)
        if path == "/jobs/activation":
            return self._activate_jobs(body)
        match = re.fullmatch(r"/jobs/(\d+)/(completion|failure)", path)
        if match:
            return self._job_command(int(match.group(1)), match.group(2), body)
        raise BrokerRequestError.from_problem(method, path, 404, {"title": "Not Found"})

    def _deploy(self, files: Any) -> Dict[str, Any]:
        name, content, _ = files[0][1]
        process_id = re.search(rb'<bpmn:process id="([^"]+)"', content).group(1).decode()
        self.deployed.append(process_id)
        return {
            "deploymentKey": str(self.next_key()),
            "tenantId": "<default>",
            "deployments": [{"processDefinition": {
                "processDefinitionId": process_id,
                "processDefinitionVersion": self.deployed.count(process_id),
                "processDefinitionKey": str(self.next_key()),
                "resourceName": name,
                "tenantId": "<default>",
            }}],
        }

    def _create_instance(self, body: Dict[str, Any]) -> Dict[str, Any]:
        process_id = body["processDefinitionId"]
        if process_id not in self.deployed:
            raise BrokerRequestError.from_problem(
                "POST", "/process-instances", 404,
                {"title": "NOT_FOUND", "detail": f"Expected to find process definition with process ID '{process_id}'"},
            )
        key = self.next_key()
        element_id, job_type = self.DEFINITIONS[process_id]
        self.instances[key] = {
            "processDefinitionId": process_id,
            "state": "ACTIVE",
            "variables": dict(body.get("variables") or {}),
            "job_type": job_type,
        }
        task_key = self.next_key()
        self.user_tasks[task_key] = {
            "userTaskKey": str(task_key),
            "processInstanceKey": str(key),
            "elementId": element_id,
            "name": "Review order",
            "state": "CREATED",
            "assignee": None,
            "processDefinitionId": process_id,
        }
        return {
            "processDefinitionId": process_id,
            "processDefinitionKey": str(self.next_key()),
            "processDefinitionVersion": 1,
            "processInstanceKey": str(key),
            "tenantId": "<default>",
        }

    def _instance_item(self, key: int, instance: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "processInstanceKey": str(key),
            "processDefinitionId": instance["processDefinitionId"],
            "state": instance["state"],
            "hasIncident": instance.get("incident", False),
        }

    def _search_user_tasks(self, filters: Dict[str, Any]) -> Dict[str, Any]:
        if self.user_task_delay_polls > 0:
            self.user_task_delay_polls -= 1
            return {"items": [], "page": {"totalItems": 0}}
        items = [
            dict(t) for t in self.user_tasks.values()
            if ("processInstanceKey" not in filters or t["processInstanceKey"] == filters["processInstanceKey"])
            and ("userTaskKey" not in filters or t["userTaskKey"] == filters["userTaskKey"])
            and ("elementId" not in filters or t["elementId"] == filters["elementId"])
        ]
        return {"items": items, "page": {"totalItems": len(items)}}

    def _user_task_command(self, key: int, command: str, body: Dict[str, Any]) -> None:
        task = self.user_tasks[key]
        if task["state"] != "CREATED":
            raise BrokerRequestError.from_problem("POST", f"/user-tasks/{key}/{command}", 409, {"title": "INVALID_STATE"})
        if command == "assignment":
            task["assignee"] = body["assignee"]
            return None

        task["state"] = "COMPLETED"
        instance_key = int(task["processInstanceKey"])
        instance = self.instances[instance_key]
        instance["variables"].update(body.get("variables") or {})
        if instance["job_type"]:
            job_key = self.next_key()
            self.jobs[job_key] = {
                "jobKey": str(job_key),
                "type": instance["job_type"],
                "processInstanceKey": str(instance_key),
                "elementId": "service-task",
                "retries": 3,
                "variables": dict(instance["variables"]),
                "customHeaders": {},
                "activated": False,
            }
        else:
            instance["state"] = "COMPLETED"
        return None

    def _activate_jobs(self, body: Dict[str, Any]) -> Dict[str, Any]:
        jobs = []
        for job in self.jobs.values():
            if job["type"] == body["type"] and not job["activated"]:
                job["activated"] = True
                jobs.append({k: v for k, v in job.items() if k != "activated"} | {"worker": body["worker"]})
        return {"jobs": jobs[: body["maxJobsToActivate"]]}

    def _job_command(self, key: int, command: str, body: Dict[str, Any]) -> None:
        job = self.jobs.pop(key)
        instance = self.instances[int(job["processInstanceKey"])]
        if command == "completion":
            self.completed_jobs.append({"jobKey": key, "variables": body["variables"]})
            instance["variables"].update(body["variables"])
            instance["state"] = "COMPLETED"
        else:
            self.failed_jobs.append({"jobKey": key, **body})
            instance["incident"] = True
        return None


class FakeBrokerClient(CamundaClient):
    """CamundaClient whose HTTP round trip is served by a FakeBroker."""

    def __init__(self, broker: FakeBroker, config: Optional[CamundaConfig] = None):
        super().__init__(config or CamundaConfig(poll_interval=0.01), session=MagicMock())
        self.broker = broker

    def _request(self, method, path, *, json=None, files=None, data=None, timeout=None):
        self.session  # raises once closed
        return self.broker.handle(method, path, json, files)


@pytest.fixture
def broker():
    return FakeBroker()


@pytest.fixture
def client(broker):
    with FakeBrokerClient(broker) as c:
        yield c


@pytest.fixture
def fast_demo_config():
    """Sample demo with waits short enough for unit tests."""
    from dataclasses import replace

    return replace(
        DemoConfig.sample(),
        job_timeout=5.0,
        task_wait_timeout=2.0,
        final_state_wait_timeout=2.0,
        poll_interval=0.01,
        poll_max_interval=0.05,
    )
