"""
Camunda broker access for the process demo

- CamundaClient: blocking REST client (deploy, start, search, assign, complete)
- JobWorker: background poller bridging broker jobs to a handler
- Pydantic models for the broker's responses
"""

from .client import CamundaClient, JobHandler
from .config import CamundaConfig
from .errors import (
    BrokerConnectionError,
    BrokerError,
    BrokerRequestError,
    ClientClosedError,
)
from .models import (
    ActivatedJob,
    DeploymentResult,
    ProcessInstance,
    ProcessInstanceEvent,
    ProcessInstanceState,
    Topology,
    UserTask,
)
from .worker import JobWorker

__all__ = [
    # Infrastructure
    "CamundaClient",
    "CamundaConfig",
    "JobWorker",
    "JobHandler",
    # Errors
    "BrokerError",
    "BrokerConnectionError",
    "BrokerRequestError",
    "ClientClosedError",
    # Models
    "ActivatedJob",
    "DeploymentResult",
    "ProcessInstance",
    "ProcessInstanceEvent",
    "ProcessInstanceState",
    "Topology",
    "UserTask",
]
