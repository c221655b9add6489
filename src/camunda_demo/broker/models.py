"""
Pydantic models for Camunda REST API responses.

Based on: Camunda 8.8 REST API (/v2)
Every model is a read-only snapshot of broker state. The broker owns the
lifecycle; nothing here is written back except through explicit commands.

Keys arrive as strings in 8.8 (LongKey) and as numbers in older gateways;
both are coerced to int.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BrokerModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python, unknown fields ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# =============================================================================
# Enums
# =============================================================================

class ProcessInstanceState(str, Enum):
    """Lifecycle state of a process instance as reported by the broker."""
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    TERMINATED = "TERMINATED"


class UserTaskState(str, Enum):
    """State of a user task."""
    CREATING = "CREATING"
    CREATED = "CREATED"
    ASSIGNING = "ASSIGNING"
    UPDATING = "UPDATING"
    COMPLETING = "COMPLETING"
    COMPLETED = "COMPLETED"
    CANCELING = "CANCELING"
    CANCELED = "CANCELED"
    FAILED = "FAILED"


# =============================================================================
# Deployment
# =============================================================================

class ProcessDefinitionInfo(BrokerModel):
    """A process definition created by a deployment."""
    process_definition_id: str
    process_definition_version: int
    process_definition_key: int
    resource_name: str = ""
    tenant_id: Optional[str] = None


class DeploymentItem(BrokerModel):
    """One deployed resource; only process definitions are of interest here."""
    process_definition: Optional[ProcessDefinitionInfo] = None


class DeploymentResult(BrokerModel):
    """Response of POST /deployments."""
    deployment_key: int
    tenant_id: Optional[str] = None
    deployments: List[DeploymentItem] = Field(default_factory=list)

    @property
    def key(self) -> int:
        return self.deployment_key

    @property
    def process_definitions(self) -> List[ProcessDefinitionInfo]:
        return [d.process_definition for d in self.deployments if d.process_definition]


# =============================================================================
# Process instances
# =============================================================================

class ProcessInstanceEvent(BrokerModel):
    """Response of POST /process-instances: reference to the new instance."""
    process_definition_id: str
    process_definition_key: int
    process_definition_version: int
    process_instance_key: int
    tenant_id: Optional[str] = None
    variables: Dict[str, Any] = Field(default_factory=dict)


class ProcessInstance(BrokerModel):
    """Search result item of POST /process-instances/search."""
    process_instance_key: int
    process_definition_id: str
    process_definition_key: Optional[int] = None
    process_definition_version: Optional[int] = None
    state: ProcessInstanceState
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    has_incident: bool = False

    @property
    def is_active(self) -> bool:
        return self.state == ProcessInstanceState.ACTIVE


# =============================================================================
# User tasks
# =============================================================================

class UserTask(BrokerModel):
    """Search result item of POST /user-tasks/search."""
    user_task_key: int
    process_instance_key: int
    element_id: str
    name: Optional[str] = None
    state: Optional[UserTaskState] = None
    assignee: Optional[str] = None
    process_definition_id: Optional[str] = None
    process_definition_key: Optional[int] = None
    candidate_groups: List[str] = Field(default_factory=list)
    candidate_users: List[str] = Field(default_factory=list)
    creation_date: Optional[datetime] = None


# =============================================================================
# Jobs
# =============================================================================

class ActivatedJob(BrokerModel):
    """A job handed to this worker by POST /jobs/activation."""
    job_key: int
    type: str
    process_instance_key: int
    element_id: str = ""
    process_definition_id: Optional[str] = None
    retries: int = 0
    worker: str = ""
    deadline: Optional[int] = None
    variables: Dict[str, Any] = Field(default_factory=dict)
    custom_headers: Dict[str, Any] = Field(default_factory=dict)

    @property
    def key(self) -> int:
        return self.job_key


# =============================================================================
# Topology
# =============================================================================

class Partition(BrokerModel):
    partition_id: int
    role: str
    health: str


class BrokerInfo(BrokerModel):
    node_id: int
    host: str
    port: int
    version: Optional[str] = None
    partitions: List[Partition] = Field(default_factory=list)


class Topology(BrokerModel):
    """Response of GET /topology."""
    brokers: List[BrokerInfo] = Field(default_factory=list)
    cluster_size: int = 0
    partitions_count: int = 0
    replication_factor: int = 0
    gateway_version: Optional[str] = None
