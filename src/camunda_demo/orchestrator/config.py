"""
Demo configuration: which process to deploy and how to drive it.

Passed explicitly into ProcessDemo so several demos can run side by side
against different definitions.
"""

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DemoConfig:
    """Process definition, task identifiers and wait budgets for one demo run."""

    # Definition
    process_id: str = "sample-process"
    resource_name: str = "sample-process.bpmn"
    user_task_id: str = "user-task"
    service_task_type: Optional[str] = "processData"  # None: no job worker step
    assignee: str = "demo"

    # Variables
    start_variables: Dict[str, Any] = field(default_factory=dict)
    task_variables: Dict[str, Any] = field(default_factory=dict)

    # Waits (seconds)
    job_timeout: float = 30.0
    task_wait_timeout: float = 30.0
    final_state_wait_timeout: float = 10.0
    initial_task_delay: float = 0.0
    final_state_delay: float = 0.0
    poll_interval: float = 0.5
    poll_max_interval: float = 5.0
    activation_timeout: float = 1.0  # job worker long poll, bounds close()

    @classmethod
    def sample(cls) -> "DemoConfig":
        """Order-approval demo: user task followed by a processData service task."""
        return cls(
            start_variables={"orderId": "12345", "customerName": "John Doe"},
            task_variables={"approved": True, "comments": "Task completed successfully"},
        )

    @classmethod
    def quickstart(cls) -> "DemoConfig":
        """Minimal demo: one user task, no variables, no service task."""
        return cls(
            process_id="demoProcess",
            resource_name="demoProcess.bpmn",
            user_task_id="userTask_1",
            service_task_type=None,
        )

    @classmethod
    def from_yaml(
        cls,
        path: Union[str, Path],
        base: Optional["DemoConfig"] = None,
    ) -> "DemoConfig":
        """
        Load overrides from the `demo:` section of a YAML file.

        Args:
            path: YAML file
            base: Configuration the overrides apply to (sample() if not provided)

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the section contains unknown keys
        """
        path = Path(path)
        with open(path) as f:
            content = yaml.safe_load(f) or {}

        overrides = content.get("demo", {}) or {}
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown demo config keys in {path}: {sorted(unknown)}")

        logger.info(f"Loaded demo config from {path}")
        return replace(base or cls.sample(), **overrides)
