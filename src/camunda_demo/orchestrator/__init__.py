"""
Process demo orchestration

Drives one BPMN process through the broker:
deploy -> start -> user task -> service task job -> final state.
"""

from .config import DemoConfig
from .gate import CompletionGate
from .handlers import JobOutcome, ServiceTaskHandler, mark_processed
from .polling import poll_until
from .process_demo import DemoResult, ProcessDemo, ProcessDemoError

__all__ = [
    # Coordinator
    "ProcessDemo",
    "DemoConfig",
    "DemoResult",
    "ProcessDemoError",
    # Job handling
    "CompletionGate",
    "ServiceTaskHandler",
    "JobOutcome",
    "mark_processed",
    # Waiting
    "poll_until",
]
