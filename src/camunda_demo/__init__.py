"""
camunda_demo: demonstration client for Camunda 8

- broker: REST client, job worker, response models
- orchestrator: the demo flow (deploy, start, user task, service task)
- cli: command line entry point
"""

__version__ = "0.1.0"
