#!/usr/bin/env python3
"""
camunda-demo CLI — run the process demo against a Camunda 8 cluster.

Usage:
    camunda-demo run [--config demo.yaml] [--var key=value ...]
    camunda-demo quickstart
    camunda-demo deploy <resource.bpmn>
    camunda-demo status

The REST address comes from CAMUNDA_REST_ADDRESS (default
http://localhost:8080); a .env file in the working directory is honoured.

Examples:
    # Run the order-approval demo with a different order
    camunda-demo run --var orderId=A-77 --var customerName="Jane Roe"

    # Deploy, start and complete the minimal demoProcess
    camunda-demo quickstart

    # Check that the cluster is reachable
    camunda-demo status
"""

import argparse
import logging
import sys
from dataclasses import replace
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from .broker.client import CamundaClient
from .broker.config import CamundaConfig
from .broker.errors import BrokerError
from .orchestrator.config import DemoConfig
from .orchestrator.process_demo import DemoResult, ProcessDemo, ProcessDemoError


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    # Quiet down noisy loggers
    if not verbose:
        logging.getLogger("urllib3").setLevel(logging.WARNING)


BOOLEANS = {"true": True, "false": False}


def coerce_variable(value: str) -> Any:
    """Turn a command line value into a bool, int, float or plain string."""
    if value.lower() in BOOLEANS:
        return BOOLEANS[value.lower()]
    for convert in (int, float):
        try:
            return convert(value)
        except ValueError:
            pass
    return value


def parse_input_params(input_args: Optional[List[str]]) -> Dict[str, Any]:
    """Parse --var key=value arguments into process variables."""
    variables: Dict[str, Any] = {}
    for arg in input_args or []:
        name, sep, value = arg.partition("=")
        if not sep or not name:
            print(f"Warning: Invalid variable format '{arg}', expected key=value")
            continue
        variables[name] = coerce_variable(value)
    return variables


def print_result(result: DemoResult):
    """Print demo summary."""
    print(f"\nProcess demo: {result.process_id}")
    print("=" * 50)
    print(f"  Deployment key:       {result.deployment_key}")
    print(f"  Process instance key: {result.process_instance_key}")
    print(f"  User task key:        {result.user_task_key or '(none found)'}")
    if result.job_handled is not None:
        outcome = result.job_outcome.value if result.job_outcome else "not received"
        print(f"  Service task job:     {outcome}")
    state = result.final_state.value if result.final_state else "(not found)"
    print(f"  Final state:          {state}")


def run_demo(config: DemoConfig) -> int:
    """Run a demo configuration. Returns exit code."""
    with CamundaClient(CamundaConfig.from_env()) as client:
        try:
            result = ProcessDemo(client, config).run()
        except ProcessDemoError as e:
            print(f"\n{e}: {e.__cause__}")
            return 1
    print_result(result)
    return 0


def deploy(resource: str) -> int:
    """Deploy a single resource file."""
    with CamundaClient(CamundaConfig.from_env()) as client:
        try:
            deployment = client.deploy_resource_file(resource)
        except (BrokerError, FileNotFoundError) as e:
            print(f"\nDeployment failed: {e}")
            return 1

    print(f"\nDeployed {resource} (key {deployment.key})")
    for definition in deployment.process_definitions:
        print(
            f"  - {definition.process_definition_id} "
            f"v{definition.process_definition_version} "
            f"(key {definition.process_definition_key})"
        )
    return 0


def show_status() -> int:
    """Show cluster topology."""
    config = CamundaConfig.from_env()
    with CamundaClient(config) as client:
        try:
            topology = client.topology()
        except BrokerError as e:
            print(f"\nCluster at {config.rest_address} unavailable: {e}")
            return 1

    print(f"\nCamunda cluster at {config.rest_address}")
    print("=" * 50)
    print(f"  Gateway version: {topology.gateway_version}")
    print(f"  Cluster size: {topology.cluster_size}")
    print(f"  Partitions: {topology.partitions_count} (replication {topology.replication_factor})")
    for broker in topology.brokers:
        print(f"    - broker {broker.node_id} at {broker.host}:{broker.port}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="camunda-demo - drive a BPMN process through Camunda 8",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s run --var orderId=A-77
  %(prog)s quickstart
  %(prog)s deploy my-process.bpmn
  %(prog)s status
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # run command
    run_parser = subparsers.add_parser("run", help="Run the sample-process demo")
    run_parser.add_argument("--config", "-c", help="YAML file with a 'demo:' section")
    run_parser.add_argument("--var", action="append", help="Start variable (key=value)")

    # quickstart command
    subparsers.add_parser("quickstart", help="Run the minimal demoProcess demo")

    # deploy command
    deploy_parser = subparsers.add_parser("deploy", help="Deploy a resource file")
    deploy_parser.add_argument("resource", help="Path to a BPMN/DMN/form file")

    # status command
    subparsers.add_parser("status", help="Show cluster topology")

    args = parser.parse_args(argv)

    load_dotenv()
    setup_logging(args.verbose)

    if args.command == "run":
        try:
            config = DemoConfig.from_yaml(args.config) if args.config else DemoConfig.sample()
        except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
            print(f"\nInvalid demo config: {e}")
            return 1
        variables = parse_input_params(args.var)
        if variables:
            config = replace(config, start_variables={**config.start_variables, **variables})
        return run_demo(config)
    elif args.command == "quickstart":
        return run_demo(DemoConfig.quickstart())
    elif args.command == "deploy":
        return deploy(args.resource)
    elif args.command == "status":
        return show_status()
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
