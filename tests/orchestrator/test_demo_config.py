"""
Tests for DemoConfig presets and YAML loading
"""

from pathlib import Path

import pytest

from camunda_demo.orchestrator.config import DemoConfig

REPO_CONFIG = Path(__file__).parent.parent.parent / "config" / "demo.yaml"


class TestPresets:
    """Tests for the sample and quickstart presets."""

    def test_sample(self):
        """Sample preset describes the order-approval demo."""
        config = DemoConfig.sample()

        assert config.process_id == "sample-process"
        assert config.user_task_id == "user-task"
        assert config.service_task_type == "processData"
        assert config.assignee == "demo"
        assert config.start_variables == {"orderId": "12345", "customerName": "John Doe"}
        assert config.task_variables["approved"] is True
        assert config.job_timeout == 30.0

    def test_quickstart_has_no_service_task(self):
        """Quickstart preset has no service task and no variables."""
        config = DemoConfig.quickstart()

        assert config.process_id == "demoProcess"
        assert config.resource_name == "demoProcess.bpmn"
        assert config.service_task_type is None
        assert config.start_variables == {}

    def test_presets_do_not_share_variables(self):
        """Each preset gets its own variable maps."""
        assert DemoConfig.sample().start_variables is not DemoConfig.sample().start_variables


class TestFromYaml:
    """Tests for YAML overrides."""

    def test_overrides_apply_to_sample(self, tmp_path):
        """YAML overrides apply on top of the sample preset."""
        path = tmp_path / "demo.yaml"
        path.write_text("demo:\n  assignee: jane\n  job_timeout: 5\n")

        config = DemoConfig.from_yaml(path)

        assert config.assignee == "jane"
        assert config.job_timeout == 5
        assert config.process_id == "sample-process"

    def test_overrides_apply_to_given_base(self, tmp_path):
        """YAML overrides apply on top of the given base."""
        path = tmp_path / "demo.yaml"
        path.write_text("demo:\n  assignee: jane\n")

        config = DemoConfig.from_yaml(path, base=DemoConfig.quickstart())

        assert config.process_id == "demoProcess"
        assert config.assignee == "jane"

    def test_empty_file_gives_base(self, tmp_path):
        """Empty file leaves the base unchanged."""
        path = tmp_path / "demo.yaml"
        path.write_text("")

        assert DemoConfig.from_yaml(path) == DemoConfig.sample()

    def test_unknown_key_rejected(self, tmp_path):
        """Unknown key raises ValueError naming the key."""
        path = tmp_path / "demo.yaml"
        path.write_text("demo:\n  proces_id: typo\n")

        with pytest.raises(ValueError, match="proces_id"):
            DemoConfig.from_yaml(path)

    def test_missing_file(self, tmp_path):
        """Missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            DemoConfig.from_yaml(tmp_path / "nope.yaml")

    def test_repository_config_matches_sample(self):
        """Shipped config/demo.yaml matches the sample preset."""
        config = DemoConfig.from_yaml(REPO_CONFIG)

        assert config.process_id == "sample-process"
        assert config.start_variables == DemoConfig.sample().start_variables
        assert config.task_variables == DemoConfig.sample().task_variables
