"""
Tests for the additional stacks command line interface.
"""

from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from additional_stacks.cli.__main__ import cli
from additional_stacks.cloudformation.client import RemoteStackState

CONFIG = {
    "service": "svc",
    "provider": {"stage": "test", "stackTags": {"Owner": "owner@example.org"}},
    "custom": {
        "additionalStacks": {
            "primary": {"Resources": {"Topic": {"Type": "AWS::SNS::Topic"}}},
            "secondary": {
                "Deploy": "After",
                "Resources": {"Queue": {"Type": "AWS::SQS::Queue"}},
            },
        },
        "additionalStacksSettings": {"pollInterval": 0},
    },
}


class TestCli:
    """Test CLI commands against a mocked CloudFormation client."""

    @pytest.fixture(autouse=True)
    def setup_cli(self, tmp_path, monkeypatch):
        """Write a configuration file and mock the CloudFormation client."""
        monkeypatch.chdir(tmp_path)
        self.tmp_path = tmp_path
        self.write_config(CONFIG)
        self.runner = CliRunner()

        patcher = patch(
            "additional_stacks.cloudformation.stack_manager.CloudFormationClient"
        )
        self.client_class = patcher.start()
        self.client = self.client_class.return_value
        yield
        patcher.stop()

    def write_config(self, data) -> None:
        with open(self.tmp_path / "serverless.yml", "w") as f:
            yaml.dump(data, f)

    def test_help(self) -> None:
        """Test help lists the commands."""
        result = self.runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ["deploy", "remove", "info", "hook"]:
            assert command in result.output

    def test_deploy_all(self) -> None:
        """Test deploying all stacks creates each in order."""
        self.client.describe_stack.side_effect = [
            None,
            RemoteStackState("svc-test-primary", "CREATE_COMPLETE"),
            None,
            RemoteStackState("svc-test-secondary", "CREATE_COMPLETE"),
        ]

        result = self.runner.invoke(cli, ["deploy", "--all"])

        assert result.exit_code == 0, result.output
        assert "Deploying all additional stacks..." in result.output
        created = [c[0][0] for c in self.client.create_stack.call_args_list]
        assert created == ["svc-test-primary", "svc-test-secondary"]
        assert (self.tmp_path / ".serverless" / "cloudformation-template-primary.json").exists()

    def test_deploy_one(self) -> None:
        """Test deploying one named stack."""
        self.client.describe_stack.side_effect = [
            RemoteStackState("svc-test-secondary", "CREATE_COMPLETE"),
            RemoteStackState("svc-test-secondary", "UPDATE_COMPLETE"),
        ]

        result = self.runner.invoke(cli, ["deploy", "--stack", "secondary"])

        assert result.exit_code == 0, result.output
        assert "Deploying additional stack secondary..." in result.output
        self.client.update_stack.assert_called_once()
        self.client.create_stack.assert_not_called()

    def test_deploy_unknown_stack(self) -> None:
        """Test an unknown stack name exits non-zero with a message."""
        result = self.runner.invoke(cli, ["deploy", "--stack", "nope"])

        assert result.exit_code == 1
        assert "Additional stack not found: nope" in result.output

    def test_deploy_requires_selection(self) -> None:
        """Test deploy without --all or --stack is a usage error."""
        result = self.runner.invoke(cli, ["deploy"])

        assert result.exit_code == 2
        assert "--all" in result.output

    def test_deploy_failure_exits_non_zero(self) -> None:
        """Test a failed stack stops the batch and exits 1."""
        self.client.describe_stack.side_effect = [
            None,
            RemoteStackState("svc-test-primary", "ROLLBACK_COMPLETE"),
        ]

        result = self.runner.invoke(cli, ["deploy", "--all"])

        assert result.exit_code == 1
        assert "svc-test-primary" in result.output
        assert "ROLLBACK_COMPLETE" in result.output
        assert self.client.create_stack.call_count == 1

    def test_dry_run(self) -> None:
        """Test dry run writes templates and never calls CloudFormation."""
        result = self.runner.invoke(cli, ["--dry-run", "deploy", "--all"])

        assert result.exit_code == 0, result.output
        assert self.client.method_calls == []
        assert (self.tmp_path / ".serverless" / "cloudformation-template-secondary.json").exists()

    def test_remove_all_reverse_order(self) -> None:
        """Test removing all stacks deletes in reverse order."""
        self.client.describe_stack.side_effect = [
            RemoteStackState("svc-test-secondary", "CREATE_COMPLETE"),
            None,
            RemoteStackState("svc-test-primary", "CREATE_COMPLETE"),
            None,
        ]

        result = self.runner.invoke(cli, ["remove", "--all"])

        assert result.exit_code == 0, result.output
        deleted = [c[0][0] for c in self.client.delete_stack.call_args_list]
        assert deleted == ["svc-test-secondary", "svc-test-primary"]

    def test_info(self) -> None:
        """Test info shows every stack."""
        self.client.describe_stack.side_effect = [
            RemoteStackState("svc-test-primary", "CREATE_COMPLETE"),
            None,
        ]

        result = self.runner.invoke(cli, ["info"])

        assert result.exit_code == 0, result.output
        assert "primary: svc-test-primary (CREATE_COMPLETE)" in result.output
        assert "secondary: svc-test-secondary (does not exist)" in result.output

    def test_hook_before_deploy(self) -> None:
        """Test the before-deploy hook deploys only before stacks."""
        self.client.describe_stack.side_effect = [
            None,
            RemoteStackState("svc-test-primary", "CREATE_COMPLETE"),
        ]

        result = self.runner.invoke(cli, ["hook", "before-deploy"])

        assert result.exit_code == 0, result.output
        created = [c[0][0] for c in self.client.create_stack.call_args_list]
        assert created == ["svc-test-primary"]

    def test_hook_skip(self) -> None:
        """Test the skip flag disables hooks."""
        result = self.runner.invoke(
            cli, ["--skip-additionalstacks", "hook", "after-deploy"]
        )

        assert result.exit_code == 0, result.output
        assert self.client.method_calls == []

    def test_stage_override(self) -> None:
        """Test --stage changes the stack prefix."""
        self.client.describe_stack.side_effect = [
            None,
            RemoteStackState("svc-prod-primary", "CREATE_COMPLETE"),
        ]

        result = self.runner.invoke(
            cli, ["--stage", "prod", "deploy", "--stack", "primary"]
        )

        assert result.exit_code == 0, result.output
        assert self.client.create_stack.call_args[0][0] == "svc-prod-primary"

    def test_no_stacks_defined(self) -> None:
        """Test an empty configuration is not an error."""
        self.write_config({"service": "svc"})

        result = self.runner.invoke(cli, ["deploy", "--all"])

        assert result.exit_code == 0
        assert "No additional stacks defined" in result.output

    def test_invalid_config(self) -> None:
        """Test a malformed definition fails before any remote call."""
        self.write_config({
            "service": "svc",
            "custom": {"additionalStacks": {"primary": ["not-an-object"]}},
        })

        result = self.runner.invoke(cli, ["deploy", "--all"])

        assert result.exit_code == 1
        assert "primary" in result.output
        assert self.client.method_calls == []
