"""Tests for the gha-fix command line."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from gha_fix.cli.app import app
from gha_fix.models import ResolvedVersion
from gha_fix.resolver import InMemoryVersionResolver

runner = CliRunner()

SHA = "11bd71901bbe5b1630ceea73d27597364c9af683"

WORKFLOW = """\
name: CI
on: push
jobs:
  test:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v4
"""


@pytest.fixture
def workflow_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A repository with one workflow, used as the working directory."""
    workflows = tmp_path / ".github" / "workflows"
    workflows.mkdir(parents=True)
    path = workflows / "ci.yml"
    path.write_text(WORKFLOW)
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    return path


def _resolver() -> InMemoryVersionResolver:
    return InMemoryVersionResolver(
        {"actions/checkout@v4": ResolvedVersion(commit_sha=SHA, ref_comment="v4.2.2")}
    )


@pytest.mark.parametrize(
    "args",
    [[], ["pin"], ["timeout"]],
    ids=["root", "pin", "timeout"],
)
def test_short_help_flag(args: list[str]) -> None:
    """Test that -h prints usage for every command."""
    result = runner.invoke(app, [*args, "-h"])
    assert result.exit_code == 0
    assert "Usage" in result.output


class TestTimeoutCommand:
    """Tests for 'gha-fix timeout'."""

    def test_adds_timeouts_to_discovered_files(self, workflow_file: Path) -> None:
        """Test fixing every workflow below the working directory."""
        result = runner.invoke(app, ["timeout"])

        assert result.exit_code == 0, result.output
        assert "Added timeout-minutes: 5 to jobs in 1 file(s)" in result.output
        assert "  test:\n    timeout-minutes: 5\n    runs-on: ubuntu-latest\n" in workflow_file.read_text()

    def test_explicit_file_and_value(self, workflow_file: Path) -> None:
        """Test fixing a named file with a custom value."""
        result = runner.invoke(app, ["timeout", "-t", "10", str(workflow_file)])

        assert result.exit_code == 0, result.output
        assert "timeout-minutes: 10" in workflow_file.read_text()

    def test_value_from_config_file(self, workflow_file: Path) -> None:
        """Test that the timeout value is read from gha-fix.toml."""
        Path("gha-fix.toml").write_text("[timeout]\ntimeout-value = 12\n")

        result = runner.invoke(app, ["timeout"])

        assert result.exit_code == 0, result.output
        assert "timeout-minutes: 12" in workflow_file.read_text()

    def test_flag_overrides_config_file(self, workflow_file: Path) -> None:
        """Test that --timeout-value wins over the config file."""
        Path("gha-fix.toml").write_text("[timeout]\ntimeout-value = 12\n")

        result = runner.invoke(app, ["timeout", "--timeout-value", "7"])

        assert result.exit_code == 0, result.output
        assert "timeout-minutes: 7" in workflow_file.read_text()

    def test_rejects_non_positive_value(self, workflow_file: Path) -> None:
        """Test that a zero timeout exits 1 without writing."""
        result = runner.invoke(app, ["timeout", "-t", "0"])

        assert result.exit_code == 1
        assert "Timeout value must be greater than 0." in result.output
        assert workflow_file.read_text() == WORKFLOW

    def test_no_changes_needed(self, workflow_file: Path) -> None:
        """Test the message when nothing needs fixing."""
        runner.invoke(app, ["timeout"])

        result = runner.invoke(app, ["timeout"])

        assert result.exit_code == 0
        assert "No changes needed" in result.output

    def test_ignored_directories_are_skipped(self, workflow_file: Path) -> None:
        """Test that default ignored directories are not searched."""
        vendored = Path("vendor") / "ci.yml"
        vendored.parent.mkdir()
        vendored.write_text(WORKFLOW)

        result = runner.invoke(app, ["timeout"])

        assert result.exit_code == 0, result.output
        assert vendored.read_text() == WORKFLOW

    def test_ignore_dirs_flag_replaces_defaults(self, workflow_file: Path) -> None:
        """Test that --ignore-dirs replaces the default list."""
        vendored = Path("vendor") / "ci.yml"
        vendored.parent.mkdir()
        vendored.write_text(WORKFLOW)

        result = runner.invoke(app, ["--ignore-dirs", ".github", "timeout"])

        assert result.exit_code == 0, result.output
        assert "timeout-minutes" in vendored.read_text()
        assert workflow_file.read_text() == WORKFLOW

    def test_failure_leaves_every_file_untouched(self, workflow_file: Path) -> None:
        """Test that one failing file exits 1 and writes nothing."""
        broken = workflow_file.parent / "broken.yml"
        broken.write_text("jobs:\n  build:runs-on: ubuntu-latest\n")

        result = runner.invoke(app, ["timeout"])

        assert result.exit_code == 1
        assert "No files were changed" in result.output
        assert "compact job syntax" in result.output
        assert workflow_file.read_text() == WORKFLOW

    def test_invalid_config_file(self, workflow_file: Path) -> None:
        """Test that invalid settings exit 1."""
        Path("gha-fix.toml").write_text("[timeout]\ntimeout-value = -1\n")

        result = runner.invoke(app, ["timeout"])

        assert result.exit_code == 1
        assert "invalid settings" in result.output

    def test_non_utf8_file_does_not_stop_the_walk(self, workflow_file: Path) -> None:
        """Test that a latin-1 YAML file is skipped while its neighbour is fixed."""
        latin = workflow_file.parent / "latin.yaml"
        latin.write_bytes(b"name: caf\xe9\n")

        result = runner.invoke(app, ["timeout"])

        assert result.exit_code == 0, result.output
        assert "timeout-minutes: 5" in workflow_file.read_text()
        assert latin.read_bytes() == b"name: caf\xe9\n"

    def test_named_non_utf8_file_is_reported(self, workflow_file: Path) -> None:
        """Test that naming a latin-1 file exits 1 and writes nothing."""
        latin = workflow_file.parent / "latin.yaml"
        latin.write_bytes(b"name: caf\xe9\n")

        result = runner.invoke(app, ["timeout", str(workflow_file), str(latin)])

        assert result.exit_code == 1
        assert "not valid UTF-8" in result.output
        assert workflow_file.read_text() == WORKFLOW


class TestPinCommand:
    """Tests for 'gha-fix pin'."""

    def test_pins_actions(self, workflow_file: Path) -> None:
        """Test pinning with the token from GITHUB_TOKEN."""
        with patch("gha_fix.cli.pin._get_resolver", return_value=_resolver()) as get_resolver:
            result = runner.invoke(app, ["pin"], env={"GITHUB_TOKEN": "ghp_test"})

        assert result.exit_code == 0, result.output
        get_resolver.assert_called_once_with("ghp_test")
        assert "Pinned GitHub Actions to commit SHAs in 1 file(s)" in result.output
        assert f"- uses: actions/checkout@{SHA} # v4.2.2\n" in workflow_file.read_text()

    def test_token_from_flag(self, workflow_file: Path) -> None:
        """Test that --github-token is passed to the resolver."""
        with patch("gha_fix.cli.pin._get_resolver", return_value=_resolver()) as get_resolver:
            result = runner.invoke(app, ["pin", "--github-token", "flag-token"])

        assert result.exit_code == 0, result.output
        get_resolver.assert_called_once_with("flag-token")

    def test_token_from_config_file(self, workflow_file: Path) -> None:
        """Test that the token is read from gha-fix.toml."""
        Path("gha-fix.toml").write_text('[pin]\ngithub-token = "file-token"\n')

        with patch("gha_fix.cli.pin._get_resolver", return_value=_resolver()) as get_resolver:
            result = runner.invoke(app, ["pin"])

        assert result.exit_code == 0, result.output
        get_resolver.assert_called_once_with("file-token")

    def test_missing_token(self, workflow_file: Path) -> None:
        """Test that a missing token exits 1."""
        result = runner.invoke(app, ["pin"])

        assert result.exit_code == 1
        assert "GitHub token is required" in result.output
        assert workflow_file.read_text() == WORKFLOW

    def test_ignore_owners(self, workflow_file: Path) -> None:
        """Test that --ignore-owners leaves the owner's actions alone."""
        with patch("gha_fix.cli.pin._get_resolver", return_value=_resolver()):
            result = runner.invoke(app, ["pin", "--github-token", "t", "--ignore-owners", "actions"])

        assert result.exit_code == 0, result.output
        assert "No changes needed" in result.output
        assert workflow_file.read_text() == WORKFLOW

    def test_strict_pinning_overrides_owner_ignore(self, workflow_file: Path) -> None:
        """Test that --strict-pinning pins actions of ignored owners."""
        with patch("gha_fix.cli.pin._get_resolver", return_value=_resolver()):
            result = runner.invoke(
                app,
                ["pin", "--github-token", "t", "--ignore-owners", "actions", "--strict-pinning"],
            )

        assert result.exit_code == 0, result.output
        assert SHA in workflow_file.read_text()

    def test_resolution_failure_leaves_file_untouched(self, workflow_file: Path) -> None:
        """Test that a resolver failure exits 1 and names the reference."""
        with patch("gha_fix.cli.pin._get_resolver", return_value=InMemoryVersionResolver()):
            result = runner.invoke(app, ["pin", "--github-token", "t"])

        assert result.exit_code == 1
        assert "actions/checkout@v4" in result.output
        assert workflow_file.read_text() == WORKFLOW
