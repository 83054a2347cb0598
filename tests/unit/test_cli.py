"""Tests for CLI commands."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from specground._version import __version__
from specground.cli import app
from specground.core.ir import TestSuite


@pytest.fixture
def cli_runner() -> CliRunner:
    """Return a CLI test runner."""
    return CliRunner()


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, account_suite: TestSuite) -> Path:
    """A working directory holding account.json."""
    (tmp_path / "account.json").write_text(account_suite.model_dump_json(indent=2))
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestGroundCommand:
    """Tests for `specground ground`."""

    def test_defaults(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(app, ["ground", "account.json"])

        assert result.exit_code == 0, result.output
        assert "Wrote" in result.output
        driver = project / "generated" / "generated" / "local" / "test_account.py"
        assert "class AccountTest(unittest.TestCase):" in driver.read_text()

    def test_options(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(
            app,
            [
                "ground",
                "account.json",
                "-g",
                "rest",
                "-e",
                "http://bank.test",
                "-t",
                "tests.bank",
                "-s",
                "bank.api",
                "-o",
                "out",
                "--meta-check",
            ],
        )

        assert result.exit_code == 0, result.output
        text = (project / "out" / "tests" / "bank" / "test_account.py").read_text()
        assert "REST_URI = 'http://bank.test/'" in text
        assert "def get_scenario(self):" in text

    def test_config_file(self, cli_runner: CliRunner, project: Path) -> None:
        (project / "specground.toml").write_text(
            '[grounding]\ngrounding = "rpc"\noutput_dir = "soap"\n'
        )

        result = cli_runner.invoke(app, ["ground", "account.json"])

        assert result.exit_code == 0, result.output
        text = (project / "soap" / "generated" / "rpc" / "test_account.py").read_text()
        assert "import zeep" in text
        assert "from client.rpc import *" in text

    def test_command_line_wins_over_config(self, cli_runner: CliRunner, project: Path) -> None:
        (project / "specground.toml").write_text('[grounding]\ngrounding = "rpc"\n')

        result = cli_runner.invoke(app, ["ground", "account.json", "-g", "in-process"])

        assert result.exit_code == 0, result.output
        assert (project / "generated" / "generated" / "local" / "test_account.py").exists()

    def test_missing_suite(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(app, ["ground", "missing.json"])

        assert result.exit_code == 1
        assert "Error: Cannot read test suite" in result.output

    def test_unsupported_grounding(self, cli_runner: CliRunner, project: Path) -> None:
        result = cli_runner.invoke(app, ["ground", "account.json", "-g", "corba"])

        assert result.exit_code == 1
        assert "Unsupported grounding: corba" in result.output
        assert not (project / "generated").exists()


class TestOtherCommands:
    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"specground {__version__}" in result.output

    def test_analyse(
        self,
        cli_runner: CliRunner,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        collection_suite: TestSuite,
    ) -> None:
        (tmp_path / "contacts.json").write_text(collection_suite.model_dump_json())
        monkeypatch.chdir(tmp_path)

        result = cli_runner.invoke(app, ["analyse", "contacts.json", "-s", "client.local"])

        assert result.exit_code == 0, result.output
        assert "needs factory" in result.output
        assert "typing.Dict" in result.output
        assert "client.local.*" in result.output

    def test_groundings(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["groundings"])
        assert result.exit_code == 0
        for name in ("in-process", "rpc", "rest"):
            assert name in result.output
