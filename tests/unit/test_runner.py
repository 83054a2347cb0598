"""
Tests for the grounding runner.
"""

from datetime import datetime
from pathlib import Path

import pytest

from specground.core.config import GroundingConfig
from specground.core.errors import GroundingError
from specground.core.ir import TestSuite
from specground.core.strings import to_snake_case
from specground.ground.runner import GroundingRunner


class TestResolve:
    """Tests for option resolution."""

    def test_defaults(self, account_suite: TestSuite, tmp_path: Path) -> None:
        resolved = GroundingRunner(account_suite, tmp_path).resolve()
        assert resolved.grounding == "in-process"
        assert resolved.meta_check is False
        assert resolved.target_package == "generated.local"
        assert resolved.source_packages == ["client.local"]
        assert resolved.endpoint is None

    def test_suite_preferences(self, account_suite: TestSuite, tmp_path: Path) -> None:
        suite = account_suite.model_copy(update={"grounding": "rest", "meta_check": True})
        resolved = GroundingRunner(suite, tmp_path).resolve()
        assert resolved.grounding == "rest"
        assert resolved.meta_check is True
        assert resolved.target_package == "generated.rest"
        assert resolved.source_packages == ["client.rest"]
        assert resolved.endpoint == "http://my.rest.server"

    def test_config_wins_over_suite(self, account_suite: TestSuite, tmp_path: Path) -> None:
        suite = account_suite.model_copy(update={"grounding": "rest", "meta_check": True})
        config = GroundingConfig(grounding="rpc", meta_check=False, endpoint="http://soap")
        resolved = GroundingRunner(suite, tmp_path, config).resolve()
        assert resolved.grounding == "rpc"
        assert resolved.meta_check is False
        assert resolved.endpoint == "http://soap"
        assert resolved.target_package == "generated.rpc"

    def test_config_file_is_read(self, account_suite: TestSuite, tmp_path: Path) -> None:
        (tmp_path / "specground.toml").write_text('[grounding]\ngrounding = "rpc"\n')
        resolved = GroundingRunner(account_suite, tmp_path).resolve()
        assert resolved.grounding == "rpc"

    def test_empty_target_package(self, account_suite: TestSuite, tmp_path: Path) -> None:
        config = GroundingConfig(target_package="")
        assert GroundingRunner(account_suite, tmp_path, config).resolve().target_package == ""

    def test_unsupported_grounding(self, account_suite: TestSuite, tmp_path: Path) -> None:
        config = GroundingConfig(grounding="corba")
        with pytest.raises(GroundingError, match="Unsupported grounding: corba"):
            GroundingRunner(account_suite, tmp_path, config).resolve()


class TestRun:
    """Tests for GroundingRunner.run()."""

    def test_writes_driver_into_package(
        self, account_suite: TestSuite, tmp_path: Path, generated_at: datetime
    ) -> None:
        result = GroundingRunner(account_suite, tmp_path).run(generated_at=generated_at)

        expected = tmp_path / "generated" / "generated" / "local" / "test_account.py"
        assert result.driver_path == expected
        assert expected.exists()
        assert (tmp_path / "generated" / "generated" / "__init__.py").exists()
        assert (tmp_path / "generated" / "generated" / "local" / "__init__.py").exists()
        assert result.files_created[-1] == expected
        assert len(result.files_created) == 3
        assert result.test_count == 1
        assert result.grounding == "in-process"

        text = expected.read_text()
        assert "AccountTest generated on 2026-10-19 12:00:00" in text
        assert "from client.local import *" in text

    def test_existing_packages_are_kept(
        self, account_suite: TestSuite, tmp_path: Path, generated_at: datetime
    ) -> None:
        package = tmp_path / "generated" / "generated"
        package.mkdir(parents=True)
        (package / "__init__.py").write_text("# keep\n")

        result = GroundingRunner(account_suite, tmp_path).run(generated_at=generated_at)

        assert (package / "__init__.py").read_text() == "# keep\n"
        assert len(result.files_created) == 2

    def test_flat_output(self, collection_suite: TestSuite, tmp_path: Path) -> None:
        config = GroundingConfig(target_package="", output_dir="out")
        result = GroundingRunner(collection_suite, tmp_path, config).run()
        assert result.driver_path == tmp_path / "out" / "test_contact_list.py"
        assert result.record.needs_factory

    def test_output_is_a_file(self, account_suite: TestSuite, tmp_path: Path) -> None:
        (tmp_path / "generated").write_text("not a directory")
        with pytest.raises(GroundingError, match="not a directory"):
            GroundingRunner(account_suite, tmp_path).run()

    def test_rerun_overwrites(
        self, account_suite: TestSuite, tmp_path: Path, generated_at: datetime
    ) -> None:
        runner = GroundingRunner(account_suite, tmp_path)
        first = runner.run(generated_at=generated_at).driver_path.read_text()
        second = runner.run(generated_at=generated_at).driver_path.read_text()
        assert first == second


class TestToSnakeCase:
    @pytest.mark.parametrize(
        "name,snake",
        [
            ("Account", "account"),
            ("ContactList", "contact_list"),
            ("VATClearance", "vat_clearance"),
            ("Order2Go", "order2_go"),
            ("my-service", "my_service"),
        ],
    )
    def test_to_snake_case(self, name: str, snake: str) -> None:
        assert to_snake_case(name) == snake
