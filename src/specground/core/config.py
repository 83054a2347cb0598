"""
Grounding configuration.

Parses the [grounding] section of specground.toml. Options given on the
command line take precedence over the file, and the file takes precedence
over what the test suite itself asks for.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from specground.core.errors import GroundingError

CONFIG_FILE = "specground.toml"

DEFAULT_GROUNDING = "in-process"
DEFAULT_CLIENT_PACKAGE = "client"
DEFAULT_TEST_PACKAGE = "generated"


class GroundingConfig(BaseModel):
    """
    Options for one grounding run.

    Attributes:
        grounding: Backend selector: "in-process", "rpc" or "rest"
        meta_check: Check reported scenario and state after each verified step
        endpoint: Service URI for the rpc and rest backends
        target_package: Package the driver is written into
        source_packages: Packages the system under test is imported from
        output_dir: Root directory for generated packages
        client_package: Root of the default source packages
        test_package: Root of the default target packages
    """

    model_config = ConfigDict(extra="forbid")

    grounding: str | None = None
    meta_check: bool | None = None
    endpoint: str | None = None
    target_package: str | None = None
    source_packages: list[str] = Field(default_factory=list)
    output_dir: str = "generated/"
    client_package: str = DEFAULT_CLIENT_PACKAGE
    test_package: str = DEFAULT_TEST_PACKAGE

    def get_output_path(self, project_root: Path) -> Path:
        """Get absolute output directory path."""
        output_dir = Path(self.output_dir)
        if output_dir.is_absolute():
            return output_dir
        return project_root / output_dir

    def merged(self, **overrides: object) -> GroundingConfig:
        """Return a copy with every override that is not None applied."""
        updates = {
            key: value
            for key, value in overrides.items()
            if value is not None and value != [] and value != ()
        }
        return self.model_copy(update=updates)


def load_grounding_config(toml_path: Path) -> GroundingConfig:
    """
    Load grounding configuration from specground.toml.

    Args:
        toml_path: Path to specground.toml file

    Returns:
        GroundingConfig with parsed values or defaults

    Raises:
        GroundingError: if the file is not valid TOML or the section does not validate
    """
    if not toml_path.exists():
        return GroundingConfig()

    try:
        with open(toml_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise GroundingError(f"Invalid configuration file {toml_path}: {e}") from e

    grounding_data = data.get("grounding", {})
    if not grounding_data:
        return GroundingConfig()

    try:
        return GroundingConfig(**grounding_data)
    except ValidationError as e:
        raise GroundingError(f"Invalid [grounding] section in {toml_path}:\n{e}") from e
