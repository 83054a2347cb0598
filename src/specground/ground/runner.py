"""
Grounding runner - resolves options and writes one driver file.

The GroundingRunner fills in every option the caller left open, from the
configuration file and then from the test suite, selects the backend and
writes the driver into its target package under the output directory.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from specground.core.config import (
    CONFIG_FILE,
    DEFAULT_GROUNDING,
    GroundingConfig,
    load_grounding_config,
)
from specground.core.errors import GroundingError
from specground.core.strings import to_snake_case

from .backends import BackendRegistry
from .framework import Grounder, GroundingBackend

if TYPE_CHECKING:
    from specground.core.ir import TestSuite

    from .dependency import DependencyRecord

logger = logging.getLogger(__name__)


@dataclass
class GroundingResult:
    """
    Result of a grounding run.

    Attributes:
        driver_path: The test module that was written
        grounding: Selector of the backend used
        target_package: Package the driver was written into
        source_packages: Packages the driver imports the system from
        endpoint: Service URI used, if the backend needs one
        record: Dependency analysis of the suite
        test_count: Number of test methods written
        files_created: Every file written, package markers included
    """

    driver_path: Path
    grounding: str
    target_package: str
    source_packages: list[str]
    endpoint: str | None
    record: DependencyRecord
    test_count: int = 0
    files_created: list[Path] = field(default_factory=list)


class GroundingRunner:
    """
    Orchestrates one grounding run.

    Example:
        runner = GroundingRunner(suite, Path("."))
        result = runner.run()
        print(result.driver_path)
    """

    def __init__(
        self,
        suite: TestSuite,
        project_root: Path,
        config: GroundingConfig | None = None,
    ):
        """
        Initialize the grounding runner.

        Args:
            suite: The abstract test suite to ground
            project_root: Directory that relative output paths are resolved against
            config: Optional configuration (loaded from specground.toml if not provided)
        """
        self.suite = suite
        self.project_root = project_root

        if config is None:
            config = load_grounding_config(project_root / CONFIG_FILE)
        self.config = config

    def resolve(self) -> GroundingConfig:
        """
        Fill in every open option.

        Raises:
            GroundingError: if the grounding selector is not registered
        """
        config = self.config
        grounding = config.grounding or self.suite.grounding or DEFAULT_GROUNDING
        backend = self.backend_class(grounding)
        meta_check = self.suite.meta_check if config.meta_check is None else config.meta_check
        target_package = config.target_package
        if target_package is None:
            target_package = f"{config.test_package}.{backend.extension}"
        source_packages = config.source_packages or [f"{config.client_package}.{backend.extension}"]
        return config.model_copy(
            update={
                "grounding": grounding,
                "meta_check": meta_check,
                "endpoint": config.endpoint or backend.default_endpoint,
                "target_package": target_package,
                "source_packages": list(source_packages),
            }
        )

    @staticmethod
    def backend_class(grounding: str) -> type[GroundingBackend]:
        backend = BackendRegistry.get(grounding)
        if backend is None:
            available = ", ".join(BackendRegistry.list_backends())
            raise GroundingError(f"Unsupported grounding: {grounding} (expected one of {available})")
        return backend

    def driver_path(self, resolved: GroundingConfig) -> Path:
        package_dir = resolved.get_output_path(self.project_root)
        if resolved.target_package:
            package_dir = package_dir.joinpath(*resolved.target_package.split("."))
        return package_dir / f"test_{to_snake_case(self.suite.name)}.py"

    def run(self, generated_at: datetime | None = None) -> GroundingResult:
        """
        Ground the suite and write the driver.

        Args:
            generated_at: Timestamp for the driver banner (defaults to now)

        Returns:
            GroundingResult describing what was written

        Raises:
            GroundingError: if the selector is unsupported or the output
                location is not a directory
            InvalidArgumentError: if a descriptor or literal in the suite is malformed
        """
        resolved = self.resolve()
        output_dir = resolved.get_output_path(self.project_root)
        if output_dir.exists() and not output_dir.is_dir():
            raise GroundingError(f"Output location is not a directory: {output_dir}")

        files_created = self._ensure_packages(output_dir, resolved.target_package)
        path = self.driver_path(resolved)
        backend = self.backend_class(resolved.grounding)()

        logger.debug(
            f"Grounding {self.suite.name} with {backend.name} into {resolved.target_package or '.'}"
        )
        with open(path, "w", encoding="utf-8") as stream:
            grounder = Grounder(
                backend,
                stream,
                meta_check=resolved.meta_check,
                endpoint=resolved.endpoint,
                target_package=resolved.target_package,
                source_packages=resolved.source_packages,
                generated_at=generated_at,
            )
            record = grounder.ground(self.suite)
        files_created.append(path)
        logger.info(f"Wrote test driver {path}")

        return GroundingResult(
            driver_path=path,
            grounding=backend.name,
            target_package=resolved.target_package,
            source_packages=list(resolved.source_packages),
            endpoint=resolved.endpoint,
            record=record,
            test_count=len(self.suite.sequences),
            files_created=files_created,
        )

    @staticmethod
    def _ensure_packages(output_dir: Path, target_package: str) -> list[Path]:
        """Create the target package directories, each with an __init__.py."""
        created: list[Path] = []
        output_dir.mkdir(parents=True, exist_ok=True)
        package_dir = output_dir
        for part in target_package.split(".") if target_package else []:
            package_dir = package_dir / part
            package_dir.mkdir(exist_ok=True)
            marker = package_dir / "__init__.py"
            if not marker.exists():
                marker.write_text("")
                created.append(marker)
        return created
