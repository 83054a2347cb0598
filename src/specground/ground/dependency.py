"""
Dependency analysis for generated drivers.

Scans every Operation of a TestSuite once, before any code is written, to
decide whether the driver needs a value factory and which support bindings
it must import.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from pydantic import BaseModel, ConfigDict

from specground.core.ir import Parameter, TestSuite
from specground.ground.descriptors import (
    DescriptorKind,
    TypeDescriptor,
    is_generic,
    is_primitive,
    parse_descriptor,
)

logger = logging.getLogger(__name__)

FACTORY_LOCATION = "specground.ground.factory.HostFactory"

# Binding key -> importable location, for each container kind
CONTAINER_LOCATIONS = {
    DescriptorKind.LIST: ("List", "typing.List"),
    DescriptorKind.SET: ("Set", "typing.Set"),
    DescriptorKind.MAP: ("Map", "typing.Dict"),
    DescriptorKind.PAIR: ("Pair", "specground.ground.values.Pair"),
}


class DependencyRecord(BaseModel):
    """
    What a generated driver depends on.

    Attributes:
        locations: Binding key -> dotted location, in first-seen order
        generic_inputs: Some input has a generic type
        generic_outputs: Some output has a generic type
        factory_inputs: Some input needs the factory to be synthesised
        factory_outputs: Some output needs the factory to be synthesised
        target_package: Package the driver is written into
        source_packages: Packages the system under test is imported from
    """

    locations: dict[str, str] = {}
    generic_inputs: bool = False
    generic_outputs: bool = False
    factory_inputs: bool = False
    factory_outputs: bool = False
    target_package: str = ""
    source_packages: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def needs_factory(self) -> bool:
        return "Factory" in self.locations

    @property
    def imports(self) -> list[str]:
        """Utility bindings first, then every source package except the target."""
        result = list(self.locations.values())
        for package in self.source_packages:
            if package and package != self.target_package:
                result.append(f"{package}.*")
        return result


class DependencyAnalyzer:
    """
    Builds a DependencyRecord for a TestSuite.

    Example:
        analyzer = DependencyAnalyzer()
        analyzer.use_target_package("generated.local")
        analyzer.use_source_package("client.local")
        record = analyzer.analyse(suite)
    """

    def __init__(self) -> None:
        self.target_package = ""
        self.source_packages: list[str] = []

    def use_source_package(self, package: str | None) -> None:
        package = package or ""
        if package not in self.source_packages:
            self.source_packages.append(package)

    def use_target_package(self, package: str | None) -> None:
        self.target_package = package or ""

    def analyse(self, suite: TestSuite) -> DependencyRecord:
        """
        Scan every Operation reachable from the suite.

        Raises:
            DescriptorError: if a parameter type cannot be parsed
        """
        locations: dict[str, str] = {}
        flags = {
            "generic_inputs": False,
            "generic_outputs": False,
            "factory_inputs": False,
            "factory_outputs": False,
        }

        for sequence in suite.sequences:
            for step in sequence.steps:
                operation = step.operation
                if operation is None:
                    continue
                for direction, parameters in (
                    ("inputs", operation.inputs),
                    ("outputs", operation.outputs),
                ):
                    for parameter in self._factory_parameters(parameters):
                        flags[f"factory_{direction}"] = True
                        if is_generic(parameter.type):
                            flags[f"generic_{direction}"] = True
                        locations.setdefault("Factory", FACTORY_LOCATION)
                        descriptor = parse_descriptor(parameter.type)
                        for kind in _container_kinds(descriptor):
                            key, location = CONTAINER_LOCATIONS[kind]
                            locations.setdefault(key, location)

        record = DependencyRecord(
            locations=locations,
            target_package=self.target_package,
            source_packages=tuple(self.source_packages),
            **flags,
        )
        logger.debug(f"Dependency analysis of {suite.name}: {record.imports}")
        return record

    @staticmethod
    def _factory_parameters(parameters: Iterable[Parameter]) -> Iterator[Parameter]:
        return (parameter for parameter in parameters if not is_primitive(parameter.type))


def _container_kinds(descriptor: TypeDescriptor) -> Iterator[DescriptorKind]:
    """Container kinds used by a descriptor, outermost first."""
    if descriptor.kind in CONTAINER_LOCATIONS:
        yield descriptor.kind
    for param in descriptor.params:
        yield from _container_kinds(param)


def render_import(location: str) -> str:
    """
    Turn a dotted location into an import statement.

    Examples:
        render_import("typing.List") == "from typing import List"
        render_import("client.local.*") == "from client.local import *"
    """
    module, _, name = location.rpartition(".")
    if not module:
        return f"import {name}"
    return f"from {module} import {name}"
