"""
Grounding: turning an abstract TestSuite into a runnable Python test driver.

- descriptors: parse type descriptors in the bracket and angle grammars
- factory: synthesise values, successors and predecessors
- dependency: decide what a driver must import
- framework: the shared traversal and the backend interface
- backends: the in-process, RPC and REST conventions
- runner: resolve options and write the driver file
"""

from .dependency import DependencyAnalyzer, DependencyRecord
from .descriptors import DescriptorKind, Grammar, TypeDescriptor, parse_descriptor
from .factory import HostFactory, ModelFactory
from .framework import Grounder, GroundingBackend, GroundingContext
from .values import Entity, Pair, format_literal

__all__ = [
    "DependencyAnalyzer",
    "DependencyRecord",
    "DescriptorKind",
    "Grammar",
    "TypeDescriptor",
    "parse_descriptor",
    "HostFactory",
    "ModelFactory",
    "Grounder",
    "GroundingBackend",
    "GroundingContext",
    "Entity",
    "Pair",
    "format_literal",
]
