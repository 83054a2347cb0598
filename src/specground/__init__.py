"""
specground - grounds abstract state-machine test suites into executable
Python test drivers.

An abstract TestSuite lists sequences of operation calls with their expected
outputs, scenarios and states. Grounding turns it into one unittest module
for a chosen invocation convention: in-process, RPC (SOAP) or REST.
"""

from __future__ import annotations

from ._version import __version__
from .core import ir
from .core.errors import (
    DescriptorError,
    ExternalTypeError,
    GroundingError,
    InvalidArgumentError,
    LiteralError,
    SpecgroundError,
    SuiteLoadError,
)

__all__ = [
    "__version__",
    "ir",
    "SpecgroundError",
    "InvalidArgumentError",
    "DescriptorError",
    "LiteralError",
    "ExternalTypeError",
    "GroundingError",
    "SuiteLoadError",
]
