"""
Abstract test suite representation.

These types are the read-only input to grounding.
"""

from .suite import (
    INITIAL_STEP,
    Failure,
    Input,
    Notice,
    NoticeKind,
    Operation,
    Output,
    Parameter,
    StepKind,
    TestSequence,
    TestStep,
    TestSuite,
    load_test_suite,
)

__all__ = [
    "INITIAL_STEP",
    "Parameter",
    "Input",
    "Output",
    "Failure",
    "Operation",
    "StepKind",
    "TestStep",
    "TestSequence",
    "Notice",
    "NoticeKind",
    "TestSuite",
    "load_test_suite",
]
