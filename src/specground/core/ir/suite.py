"""
Abstract test suite types.

A TestSuite is produced upstream by state-space exploration and is read
here without further validation. Each TestSequence is an ordered list of
TestSteps; each TestStep invokes one Operation whose Inputs, Outputs and
Failures carry typed literal values.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from specground.core.errors import SuiteLoadError

INITIAL_STEP = "create/ok"


class Parameter(BaseModel):
    """
    A typed, possibly bound, value slot of an Operation.

    Attributes:
        name: Parameter name
        type: Type descriptor in the bracket grammar, e.g. "List[Integer]"
        content: Literal text of the bound value
        bound: Whether the parameter holds a value
    """

    name: str
    type: str = "String"
    content: str | None = None
    bound: bool = True

    model_config = ConfigDict(frozen=True)

    def evaluate(self) -> Any:
        """Default evaluation: the synthesised value, or None when unbound."""
        if not self.bound:
            return None
        from specground.ground.factory import ModelFactory

        return ModelFactory().create_value(self.content, self.type)


class Input(Parameter):
    pass


class Output(Parameter):
    pass


class Failure(Parameter):
    """An anticipated service exception; content is the expected error text."""

    pass


class Operation(BaseModel):
    """An invocation of one service operation."""

    name: str
    inputs: list[Input] = Field(default_factory=list)
    outputs: list[Output] = Field(default_factory=list)
    failures: list[Failure] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def is_creation(self) -> bool:
        return self.name == "create"

    @property
    def is_failure(self) -> bool:
        """True when the result of this Operation is bound to a Failure."""
        return any(failure.bound for failure in self.failures)

    @property
    def first_failure(self) -> Failure | None:
        return self.failures[0] if self.failures else None


class StepKind(str, Enum):
    """How a TestStep is grounded."""

    INITIAL = "initial"
    NORMAL = "normal"
    FAILURE = "failure"


class TestStep(BaseModel):
    """
    One step of a TestSequence.

    The name is the logical step name, e.g. "deposit/ok[2]"; any bracketed
    subscript is dropped to give the expected scenario.
    """

    __test__ = False

    name: str
    state: str
    verify: bool = False
    operation: Operation | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def kind(self) -> StepKind:
        if self.name == INITIAL_STEP:
            return StepKind.INITIAL
        if self.operation is not None and self.operation.is_failure:
            return StepKind.FAILURE
        return StepKind.NORMAL

    @property
    def scenario(self) -> str:
        index = self.name.find("[")
        return self.name if index == -1 else self.name[:index]


class TestSequence(BaseModel):
    """
    An ordered run of TestSteps.

    Attributes:
        test: Index of this sequence within its suite
        state: Name of the state the sequence sets out to reach
        path: Length of the novel path explored from that state
        steps: The steps, in execution order
    """

    __test__ = False

    test: int = 0
    state: str = ""
    path: int = 0
    steps: list[TestStep] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def verify_count(self) -> int:
        return sum(1 for step in self.steps if step.verify)

    @property
    def source(self) -> str | None:
        return self.steps[0].state if self.steps else None

    @property
    def target(self) -> str | None:
        return self.steps[-1].state if self.steps else None

    @property
    def has_failures(self) -> bool:
        """True if some step may raise an anticipated exception that is not caught."""
        return any(
            not failure.bound
            for step in self.steps
            if step.operation is not None
            for failure in step.operation.failures
        )


class NoticeKind(str, Enum):
    INFO = "info"
    WARNING = "warning"


class Notice(BaseModel):
    """A diagnostic attached to a suite by the generator."""

    kind: NoticeKind = NoticeKind.INFO
    text: str

    model_config = ConfigDict(frozen=True)


class TestSuite(BaseModel):
    """
    A complete abstract test suite for one system.

    Attributes:
        name: Name of the system under test
        grounding: Preferred grounding selector, if any
        meta_check: Whether to check reported scenario and state after each verified step
        sequences: The test sequences, in emission order
        notices: Diagnostics carried into the generated driver
    """

    __test__ = False

    name: str
    grounding: str | None = None
    meta_check: bool = False
    sequences: list[TestSequence] = Field(default_factory=list)
    notices: list[Notice] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def system(self) -> str:
        return self.name

    @property
    def driver(self) -> str:
        return f"{self.name}Test"

    @property
    def warnings(self) -> list[Notice]:
        return [notice for notice in self.notices if notice.kind is NoticeKind.WARNING]

    def __len__(self) -> int:
        return len(self.sequences)


def load_test_suite(path: Path) -> TestSuite:
    """
    Load a test suite from its JSON rendering.

    Raises:
        SuiteLoadError: if the file cannot be read or does not validate
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SuiteLoadError(f"Cannot read test suite {path}: {e}") from e
    try:
        return TestSuite.model_validate_json(text)
    except ValidationError as e:
        raise SuiteLoadError(f"Invalid test suite {path}:\n{e}") from e
