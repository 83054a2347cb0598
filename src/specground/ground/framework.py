"""
Shared grounding traversal.

A Grounder translates one TestSuite into one Python test module. The
traversal is fixed: analyse dependencies, write the preamble, then one
unittest.TestCase class with its fields, constructor, setup routine and
one test method per TestSequence. Everything that depends on how the
system under test is invoked is delegated to a GroundingBackend.

Backends supply:
- preamble, fields, setup and call expressions (required)
- constructor, helper methods, initial step, failure step, result
  declaration, result assertion, void assertion, input literal and
  meta-data assertions (defaults provided)
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, ClassVar, TextIO

from specground._version import __version__
from specground.core.errors import GroundingError
from specground.core.ir import NoticeKind, StepKind
from specground.ground.dependency import DependencyAnalyzer, DependencyRecord, render_import
from specground.ground.descriptors import Grammar, is_literal_type, parse_descriptor
from specground.ground.writer import CodeWriter

if TYPE_CHECKING:
    from specground.core.ir import Operation, Output, Parameter, TestSequence, TestStep, TestSuite

logger = logging.getLogger(__name__)

COVERAGE_WARNING = "Warning: the state machine is not fully covered!"


def python_identifier(name: str) -> str:
    """Make a model name usable as a Python identifier."""
    ident = re.sub(r"\W", "_", name)
    if not ident or ident[0].isdigit():
        ident = "_" + ident
    return ident


@dataclass
class GroundingContext:
    """
    State of one grounding run, shared between the Grounder and its backend.

    test_index counts test methods from 1; step_index counts the steps of
    the current sequence from 0.
    """

    suite: TestSuite
    record: DependencyRecord
    meta_check: bool
    endpoint: str | None
    generated_at: datetime
    test_index: int = 0
    step_index: int = 0

    @property
    def system(self) -> str:
        return self.suite.name

    @property
    def driver(self) -> str:
        return self.suite.driver


class GroundingBackend(ABC):
    """
    Base class for one invocation convention.

    Subclasses set the class attributes below and implement the four
    abstract writers. Every writer receives the CodeWriter, already
    indented to the right level, and the GroundingContext.
    """

    #: Selector naming this backend, e.g. "in-process"
    name: ClassVar[str]
    #: Package suffix for default target and source packages, e.g. "local"
    extension: ClassVar[str]
    #: One-line description for listings
    description: ClassVar[str] = ""
    #: Endpoint used when none is configured
    default_endpoint: ClassVar[str | None] = None
    #: Attribute holding the service handle in generated drivers
    handle: ClassVar[str] = "system"

    # =========================================================================
    # Required writers
    # =========================================================================

    @abstractmethod
    def write_preamble(self, out: CodeWriter, ctx: GroundingContext) -> None:
        """Write the module docstring and imports."""
        pass

    @abstractmethod
    def write_fields(self, out: CodeWriter, ctx: GroundingContext) -> None:
        """Write the class attributes of the driver."""
        pass

    @abstractmethod
    def write_setup(self, out: CodeWriter, ctx: GroundingContext) -> None:
        """Write the routine that creates or resets the service before each test."""
        pass

    @abstractmethod
    def call_expression(self, ctx: GroundingContext, operation: Operation) -> str:
        """Return the Python expression that invokes an operation."""
        pass

    # =========================================================================
    # Overridable writers
    # =========================================================================

    def needs_factory(self, record: DependencyRecord) -> bool:
        return record.needs_factory

    def write_constructor(self, out: CodeWriter, ctx: GroundingContext) -> None:
        with out.block('def __init__(self, method_name="runTest"):'):
            out.docstring(f"Creates the test driver: {ctx.driver}.")
            out.line("super().__init__(method_name)")
            if self.needs_factory(ctx.record):
                out.line("self.factory = HostFactory()")
                for package in ctx.record.source_packages:
                    if package:
                        out.line(f"self.factory.use_source_package({package!r})")

    def write_helpers(self, out: CodeWriter, ctx: GroundingContext) -> None:
        """Write extra methods used by the test methods. None by default."""
        pass

    def write_initial_step(self, out: CodeWriter, ctx: GroundingContext, step: TestStep) -> None:
        if step.verify:
            out.line(f"# Verify service reset step #{ctx.step_index}")
            out.line(f"self.assertIsNotNone(self.{self.handle})")

    def write_normal_step(self, out: CodeWriter, ctx: GroundingContext, step: TestStep) -> None:
        operation = step.operation
        call = self.call_expression(ctx, operation)
        if not step.verify:
            out.line(call)
            return
        self.write_result_declaration(out, ctx, operation, call)
        out.line(f"# Verify invocation step #{ctx.step_index}")
        self.write_result_assertions(out, ctx, operation.outputs)

    def write_failure_step(self, out: CodeWriter, ctx: GroundingContext, step: TestStep) -> None:
        """
        Write a guarded call that is expected to raise.

        The except block checks the error text when the step is verified.
        The else block runs only if the call returned, which is a failure.
        """
        operation = step.operation
        failure = operation.first_failure
        expected = (failure.content if failure is not None else None) or ""
        with out.block("try:"):
            out.line(self.call_expression(ctx, operation))
        with out.block("except Exception as ex:"):
            if step.verify:
                out.line(f"self.assertIn({expected!r}, str(ex))")
            else:
                out.line("pass  # Exception has already been verified.")
        if step.verify:
            with out.block("else:"):
                out.line(f"# Verify exception step #{ctx.step_index}")
                out.line(f"self.fail({'Expected an exception: ' + expected!r})")

    def receive_multiple(self, call: str) -> str:
        """Expression receiving several outputs from one call."""
        return call

    def write_result_declaration(
        self, out: CodeWriter, ctx: GroundingContext, operation: Operation, call: str
    ) -> None:
        outputs = operation.outputs
        if len(outputs) > 1:
            out.line(f"actual{ctx.step_index} = {self.receive_multiple(call)}")
        elif len(outputs) == 1:
            out.line(f"{self.receiver(ctx, outputs[0])} = {call}")
        else:
            out.line(call)

    def write_result_assertions(
        self, out: CodeWriter, ctx: GroundingContext, outputs: list[Output]
    ) -> None:
        index = ctx.step_index
        if not outputs:
            self.write_void_assertion(out, ctx)
        elif len(outputs) == 1:
            output = outputs[0]
            expected = self.literal(ctx, output)
            out.line(f"self.assertEqual({expected}, {python_identifier(output.name)}{index})")
        else:
            expected = ", ".join(self.literal(ctx, output) for output in outputs)
            out.line(f"expect{index} = [{expected}]")
            out.line(f"self.assertSequenceEqual(expect{index}, actual{index})")

    def write_void_assertion(self, out: CodeWriter, ctx: GroundingContext) -> None:
        """Assert that a call returned nothing. Not every convention can check this."""
        pass

    def input_literal(self, ctx: GroundingContext, parameter: Parameter) -> str:
        return self.literal(ctx, parameter)

    def write_meta_data_assertions(
        self, out: CodeWriter, ctx: GroundingContext, step: TestStep
    ) -> None:
        out.line(f"self.assertEqual({step.scenario!r}, self.{self.handle}.getScenario())")
        out.line(f"self.assertEqual({step.state!r}, self.{self.handle}.getState())")

    # =========================================================================
    # Helpers
    # =========================================================================

    def receiver(self, ctx: GroundingContext, output: Output) -> str:
        """Typed receiver variable for a single output, e.g. ``result1: int``."""
        annotation = parse_descriptor(output.type).python_annotation()
        return f"{python_identifier(output.name)}{ctx.step_index}: {annotation}"

    def literal(self, ctx: GroundingContext, parameter: Parameter) -> str:
        """
        Python source for the value of a parameter.

        Unbound parameters are None. Types matched by is_literal_type() are
        written as Python literals of their default evaluation. Anything
        else is synthesised at test time by the driver's HostFactory.
        """
        if not parameter.bound:
            return "None"
        if is_literal_type(parameter.type):
            return repr(parameter.evaluate())
        descriptor = parse_descriptor(parameter.type).render(Grammar.ANGLE)
        return f"self.factory.create({parameter.content or ''!r}, {descriptor!r})"

    def input_list(self, ctx: GroundingContext, operation: Operation) -> str:
        return ", ".join(self.input_literal(ctx, parameter) for parameter in operation.inputs)

    def write_banner(self, out: CodeWriter, ctx: GroundingContext, about: list[str]) -> None:
        """Write the module docstring: origin, description of the SUT, and notices."""
        stamp = ctx.generated_at.strftime("%Y-%m-%d %H:%M:%S")
        texts = [
            f"{ctx.driver} generated on {stamp}",
            f"by specground {__version__}, grounding: {self.name}.",
            "",
            *about,
        ]
        notices = [notice for notice in ctx.suite.notices if notice.kind is NoticeKind.INFO]
        if notices or ctx.suite.warnings:
            texts.append("")
        texts.extend(f"    {notice.text}" for notice in notices)
        if ctx.suite.warnings:
            texts.append(f"    {COVERAGE_WARNING}")
        out.docstring(*texts)

    def write_imports(
        self,
        out: CodeWriter,
        ctx: GroundingContext,
        third_party: list[str] | None = None,
        include_record: bool = True,
    ) -> None:
        """Write ``import unittest``, then third-party imports, then the record's imports."""
        out.blank()
        out.line("import unittest")
        if third_party:
            out.blank()
            out.lines(*third_party)
        if include_record and ctx.record.imports:
            out.blank()
            out.lines(*(render_import(location) for location in ctx.record.imports))

    def write_factory_field(self, out: CodeWriter, ctx: GroundingContext) -> None:
        if self.needs_factory(ctx.record):
            out.blank()
            out.line("#: HostFactory to synthesise objects of complex types.")
            out.line("factory: HostFactory = None")


class Grounder:
    """
    Grounds a TestSuite into a Python test module on one output stream.

    Example:
        with open("test_account.py", "w") as stream:
            grounder = Grounder(InProcessBackend(), stream, source_packages=["client.local"])
            grounder.ground(suite)
    """

    def __init__(
        self,
        backend: GroundingBackend,
        stream: TextIO,
        *,
        meta_check: bool | None = None,
        endpoint: str | None = None,
        target_package: str | None = None,
        source_packages: list[str] | tuple[str, ...] = (),
        generated_at: datetime | None = None,
    ):
        self.backend = backend
        self.stream = stream
        self.meta_check = meta_check
        self.endpoint = endpoint
        self.target_package = target_package
        self.source_packages = list(source_packages)
        self.generated_at = generated_at

    def analyse(self, suite: TestSuite) -> DependencyRecord:
        analyzer = DependencyAnalyzer()
        analyzer.use_target_package(self.target_package)
        for package in self.source_packages:
            analyzer.use_source_package(package)
        return analyzer.analyse(suite)

    def ground(self, suite: TestSuite) -> DependencyRecord:
        """
        Write the complete driver for a suite.

        Analysis runs to completion before anything is written. Any error
        aborts the run; text already written to the stream stays there.

        Returns:
            The DependencyRecord the driver was written against

        Raises:
            GroundingError: if a step other than the initial one has no operation
        """
        self._check_operations(suite)
        record = self.analyse(suite)
        ctx = GroundingContext(
            suite=suite,
            record=record,
            meta_check=suite.meta_check if self.meta_check is None else self.meta_check,
            endpoint=self.endpoint or self.backend.default_endpoint,
            generated_at=self.generated_at or datetime.now(),
        )
        backend = self.backend
        out = CodeWriter(self.stream)

        backend.write_preamble(out, ctx)
        out.blank(2)
        with out.block(f"class {suite.driver}(unittest.TestCase):"):
            self._write_class_docstring(out, ctx)
            backend.write_fields(out, ctx)
            out.blank()
            backend.write_constructor(out, ctx)
            out.blank()
            backend.write_setup(out, ctx)
            backend.write_helpers(out, ctx)
            for index, sequence in enumerate(suite.sequences, start=1):
                ctx.test_index = index
                out.blank()
                self.ground_sequence(out, ctx, sequence)

        logger.debug(f"Grounded {len(suite.sequences)} sequence(s) of {suite.name}")
        return record

    @staticmethod
    def _check_operations(suite: TestSuite) -> None:
        for number, sequence in enumerate(suite.sequences, start=1):
            for step in sequence.steps:
                if step.kind is not StepKind.INITIAL and step.operation is None:
                    raise GroundingError(
                        f"Step {step.name} of TestSequence #{number} has no operation"
                    )

    def ground_sequence(self, out: CodeWriter, ctx: GroundingContext, sequence: TestSequence) -> None:
        with out.block(f"def test{ctx.test_index}(self):"):
            self._write_method_docstring(out, ctx, sequence)
            for index, step in enumerate(sequence.steps):
                ctx.step_index = index
                self.ground_step(out, ctx, step)

    def ground_step(self, out: CodeWriter, ctx: GroundingContext, step: TestStep) -> None:
        backend = self.backend
        kind = step.kind
        if kind is StepKind.INITIAL:
            backend.write_initial_step(out, ctx, step)
        elif kind is StepKind.FAILURE:
            backend.write_failure_step(out, ctx, step)
        else:
            backend.write_normal_step(out, ctx, step)
        if step.verify and ctx.meta_check:
            backend.write_meta_data_assertions(out, ctx, step)

    def _write_class_docstring(self, out: CodeWriter, ctx: GroundingContext) -> None:
        out.docstring(f"Test driver for the system under test: {ctx.system}.")
        out.blank()

    def _write_method_docstring(
        self, out: CodeWriter, ctx: GroundingContext, sequence: TestSequence
    ) -> None:
        number = sequence.test or ctx.test_index
        texts = [
            f"Translation of TestSequence #{number}.  The main test goal is to reach the",
            f"state '{sequence.state}' and, from there, execute a novel path of length "
            f"{sequence.path}.",
        ]
        extra = sequence.verify_count - 1
        if extra == 1:
            texts.append("This test also contains a further merged shorter test.")
        elif extra > 1:
            texts.append(f"This test also contains a further {extra} merged shorter tests.")
        out.docstring(*texts)
