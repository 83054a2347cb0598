"""
In-process grounding: the system under test is a plain Python class.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from specground.ground.framework import GroundingBackend, GroundingContext
from specground.ground.writer import CodeWriter

if TYPE_CHECKING:
    from specground.core.ir import Operation


class InProcessBackend(GroundingBackend):
    """
    Calls the operations of the system directly on an instance.

    The class is imported from the source packages. It is reset by creating
    a fresh instance before every test. If it reports on its own behaviour,
    it must offer getScenario() and getState().
    """

    name = "in-process"
    extension = "local"
    description = "Direct calls on a Python class, created afresh for each test"

    def write_preamble(self, out: CodeWriter, ctx: GroundingContext) -> None:
        self.write_banner(
            out,
            ctx,
            [
                f"System-Under-Test (SUT) is the Python class: {ctx.system},",
                "assumed to be a plain class offering methods that correspond to",
                "the operations of a service. The class is reset simply by creating",
                "a fresh instance. Its method names must match the operation names",
                "of the state machine. If it offers full inspection of its internal",
                "behaviour, it must offer two further methods, getScenario() and",
                "getState(), to report on its status.",
            ],
        )
        self.write_imports(out, ctx)

    def write_fields(self, out: CodeWriter, ctx: GroundingContext) -> None:
        out.line("#: The Python object representing the System-Under-Test.")
        out.line(f"system: {ctx.system} = None")
        self.write_factory_field(out, ctx)

    def write_setup(self, out: CodeWriter, ctx: GroundingContext) -> None:
        with out.block("def setUp(self):"):
            out.docstring("Creates a fresh instance of the System-Under-Test before each test.")
            out.line(f"self.system = {ctx.system}()")
            out.line("self.assertIsNotNone(self.system)")

    def call_expression(self, ctx: GroundingContext, operation: Operation) -> str:
        return f"self.system.{operation.name}({self.input_list(ctx, operation)})"
