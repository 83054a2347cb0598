"""
RPC grounding: the system under test is a SOAP service described by WSDL.

Generated drivers use zeep. The zeep Client is the implementation handle;
its ``service`` proxy is the interface handle on which operations are
called.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from specground.ground.framework import GroundingBackend, GroundingContext
from specground.ground.writer import CodeWriter

if TYPE_CHECKING:
    from specground.core.ir import Operation, TestStep


def wsdl_uri(endpoint: str, system: str) -> str:
    """WSDL location: the endpoint itself if it names a WSDL, else <endpoint>/<system>?wsdl."""
    if endpoint.lower().endswith("?wsdl"):
        return endpoint
    return f"{endpoint.rstrip('/')}/{system}?wsdl"


class RpcBackend(GroundingBackend):
    """
    Calls operations through a zeep service proxy.

    The client is created once per driver class, with a requests Session
    so that the service can keep session state between calls. The service
    is reset before every test.
    """

    name = "rpc"
    extension = "rpc"
    description = "SOAP service calls through a zeep client, reset before each test"
    default_endpoint = "http://localhost:8080"

    def write_preamble(self, out: CodeWriter, ctx: GroundingContext) -> None:
        self.write_banner(
            out,
            ctx,
            [
                f"System Under Test (SUT) is the SOAP service: {ctx.system},",
                "described by the WSDL document at:",
                "",
                f"    {wsdl_uri(ctx.endpoint, ctx.system)}",
                "",
                "The service must offer an explicit reset() operation to put it in a",
                "clean initial state. Session state is kept between calls by a shared",
                "HTTP session.",
            ],
        )
        self.write_imports(
            out,
            ctx,
            third_party=[
                "import requests",
                "import zeep",
                "from zeep.transports import Transport",
            ],
        )

    def write_fields(self, out: CodeWriter, ctx: GroundingContext) -> None:
        out.line("#: WSDL location of the Service-Under-Test.")
        out.line(f"WSDL_URI = {wsdl_uri(ctx.endpoint, ctx.system)!r}")
        out.blank()
        out.line("#: The zeep client for the service implementation, shared by all tests.")
        out.line("implementation: zeep.Client = None")
        out.blank()
        out.line("#: The service interface extracted from the implementation.")
        out.line("system = None")
        self.write_factory_field(out, ctx)

    def write_setup(self, out: CodeWriter, ctx: GroundingContext) -> None:
        out.line("@classmethod")
        with out.block("def setUpClass(cls):"):
            out.docstring(
                "Creates the zeep client for the service implementation and extracts",
                "the service interface, once for all tests.",
            )
            out.line("transport = Transport(session=requests.Session())")
            out.line("cls.implementation = zeep.Client(cls.WSDL_URI, transport=transport)")
            out.line("cls.system = cls.implementation.service")
        out.blank()
        out.line("@classmethod")
        with out.block("def tearDownClass(cls):"):
            out.line("cls.implementation.transport.session.close()")
        out.blank()
        with out.block("def setUp(self):"):
            out.docstring("Resets the state of the service before every test.")
            out.line("self.assertIsNotNone(self.implementation)")
            out.line("self.assertIsNotNone(self.system)")
            out.line("self.system.reset()")

    def write_initial_step(self, out: CodeWriter, ctx: GroundingContext, step: TestStep) -> None:
        if step.verify:
            out.line(f"# Verify service reset step #{ctx.step_index}")
            out.line("self.assertIsNotNone(self.implementation)")
            out.line("self.assertIsNotNone(self.system)")

    def call_expression(self, ctx: GroundingContext, operation: Operation) -> str:
        return f"self.system.{operation.name}({self.input_list(ctx, operation)})"

    def receive_multiple(self, call: str) -> str:
        return f"list({call})"
