"""
REST grounding: the system under test is a RESTful service speaking JSON.

Each operation is a path built from the operation name followed by one
percent-encoded segment per input. Generated drivers use httpx for the
calls and pydantic TypeAdapters to decode JSON responses; responses that
hold external values are rebuilt by the driver's HostFactory instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import quote

from specground.ground.dependency import DependencyRecord
from specground.ground.descriptors import DescriptorKind, Grammar, TypeDescriptor, parse_descriptor
from specground.ground.framework import GroundingBackend, GroundingContext, python_identifier
from specground.ground.values import format_literal
from specground.ground.writer import CodeWriter

if TYPE_CHECKING:
    from specground.core.ir import Operation, Output, Parameter, TestStep


def rest_uri(endpoint: str) -> str:
    return endpoint if endpoint.endswith("/") else endpoint + "/"


class RestBackend(GroundingBackend):
    """
    Calls operations by POST, and status inspections by GET.

    Inputs are encoded into the path when the driver is generated, so the
    factory is only needed to build expected outputs. A non-2xx status is
    raised as a RuntimeError carrying the status and the response body.
    """

    name = "rest"
    extension = "rest"
    description = "REST calls through httpx, JSON responses decoded by pydantic"
    default_endpoint = "http://my.rest.server"
    handle = "client"

    def needs_factory(self, record: DependencyRecord) -> bool:
        return record.factory_outputs

    def write_preamble(self, out: CodeWriter, ctx: GroundingContext) -> None:
        self.write_banner(
            out,
            ctx,
            [
                f"System Under Test (SUT) is the RESTful service: {ctx.system}",
                "accessed through the public URI:",
                "",
                f"    {rest_uri(ctx.endpoint)}",
                "",
                "Every argument is supplied as a path segment, so each type must be",
                "constructible by the server from its text. Responses must be JSON.",
                "If an operation returns several values, they must be returned as a",
                "JSON array of values of the same type. A status outside the 200",
                "series raises an exception, whose message is checked. The service",
                "must also offer an explicit reset/ operation to put it in a clean",
                "initial state.",
            ],
        )
        self.write_imports(
            out,
            ctx,
            third_party=[
                "import httpx",
                "from pydantic import TypeAdapter",
            ],
            include_record=self.needs_factory(ctx.record),
        )

    def write_fields(self, out: CodeWriter, ctx: GroundingContext) -> None:
        out.line("#: The root URI leading to the Service-Under-Test.")
        out.line(f"REST_URI = {rest_uri(ctx.endpoint)!r}")
        out.blank()
        out.line("#: The HTTP client, shared by all tests; keeps cookies between calls.")
        out.line("client: httpx.Client = None")
        self.write_factory_field(out, ctx)

    def write_setup(self, out: CodeWriter, ctx: GroundingContext) -> None:
        out.line("@classmethod")
        with out.block("def setUpClass(cls):"):
            out.docstring("Creates the HTTP client, accepting JSON, once for all tests.")
            out.line(
                'cls.client = httpx.Client(base_url=cls.REST_URI, '
                'headers={"Accept": "application/json"})'
            )
        out.blank()
        out.line("@classmethod")
        with out.block("def tearDownClass(cls):"):
            out.line("cls.client.close()")
        out.blank()
        with out.block("def setUp(self):"):
            out.docstring("Resets the service before every test.")
            out.line("self.assertIsNotNone(self.client)")
            out.line('self.call_method("reset/")')

    def write_helpers(self, out: CodeWriter, ctx: GroundingContext) -> None:
        out.blank()
        with out.block("def call_method(self, path):"):
            out.docstring(
                "Makes one REST call and returns the JSON response, or None if there",
                "is none. Status inspections use GET; every other call uses POST.",
                "Raises RuntimeError with the status and the response if the status",
                "is outside the 200 series.",
            )
            with out.block('if "getState" in path or "getScenario" in path:'):
                out.line("response = self.client.get(path)")
            with out.block("else:"):
                out.line("response = self.client.post(path)")
            out.line("body = response.text or None")
            with out.block("if not response.is_success:"):
                out.line(
                    'raise RuntimeError(f"{response.status_code} '
                    '{response.reason_phrase}: {body}")'
                )
            out.line("return body")
        if ctx.meta_check:
            out.blank()
            with out.block("def get_scenario(self):"):
                out.docstring("Returns the name of the last scenario executed on the service.")
                out.line('return TypeAdapter(str).validate_json(self.call_method("getScenario/"))')
            out.blank()
            with out.block("def get_state(self):"):
                out.docstring("Returns the name of the last state visited by the service.")
                out.line('return TypeAdapter(str).validate_json(self.call_method("getState/"))')

    def input_literal(self, ctx: GroundingContext, parameter: Parameter) -> str:
        """A path segment: the model literal of the input's value, percent-encoded."""
        return quote(format_literal(parameter.evaluate()), safe="") + "/"

    def call_expression(self, ctx: GroundingContext, operation: Operation) -> str:
        segments = "".join(self.input_literal(ctx, parameter) for parameter in operation.inputs)
        return f"self.call_method({operation.name + '/' + segments!r})"

    def write_result_declaration(
        self, out: CodeWriter, ctx: GroundingContext, operation: Operation, call: str
    ) -> None:
        index = ctx.step_index
        outputs = operation.outputs
        out.line(f"response{index} = {call}")
        if len(outputs) > 1:
            element = parse_descriptor(outputs[0].type)
            if element.has_external:
                listed = TypeDescriptor.generic(DescriptorKind.LIST, element)
                out.line(f"actual{index} = {self.decoder(listed, index)}")
            else:
                out.line(
                    f"actual{index} = TypeAdapter(list[{element.python_annotation()}])"
                    f".validate_json(response{index})"
                )
        elif len(outputs) == 1:
            output = outputs[0]
            out.line(
                f"{python_identifier(output.name)}{index}: {self.annotation(output)} = "
                f"{self.decoder(parse_descriptor(output.type), index)}"
            )

    @staticmethod
    def decoder(descriptor: TypeDescriptor, index: int) -> str:
        """
        Expression decoding response<index>. Types holding external values
        are rebuilt by the driver's factory; the rest by a TypeAdapter.
        """
        if descriptor.has_external:
            type_text = descriptor.render(Grammar.ANGLE)
            return f"self.factory.decode_json(response{index}, {type_text!r})"
        return f"TypeAdapter({descriptor.python_annotation()}).validate_json(response{index})"

    def write_void_assertion(self, out: CodeWriter, ctx: GroundingContext) -> None:
        out.line(f"self.assertIsNone(response{ctx.step_index})")

    def write_meta_data_assertions(
        self, out: CodeWriter, ctx: GroundingContext, step: TestStep
    ) -> None:
        out.line(f"self.assertEqual({step.scenario!r}, self.get_scenario())")
        out.line(f"self.assertEqual({step.state!r}, self.get_state())")

    @staticmethod
    def annotation(output: Output) -> str:
        return parse_descriptor(output.type).python_annotation()
