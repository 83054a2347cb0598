"""Shared pytest fixtures for specground tests."""

from __future__ import annotations

import io
from collections.abc import Callable
from datetime import datetime

import pytest

from specground.core.ir import (
    Failure,
    Input,
    Notice,
    NoticeKind,
    Operation,
    Output,
    TestSequence,
    TestStep,
    TestSuite,
)
from specground.ground.backends import InProcessBackend, RestBackend, RpcBackend
from specground.ground.framework import Grounder, GroundingBackend

GENERATED_AT = datetime(2026, 10, 19, 12, 0, 0)


def create_step(verify: bool = False) -> TestStep:
    return TestStep(
        name="create/ok",
        state="Open",
        verify=verify,
        operation=Operation(name="create"),
    )


@pytest.fixture
def generated_at() -> datetime:
    """Fixed generation timestamp."""
    return GENERATED_AT


@pytest.fixture
def deposit_step() -> TestStep:
    """A verified call taking and returning one Integer."""
    return TestStep(
        name="deposit/ok",
        state="Open",
        verify=True,
        operation=Operation(
            name="deposit",
            inputs=[Input(name="amount", type="Integer", content="10")],
            outputs=[Output(name="balance", type="Integer", content="10")],
        ),
    )


@pytest.fixture
def withdraw_failure_step() -> TestStep:
    """A verified call that must raise."""
    return TestStep(
        name="withdraw/error[1]",
        state="Open",
        verify=True,
        operation=Operation(
            name="withdraw",
            inputs=[Input(name="amount", type="Integer", content="50")],
            outputs=[Output(name="balance", type="Integer", bound=False)],
            failures=[
                Failure(name="error", type="String", content="Insufficient funds"),
                Failure(name="other", type="String", content="Account closed"),
            ],
        ),
    )


@pytest.fixture
def account_suite(deposit_step: TestStep) -> TestSuite:
    """Two steps: create, then one verified call returning one Integer."""
    return TestSuite(
        name="Account",
        sequences=[
            TestSequence(test=1, state="Open", path=1, steps=[create_step(), deposit_step]),
        ],
    )


@pytest.fixture
def failure_suite(deposit_step: TestStep, withdraw_failure_step: TestStep) -> TestSuite:
    """A sequence ending in an expected failure."""
    return TestSuite(
        name="Account",
        sequences=[
            TestSequence(
                test=1,
                state="Open",
                path=2,
                steps=[create_step(), deposit_step, withdraw_failure_step],
            ),
        ],
    )


@pytest.fixture
def collection_suite() -> TestSuite:
    """Generic inputs and outputs, which need the factory."""
    return TestSuite(
        name="ContactList",
        notices=[
            Notice(text="Exploration depth: 2"),
            Notice(kind=NoticeKind.WARNING, text="State Full is not reached"),
        ],
        sequences=[
            TestSequence(
                test=1,
                state="Ready",
                path=1,
                steps=[
                    create_step(verify=True),
                    TestStep(
                        name="addAll/ok",
                        state="Ready",
                        verify=True,
                        operation=Operation(
                            name="addAll",
                            inputs=[Input(name="numbers", type="List[Integer]", content="[1, 2]")],
                            outputs=[
                                Output(
                                    name="counts",
                                    type="Map[String, Integer]",
                                    content="{a=1, b=2}",
                                )
                            ],
                        ),
                    ),
                ],
            ),
        ],
    )


@pytest.fixture
def multi_output_suite() -> TestSuite:
    """A call returning two outputs, followed by a void call."""
    return TestSuite(
        name="Cart",
        sequences=[
            TestSequence(
                test=1,
                state="Empty",
                path=2,
                steps=[
                    create_step(),
                    TestStep(
                        name="status/ok",
                        state="Empty",
                        verify=True,
                        operation=Operation(
                            name="status",
                            outputs=[
                                Output(name="count", type="Integer", content="0"),
                                Output(name="label", type="String", content="empty"),
                            ],
                        ),
                    ),
                    TestStep(
                        name="clear/ok",
                        state="Empty",
                        verify=True,
                        operation=Operation(name="clear"),
                    ),
                ],
            ),
        ],
    )


@pytest.fixture
def ground_text(generated_at: datetime) -> Callable[..., str]:
    """Return a function grounding a suite with a backend into a string."""

    def _ground(backend: GroundingBackend, suite: TestSuite, **options: object) -> str:
        options.setdefault("source_packages", ["client.local"])
        options.setdefault("target_package", "generated.local")
        stream = io.StringIO()
        Grounder(backend, stream, generated_at=generated_at, **options).ground(suite)
        return stream.getvalue()

    return _ground


@pytest.fixture(params=[InProcessBackend, RpcBackend, RestBackend], ids=lambda b: b.name)
def any_backend(request: pytest.FixtureRequest) -> GroundingBackend:
    """Each registered backend in turn."""
    return request.param()
