"""
Tests for the in-process grounding.

Checks the shape of generated drivers and runs them with unittest against
small client classes written to a temporary package.
"""

import ast
import importlib.util
import io
import textwrap
import unittest
from collections.abc import Callable
from pathlib import Path
from types import ModuleType

import pytest

from specground._version import __version__
from specground.core.ir import TestSuite
from specground.ground.backends import InProcessBackend

ACCOUNT_CLIENT = """
class Account:
    def __init__(self):
        self.balance = 0
        self.scenario = "create/ok"
        self.state = "Open"

    def deposit(self, amount):
        self.balance += amount
        self.scenario = "deposit/ok"
        return self.balance

    def withdraw(self, amount):
        if amount > self.balance:
            self.scenario = "withdraw/error"
            raise ValueError("Insufficient funds")
        self.balance -= amount
        self.scenario = "withdraw/ok"
        return self.balance

    def getScenario(self):
        return self.scenario

    def getState(self):
        return self.state
"""

LENIENT_ACCOUNT_CLIENT = """
class Account:
    def deposit(self, amount):
        return amount

    def withdraw(self, amount):
        return 0
"""

CONTACT_LIST_CLIENT = """
class ContactList:
    def addAll(self, numbers):
        return {"a": numbers[0], "b": numbers[1]}
"""

CART_CLIENT = """
class Cart:
    def status(self):
        return 0, "empty"

    def clear(self):
        pass
"""


def load_driver(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    package: str,
    client_source: str,
    driver_text: str,
) -> ModuleType:
    """Write a client package and a driver module, then import the driver."""
    package_dir = tmp_path / package
    package_dir.mkdir()
    (package_dir / "__init__.py").write_text(textwrap.dedent(client_source))
    driver_path = tmp_path / f"test_{package}_driver.py"
    driver_path.write_text(driver_text)
    monkeypatch.syspath_prepend(str(tmp_path))

    spec = importlib.util.spec_from_file_location(f"test_{package}_driver", driver_path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def run_driver(driver_class: type[unittest.TestCase]) -> unittest.TestResult:
    tests = unittest.TestLoader().loadTestsFromTestCase(driver_class)
    return unittest.TextTestRunner(stream=io.StringIO(), verbosity=0).run(tests)


# =============================================================================
# Generated source
# =============================================================================


class TestInProcessSource:
    """Tests for the text of in-process drivers."""

    def test_single_call_with_integer_result(
        self, ground_text: Callable[..., str], account_suite: TestSuite
    ) -> None:
        text = ground_text(InProcessBackend(), account_suite)

        assert text.count("system: Account = None") == 1
        assert text.count("def __init__(self, method_name=\"runTest\"):") == 1
        assert text.count("def setUp(self):") == 1
        assert text.count("def test") == 1
        assert "balance1: int = self.system.deposit(10)" in text
        assert text.count("self.assertEqual(") == 1
        assert "self.assertEqual(10, balance1)" in text

    def test_banner(self, ground_text: Callable[..., str], account_suite: TestSuite) -> None:
        text = ground_text(InProcessBackend(), account_suite)
        assert text.startswith('"""\nAccountTest generated on 2026-10-19 12:00:00\n')
        assert f"by specground {__version__}, grounding: in-process." in text
        assert "System-Under-Test (SUT) is the Python class: Account," in text

    def test_imports(self, ground_text: Callable[..., str], account_suite: TestSuite) -> None:
        text = ground_text(InProcessBackend(), account_suite)
        assert "import unittest\n\nfrom client.local import *\n" in text
        assert "HostFactory" not in text

    def test_class_layout(self, ground_text: Callable[..., str], account_suite: TestSuite) -> None:
        text = ground_text(InProcessBackend(), account_suite)
        expected = textwrap.dedent(
            '''\
            class AccountTest(unittest.TestCase):
                """Test driver for the system under test: Account."""

                #: The Python object representing the System-Under-Test.
                system: Account = None

                def __init__(self, method_name="runTest"):
                    """Creates the test driver: AccountTest."""
                    super().__init__(method_name)

                def setUp(self):
                    """Creates a fresh instance of the System-Under-Test before each test."""
                    self.system = Account()
                    self.assertIsNotNone(self.system)

                def test1(self):
                    """
                    Translation of TestSequence #1.  The main test goal is to reach the
                    state 'Open' and, from there, execute a novel path of length 1.
                    """
                    balance1: int = self.system.deposit(10)
                    # Verify invocation step #1
                    self.assertEqual(10, balance1)
            '''
        )
        assert text.endswith(expected)

    def test_factory_for_generic_types(
        self, ground_text: Callable[..., str], collection_suite: TestSuite
    ) -> None:
        text = ground_text(InProcessBackend(), collection_suite)

        assert "from specground.ground.factory import HostFactory" in text
        assert "from typing import List" in text
        assert "from typing import Dict" in text
        assert "factory: HostFactory = None" in text
        assert "self.factory = HostFactory()" in text
        assert "self.factory.use_source_package('client.local')" in text
        assert (
            "counts1: Dict[str, int] = "
            "self.system.addAll(self.factory.create('[1, 2]', 'ArrayList<Integer>'))"
        ) in text
        assert (
            "self.assertEqual(self.factory.create('{a=1, b=2}', "
            "'HashMap<String, Integer>'), counts1)"
        ) in text

    def test_verified_create_step(
        self, ground_text: Callable[..., str], collection_suite: TestSuite
    ) -> None:
        text = ground_text(InProcessBackend(), collection_suite)
        assert "# Verify service reset step #0\n        self.assertIsNotNone(self.system)" in text

    def test_multiple_outputs(
        self, ground_text: Callable[..., str], multi_output_suite: TestSuite
    ) -> None:
        text = ground_text(InProcessBackend(), multi_output_suite)
        assert "actual1 = self.system.status()" in text
        assert "expect1 = [0, 'empty']" in text
        assert "self.assertSequenceEqual(expect1, actual1)" in text

    def test_void_call(self, ground_text: Callable[..., str], multi_output_suite: TestSuite) -> None:
        text = ground_text(InProcessBackend(), multi_output_suite)
        assert "        self.system.clear()\n        # Verify invocation step #2\n" in text

    def test_unverified_call_is_bare(
        self, ground_text: Callable[..., str], failure_suite: TestSuite
    ) -> None:
        suite = failure_suite.model_copy(
            update={
                "sequences": [
                    failure_suite.sequences[0].model_copy(
                        update={
                            "steps": [
                                step.model_copy(update={"verify": False})
                                for step in failure_suite.sequences[0].steps
                            ]
                        }
                    )
                ]
            }
        )
        text = ground_text(InProcessBackend(), suite)
        assert "        self.system.deposit(10)\n" in text
        assert "assertEqual" not in text

    def test_meta_check(self, ground_text: Callable[..., str], account_suite: TestSuite) -> None:
        text = ground_text(InProcessBackend(), account_suite, meta_check=True)
        assert "self.assertEqual('deposit/ok', self.system.getScenario())" in text
        assert "self.assertEqual('Open', self.system.getState())" in text

    def test_meta_check_follows_suite(
        self, ground_text: Callable[..., str], account_suite: TestSuite
    ) -> None:
        suite = account_suite.model_copy(update={"meta_check": True})
        checked = ground_text(InProcessBackend(), suite)
        unchecked = ground_text(InProcessBackend(), suite, meta_check=False)
        assert "self.system.getScenario()" in checked
        assert "self.system.getScenario()" not in unchecked

    def test_source_is_valid_python(
        self, ground_text: Callable[..., str], collection_suite: TestSuite
    ) -> None:
        tree = ast.parse(ground_text(InProcessBackend(), collection_suite, meta_check=True))
        classes = [node for node in tree.body if isinstance(node, ast.ClassDef)]
        assert [node.name for node in classes] == ["ContactListTest"]


# =============================================================================
# Execution
# =============================================================================


class TestInProcessExecution:
    """Run generated drivers against real client classes."""

    def test_passing_driver(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        ground_text: Callable[..., str],
        failure_suite: TestSuite,
    ) -> None:
        text = ground_text(
            InProcessBackend(), failure_suite, source_packages=["sg_account"], meta_check=True
        )
        module = load_driver(tmp_path, monkeypatch, "sg_account", ACCOUNT_CLIENT, text)

        result = run_driver(module.AccountTest)

        assert result.testsRun == 1
        assert result.wasSuccessful(), result.failures + result.errors

    def test_missing_exception_fails(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        ground_text: Callable[..., str],
        failure_suite: TestSuite,
    ) -> None:
        text = ground_text(InProcessBackend(), failure_suite, source_packages=["sg_lenient"])
        module = load_driver(tmp_path, monkeypatch, "sg_lenient", LENIENT_ACCOUNT_CLIENT, text)

        result = run_driver(module.AccountTest)

        assert len(result.failures) == 1
        assert "Expected an exception: Insufficient funds" in result.failures[0][1]

    def test_factory_values(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        ground_text: Callable[..., str],
        collection_suite: TestSuite,
    ) -> None:
        text = ground_text(InProcessBackend(), collection_suite, source_packages=["sg_contacts"])
        module = load_driver(tmp_path, monkeypatch, "sg_contacts", CONTACT_LIST_CLIENT, text)

        result = run_driver(module.ContactListTest)

        assert result.wasSuccessful(), result.failures + result.errors

    def test_multiple_outputs(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        ground_text: Callable[..., str],
        multi_output_suite: TestSuite,
    ) -> None:
        text = ground_text(InProcessBackend(), multi_output_suite, source_packages=["sg_cart"])
        module = load_driver(tmp_path, monkeypatch, "sg_cart", CART_CLIENT, text)

        result = run_driver(module.CartTest)

        assert result.wasSuccessful(), result.failures + result.errors
