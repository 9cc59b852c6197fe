"""
Blockbook Kernel -- Evaluator and Environment Tests

Covers:
  - Expressions see exactly the environment they are given
  - Failures come back as EvaluationError values, even ones that
    would stop the interpreter
  - Errors for the same failure compare equal
  - Compiled code is cached by source text
  - Environments are immutable and layer left to right
"""

import pytest

from blockbook.kernel.environment import EMPTY, Environment, as_environment
from blockbook.kernel.evaluator import compile_expression, evaluate, is_error
from blockbook.kernel.types import EvaluationError


class TestEvaluate:
    def test_arithmetic(self):
        assert evaluate("1 + 2 * 3", EMPTY) == 7

    def test_bindings(self):
        assert evaluate("price * qty", Environment({"price": 2.5, "qty": 4})) == 10.0

    def test_builtins_available(self):
        assert evaluate("sum(range(5))", EMPTY) == 10

    @pytest.mark.parametrize("expression", ["", "   ", "\n"])
    def test_blank(self, expression):
        assert evaluate(expression, EMPTY) is None

    def test_unknown_name(self):
        result = evaluate("missing + 1", EMPTY)
        assert is_error(result)
        assert isinstance(result.exception, NameError)

    def test_syntax_error(self):
        result = evaluate("def", EMPTY)
        assert is_error(result)
        assert result.message.startswith("SyntaxError")

    def test_statements_are_not_expressions(self):
        assert is_error(evaluate("x = 1", EMPTY))

    def test_env_is_not_modified(self):
        env = Environment({"items": [3, 1, 2]})
        evaluate("sorted(items)", env)
        assert list(env) == ["items"]

    def test_plain_dict_env(self):
        assert evaluate("a + b", {"a": 1, "b": 2}) == 3

    def test_exception_values_are_results(self):
        assert not is_error(evaluate("ValueError('x')", EMPTY))

    def test_error_str(self):
        error = EvaluationError(ZeroDivisionError("division by zero"), "1/0")
        assert str(error) == "ZeroDivisionError: division by zero"

    def test_exit_is_not_a_builtin(self):
        result = evaluate("exit()", EMPTY)
        assert is_error(result)
        assert isinstance(result.exception, NameError)
        assert is_error(evaluate("quit(1)", EMPTY))

    def test_system_exit_is_a_result(self):
        result = evaluate("(x for x in ()).throw(SystemExit(3))", EMPTY)
        assert is_error(result)
        assert isinstance(result.exception, SystemExit)

    def test_overly_nested_source_is_a_result(self):
        assert is_error(evaluate("-" * 200_000 + "1", EMPTY))


class TestEvaluationErrorEquality:
    def test_same_failure_is_equal(self):
        first = evaluate("missing + 1", EMPTY)
        second = evaluate("missing + 1", EMPTY)

        assert first is not second
        assert first == second
        assert hash(first) == hash(second)

    def test_different_failures_differ(self):
        assert evaluate("missing", EMPTY) != evaluate("other", EMPTY)
        assert evaluate("1 / 0", EMPTY) != evaluate("missing", EMPTY)

    def test_same_exception_other_expression(self):
        error = ZeroDivisionError("division by zero")
        assert EvaluationError(error, "1/0") != EvaluationError(error, "2/0")

    def test_not_equal_to_other_values(self):
        assert evaluate("missing", EMPTY) != "NameError: name 'missing' is not defined"


class TestCompileCache:
    def test_same_source_same_code(self):
        assert compile_expression("1 + 1") is compile_expression("1 + 1")

    def test_syntax_error_raises(self):
        with pytest.raises(SyntaxError):
            compile_expression("1 +")


class TestEnvironment:
    def test_extend_layers_in_order(self):
        env = Environment({"a": 1}).extend({"a": 2, "b": 2}, {"b": 3})
        assert env.to_dict() == {"a": 2, "b": 3}

    def test_extend_does_not_modify(self):
        base = Environment({"a": 1})
        base.extend({"a": 2})
        assert base["a"] == 1

    def test_or(self):
        assert (Environment({"a": 1}) | {"b": 2}).to_dict() == {"a": 1, "b": 2}

    def test_mapping_protocol(self):
        env = Environment({"a": 1})
        assert "a" in env
        assert len(env) == 1
        assert env.get("b") is None
        with pytest.raises(KeyError):
            env["b"]

    def test_as_environment(self):
        env = Environment({"a": 1})
        assert as_environment(env) is env
        assert as_environment(None) is EMPTY
        assert as_environment({"a": 1}).to_dict() == {"a": 1}
