"""
Blockbook Kernel — Expression Evaluation

The engine treats evaluation as an opaque function:

  evaluate(expression, env) → value | EvaluationError

It must never raise. The default evaluator runs a single Python expression
with the environment's bindings as globals. Hosts that want a different
language pass their own callable to the blocks that evaluate.
"""

from __future__ import annotations

import builtins
from collections.abc import Mapping
from functools import lru_cache
from types import CodeType
from typing import Any, Callable

from blockbook.kernel.types import EvaluationError

Evaluator = Callable[[str, Mapping[str, Any]], Any]


@lru_cache(maxsize=1024)
def compile_expression(expression: str) -> CodeType:
    """
    Compile one expression. Cached by the exact source string.
    Raises SyntaxError for unparsable code (errors are not cached).
    """
    return compile(expression, "<block>", "eval")


# exit() and quit() would stop the host process
EXPRESSION_BUILTINS: dict[str, Any] = {
    name: value for name, value in vars(builtins).items() if name not in ("exit", "quit")
}


def evaluate(expression: str, env: Mapping[str, Any]) -> Any:
    """
    Evaluate `expression` against `env`.
    Empty expressions evaluate to None. Failures come back as EvaluationError.
    """
    if not expression or not expression.strip():
        return None

    try:
        code = compile_expression(expression.strip())
    except Exception as e:
        # SyntaxError, or MemoryError/RecursionError for overly nested source
        return EvaluationError(e, expression)

    scope = dict(env)
    scope["__builtins__"] = EXPRESSION_BUILTINS
    try:
        return eval(code, scope)  # noqa: S307
    except (Exception, SystemExit, GeneratorExit) as e:
        return EvaluationError(e, expression)


def is_error(value: Any) -> bool:
    return isinstance(value, EvaluationError)
