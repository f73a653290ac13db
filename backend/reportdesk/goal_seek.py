# Overview: Numeric goal seek; Newton-Raphson root finding over one-variable formulas.

"""
Goal seek: find the input x for which f(x) equals a target.

solve_for_target() works on any callable. compile_formula() turns a small
arithmetic expression ("X * 2 + 5") into such a callable without eval():
the expression is parsed with ast and only numeric literals, names,
+ - * / % ** and parentheses are accepted. Names other than the chosen
variable evaluate to 0.

Nothing here raises on numerical trouble. A non-finite value, a division by
zero or a near-flat derivative all end in "no solution" (None).
"""

from __future__ import annotations

import ast
import math
import operator
from dataclasses import dataclass
from typing import Callable, Mapping, Optional


MAX_ITERATIONS = 50
TOLERANCE = 1e-4
DERIVATIVE_STEP = 1e-4
MIN_DERIVATIVE = 1e-4
RELAXED_TOLERANCE = 0.1
RESULT_PLACES = 5
MAX_FORMULA_LENGTH = 500


class FormulaError(ValueError):
    """Formula text is not a supported arithmetic expression."""


@dataclass(frozen=True)
class GoalSeekResult:
    x: float
    fx: float
    iterations: int

    def to_dict(self) -> dict:
        return {"x": self.x, "fx": self.fx, "iterations": self.iterations}


_ALLOWED_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}


def _check_tree(node: ast.AST) -> None:
    """Reject anything but literals, names and whitelisted operators."""
    if isinstance(node, ast.Expression):
        _check_tree(node.body)
    elif isinstance(node, ast.Constant):
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise FormulaError(f"Unsupported constant in formula: {node.value!r}")
    elif isinstance(node, ast.Name):
        return
    elif isinstance(node, ast.BinOp):
        if type(node.op) not in _ALLOWED_OPERATORS:
            raise FormulaError(f"Unsupported operator in formula: {type(node.op).__name__}")
        _check_tree(node.left)
        _check_tree(node.right)
    elif isinstance(node, ast.UnaryOp):
        if type(node.op) not in _ALLOWED_OPERATORS:
            raise FormulaError(f"Unsupported unary operator: {type(node.op).__name__}")
        _check_tree(node.operand)
    else:
        raise FormulaError(f"Unsupported expression node: {type(node).__name__}")


def _evaluate(node: ast.AST, variables: Mapping[str, float]) -> float:
    if isinstance(node, ast.Expression):
        return _evaluate(node.body, variables)
    if isinstance(node, ast.Constant):
        return float(node.value)
    if isinstance(node, ast.Name):
        return float(variables.get(node.id, 0.0))
    if isinstance(node, ast.BinOp):
        op_func = _ALLOWED_OPERATORS[type(node.op)]
        return float(op_func(_evaluate(node.left, variables), _evaluate(node.right, variables)))
    op_func = _ALLOWED_OPERATORS[type(node.op)]
    return float(op_func(_evaluate(node.operand, variables)))


def compile_formula(formula: str, variable: str = "X") -> Callable[[float], float]:
    """
    Compile `formula` into f(x) where `variable` is bound to x.

    Raises FormulaError for blank, oversized or unsupported formulas. The
    returned callable may raise ArithmeticError, ValueError or TypeError
    (e.g. division by zero, complex results); solve_for_target handles those.
    """
    if not isinstance(formula, str) or not formula.strip():
        raise FormulaError("Formula is required")
    if len(formula) > MAX_FORMULA_LENGTH:
        raise FormulaError("Formula is too long")
    if not isinstance(variable, str) or not variable.isidentifier():
        raise FormulaError("Variable must be a simple name")

    try:
        tree = ast.parse(formula.strip(), mode="eval")
    except SyntaxError as exc:
        raise FormulaError(f"Invalid formula syntax: {formula!r}") from exc

    _check_tree(tree)

    def f(x: float) -> float:
        return _evaluate(tree, {variable: x})

    return f


def _safe_call(f: Callable[[float], float], x: float) -> Optional[float]:
    try:
        value = f(x)
    except (ArithmeticError, ValueError, TypeError):
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def _result(x: float, fx: float, iterations: int) -> GoalSeekResult:
    return GoalSeekResult(
        x=round(x, RESULT_PLACES),
        fx=round(fx, RESULT_PLACES),
        iterations=iterations,
    )


def solve_for_target(
    f: Callable[[float], float],
    target: float,
    *,
    start: float = 1.0,
    max_iterations: int = MAX_ITERATIONS,
    tolerance: float = TOLERANCE,
) -> Optional[GoalSeekResult]:
    """
    Newton-Raphson search for x with f(x) == target.

    Starts at `start`, estimates f'(x) with a forward difference, and stops
    when |f(x) - target| < tolerance. Gives up early when the derivative is
    nearly flat; after the loop, an answer within RELAXED_TOLERANCE is still
    accepted. Returns None when no solution was found.
    """
    x = float(start)
    iterations = 0

    while iterations < max_iterations:
        fx = _safe_call(f, x)
        if fx is None:
            return None

        if abs(fx - target) < tolerance:
            return _result(x, fx, iterations)

        fxh = _safe_call(f, x + DERIVATIVE_STEP)
        if fxh is None:
            return None

        derivative = (fxh - fx) / DERIVATIVE_STEP
        if abs(derivative) < MIN_DERIVATIVE:
            break

        x = x - (fx - target) / derivative
        if not math.isfinite(x):
            return None
        iterations += 1

    fx = _safe_call(f, x)
    if fx is not None and abs(fx - target) < RELAXED_TOLERANCE:
        return _result(x, fx, iterations)
    return None


def solve_simple(base: float, operation: str, goal: float) -> Optional[float]:
    """
    Closed-form goal seek for `base <op> answer == goal`.

    Returns None for an unknown operation or when no finite answer exists.
    """
    try:
        if operation == "+":
            answer = goal - base
        elif operation == "-":
            answer = base - goal
        elif operation == "*":
            answer = goal / base
        elif operation == "/":
            answer = base / goal
        else:
            return None
    except ZeroDivisionError:
        return None

    if not math.isfinite(answer):
        return None
    return round(answer, RESULT_PLACES)
