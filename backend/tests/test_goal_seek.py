"""Formula compilation and target solving."""

import pytest

from reportdesk.goal_seek import FormulaError, compile_formula, solve_for_target, solve_simple


class TestCompileFormula:

    def test_linear(self):
        f = compile_formula("X * 2 + 5")
        assert f(3) == 11.0

    def test_custom_variable(self):
        f = compile_formula("price * 1.5", variable="price")
        assert f(10) == 15.0

    def test_other_names_evaluate_to_zero(self):
        f = compile_formula("X + Y")
        assert f(4) == 4.0

    @pytest.mark.parametrize("formula", [
        "__import__('os')",
        "X.real",
        "X if X else 1",
        "[X]",
        "X < 2",
        "'abc'",
        "X // 2",
    ])
    def test_unsupported_syntax(self, formula):
        with pytest.raises(FormulaError):
            compile_formula(formula)

    @pytest.mark.parametrize("formula", ["", "   ", None, "X +", "x" * 501])
    def test_invalid_input(self, formula):
        with pytest.raises(FormulaError):
            compile_formula(formula)

    def test_formula_error_is_value_error(self):
        assert issubclass(FormulaError, ValueError)


class TestSolveForTarget:

    def test_linear_example(self):
        result = solve_for_target(compile_formula("X * 2 + 5"), 15)
        assert result is not None
        assert result.x == 5.0
        assert result.fx == 15.0

    def test_already_at_target(self):
        result = solve_for_target(compile_formula("X"), 1)
        assert result.iterations == 0
        assert result.x == 1.0

    def test_quadratic(self):
        result = solve_for_target(compile_formula("X ** 2"), 49)
        assert result is not None
        assert abs(result.x - 7.0) < 1e-3

    def test_constant_function_has_no_solution(self):
        assert solve_for_target(compile_formula("42"), 10) is None

    def test_division_by_zero_is_no_solution(self):
        assert solve_for_target(compile_formula("1 / (X - 1)"), 3) is None

    def test_result_dict(self):
        data = solve_for_target(compile_formula("X - 2"), 0).to_dict()
        assert set(data) == {"x", "fx", "iterations"}


class TestSolveSimple:

    @pytest.mark.parametrize("base,operation,goal,expected", [
        (10, "+", 25, 15),
        (10, "-", 4, 6),
        (4, "*", 10, 2.5),
        (9, "/", 3, 3),
    ])
    def test_operations(self, base, operation, goal, expected):
        assert solve_simple(base, operation, goal) == expected

    def test_zero_divisor(self):
        assert solve_simple(0, "*", 10) is None
        assert solve_simple(5, "/", 0) is None

    def test_unknown_operation(self):
        assert solve_simple(1, "^", 2) is None
