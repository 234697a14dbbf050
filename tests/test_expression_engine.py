import math
import time
import unittest

from src.core.expression_engine import (
    EXAMPLE_EXPRESSIONS,
    EvalFailure,
    ParseError,
    evaluate,
    parse,
)


class TestParse(unittest.TestCase):
    def test_accepts_basic_formula(self):
        expr = parse("sin(x)*cos(y)")
        self.assertEqual(expr.text, "sin(x)*cos(y)")
        self.assertEqual(expr.free_variables, ("x", "y"))

    def test_strips_surrounding_whitespace(self):
        expr = parse("   x + y  \n")
        self.assertEqual(expr.text, "x + y")

    def test_all_examples_parse(self):
        for text in EXAMPLE_EXPRESSIONS:
            with self.subTest(text=text):
                parse(text)

    def test_rejects_empty(self):
        for text in ("", "   ", None):
            with self.subTest(text=text):
                with self.assertRaises(ParseError) as ctx:
                    parse(text)
                self.assertIn("empty", ctx.exception.reason)

    def test_rejects_malformed_operator_sequence(self):
        with self.assertRaises(ParseError):
            parse("x +* y")

    def test_rejects_unknown_identifier(self):
        with self.assertRaises(ParseError) as ctx:
            parse("foo(x)")
        self.assertIn("foo", ctx.exception.reason)

        with self.assertRaises(ParseError) as ctx:
            parse("x + z")
        self.assertIn("z", ctx.exception.reason)

    def test_rejects_unknown_token(self):
        with self.assertRaises(ParseError) as ctx:
            parse("x $ y")
        self.assertIn("'$'", ctx.exception.reason)

    def test_rejects_unbalanced_parentheses(self):
        for text in ("sin(x", "x)", "(x + y))"):
            with self.subTest(text=text):
                with self.assertRaises(ParseError) as ctx:
                    parse(text)
                self.assertIn("parentheses", ctx.exception.reason)

    def test_rejects_wrong_argument_count(self):
        with self.assertRaises(ParseError):
            parse("sin(x, y)")
        with self.assertRaises(ParseError):
            parse("cos()")

    def test_rejects_bare_function_name(self):
        with self.assertRaises(ParseError):
            parse("sin + x")

    def test_rejects_python_escape_hatches(self):
        for text in ("__import__(x)", "x.real", "x[0]", "lambda: x"):
            with self.subTest(text=text):
                with self.assertRaises(ParseError):
                    parse(text)

    def test_parse_error_is_value_error(self):
        self.assertTrue(issubclass(ParseError, ValueError))

    def test_deep_nesting_is_a_parse_error(self):
        for text in ("-" * 5000 + "x", "(" * 3000 + "x" + ")" * 3000, "sin(" * 2000 + "x" + ")" * 2000):
            with self.subTest(length=len(text)):
                with self.assertRaises(ParseError):
                    parse(text)

    def test_constant_expression_has_no_variables(self):
        expr = parse("5")
        self.assertEqual(expr.free_variables, ())


class TestEvaluate(unittest.TestCase):
    def test_power_with_caret(self):
        expr = parse("x^2+y^2")
        self.assertEqual(evaluate(expr, 3.0, 4.0), 25.0)

    def test_double_star_is_power(self):
        self.assertEqual(evaluate(parse("x**3"), 2.0, 0.0), 8.0)

    def test_constants(self):
        self.assertAlmostEqual(evaluate(parse("pi"), 0.0, 0.0), math.pi)
        self.assertAlmostEqual(evaluate(parse("e"), 0.0, 0.0), math.e)

    def test_log_is_base_ten_and_ln_is_natural(self):
        self.assertAlmostEqual(evaluate(parse("log(x)"), 1000.0, 0.0), 3.0)
        self.assertAlmostEqual(evaluate(parse("ln(x)"), math.e, 0.0), 1.0)

    def test_modulo_is_truncated_remainder(self):
        expr = parse("x % 3")
        self.assertAlmostEqual(evaluate(expr, 7.0, 0.0), 1.0)
        self.assertAlmostEqual(evaluate(expr, -7.0, 0.0), math.fmod(-7.0, 3.0))
        self.assertAlmostEqual(evaluate(expr, -7.0, 0.0), -1.0)
        self.assertAlmostEqual(evaluate(parse("x % y"), 5.5, -2.0), 1.5)

    def test_unary_minus_and_functions(self):
        value = evaluate(parse("exp(-(x^2 + y^2))"), 0.0, 0.0)
        self.assertAlmostEqual(value, 1.0)
        self.assertAlmostEqual(evaluate(parse("abs(x) + sqrt(y)"), -2.0, 9.0), 5.0)

    def test_division_by_zero_is_failure(self):
        result = evaluate(parse("1/x"), 0.0, 0.0)
        self.assertIsInstance(result, EvalFailure)

    def test_domain_errors_are_failures(self):
        self.assertIsInstance(evaluate(parse("sqrt(x)"), -1.0, 0.0), EvalFailure)
        self.assertIsInstance(evaluate(parse("ln(x)"), 0.0, 0.0), EvalFailure)
        self.assertIsInstance(evaluate(parse("asin(x)"), 2.0, 0.0), EvalFailure)

    def test_overflow_is_failure(self):
        self.assertIsInstance(evaluate(parse("exp(x)"), 1000.0, 0.0), EvalFailure)

    def test_undefined_constants_fail_per_sample(self):
        for text in ("1/0", "x/0", "ln(0)", "log(0) + x", "0^-1", "x % 0", "sqrt(-1) * y"):
            with self.subTest(text=text):
                expr = parse(text)
                self.assertIsInstance(evaluate(expr, 1.0, 1.0), EvalFailure)
                self.assertIsNone(expr(0.5, -0.5))

    def test_huge_power_parses_quickly_and_overflows(self):
        started = time.perf_counter()
        expr = parse("9^9^9")
        result = evaluate(expr, 0.0, 0.0)
        self.assertLess(time.perf_counter() - started, 5.0)
        self.assertIsInstance(result, EvalFailure)

        self.assertIsInstance(evaluate(parse("x^9^9^9"), 2.0, 0.0), EvalFailure)

    def test_constant_subexpressions_are_not_folded(self):
        self.assertAlmostEqual(evaluate(parse("2^10 + x"), 1.0, 0.0), 1025.0)
        self.assertAlmostEqual(evaluate(parse("-2^2"), 0.0, 0.0), -4.0)
        self.assertAlmostEqual(evaluate(parse("(-2)^2"), 0.0, 0.0), 4.0)
        self.assertAlmostEqual(evaluate(parse("1 - (x - y)"), 3.0, 1.0), -1.0)
        self.assertAlmostEqual(evaluate(parse("x / 2 / 2"), 8.0, 0.0), 2.0)

    def test_call_protocol_returns_none_on_failure(self):
        expr = parse("1/x")
        self.assertIsNone(expr(0.0, 1.0))
        self.assertAlmostEqual(expr(2.0, 1.0), 0.5)

    def test_method_matches_function(self):
        expr = parse("sin(x*y)")
        self.assertEqual(expr.evaluate(0.5, 0.25), evaluate(expr, 0.5, 0.25))


if __name__ == "__main__":
    unittest.main()
