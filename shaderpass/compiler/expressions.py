"""
Evaluation of the conditions of ``#if`` and ``#elif`` directives.
"""

import math
import re


re_token = re.compile(
    r"\s*(?:(\d+\.\d*|\.\d+|\d+)[uUlLfF]*"
    r"|([A-Za-z_]\w*)|(&&|\|\||==|!=|<=|>=|[()!<>+\-*/%]))"
)
re_defined = re.compile(r"\bdefined\s*(?:\(\s*([A-Za-z_]\w*)\s*\)|\s+([A-Za-z_]\w*))")


def tokenize(expr):
    """Split a condition into number, identifier and operator tokens."""
    tokens = []
    pos = 0
    expr = expr.rstrip()
    while pos < len(expr):
        match = re_token.match(expr, pos)
        if not match:
            raise ValueError(f"unexpected character {expr[pos:].strip()[0]!r}")
        number, name, op = match.groups()
        if number is not None:
            tokens.append(_to_number(number))
        elif name is not None:
            tokens.append(name)
        else:
            tokens.append(op)
        pos = match.end()
    return tokens


def replace_defined(expr, is_defined):
    """Replace ``defined(X)`` and ``defined X`` with 1 or 0."""

    def repl(match):
        name = match.group(1) or match.group(2)
        return "1" if is_defined(name) else "0"

    return re_defined.sub(repl, expr)


def evaluate_condition(expr):
    """Evaluate an (already macro-expanded) condition to a bool.

    Identifiers that remain after expansion evaluate to zero, like in C.
    Raises ValueError for malformed expressions.
    """
    tokens = tokenize(expr)
    if not tokens:
        raise ValueError("empty expression")
    parser = _Parser(tokens)
    value = parser.parse_or()
    if parser.pos != len(tokens):
        raise ValueError(f"unexpected token {tokens[parser.pos]!r}")
    return value != 0


class _Parser:
    """Recursive descent parser with the usual C precedence."""

    binary_levels = [
        ("==", "!="),
        ("<", ">", "<=", ">="),
        ("+", "-"),
        ("*", "/", "%"),
    ]

    def __init__(self, tokens):
        self.tokens = tokens
        self.pos = 0

    def peek(self):
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def take(self):
        token = self.peek()
        if token is None:
            raise ValueError("unexpected end of expression")
        self.pos += 1
        return token

    def parse_or(self):
        left = self.parse_and()
        while self.peek() == "||":
            self.take()
            right = self.parse_and()
            left = 1 if (left or right) else 0
        return left

    def parse_and(self):
        left = self.parse_binary(0)
        while self.peek() == "&&":
            self.take()
            right = self.parse_binary(0)
            left = 1 if (left and right) else 0
        return left

    def parse_binary(self, level):
        if level == len(self.binary_levels):
            return self.parse_unary()
        ops = self.binary_levels[level]
        left = self.parse_binary(level + 1)
        while self.peek() in ops:
            op = self.take()
            right = self.parse_binary(level + 1)
            left = _apply(op, left, right)
        return left

    def parse_unary(self):
        token = self.peek()
        if token == "!":
            self.take()
            return 0 if self.parse_unary() else 1
        elif token == "-":
            self.take()
            return -self.parse_unary()
        elif token == "+":
            self.take()
            return self.parse_unary()
        return self.parse_primary()

    def parse_primary(self):
        token = self.take()
        if token == "(":
            value = self.parse_or()
            if self.peek() != ")":
                raise ValueError("missing closing parenthesis")
            self.take()
            return value
        elif isinstance(token, (int, float)):
            return token
        elif token[0].isalpha() or token[0] == "_":
            return 0  # Undefined identifier
        else:
            raise ValueError(f"unexpected token {token!r}")


def _apply(op, a, b):
    if op == "==":
        return int(a == b)
    elif op == "!=":
        return int(a != b)
    elif op == "<":
        return int(a < b)
    elif op == ">":
        return int(a > b)
    elif op == "<=":
        return int(a <= b)
    elif op == ">=":
        return int(a >= b)
    elif op == "+":
        return a + b
    elif op == "-":
        return a - b
    elif op == "*":
        return a * b
    elif op in ("/", "%"):
        if b == 0:
            raise ValueError("division by zero")
        if isinstance(a, int) and isinstance(b, int):
            # Truncate toward zero, like C
            quotient = abs(a) // abs(b) * (1 if (a < 0) == (b < 0) else -1)
            return quotient if op == "/" else a - b * quotient
        return a / b if op == "/" else math.fmod(a, b)
    raise ValueError(f"unknown operator {op!r}")  # pragma: no cover


def _to_number(text):
    if text.isdigit():
        return int(text)
    return float(text)
