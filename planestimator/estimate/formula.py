"""Cost-item formula language.

A small grammar of numeric literals, names, the four arithmetic
operators with the usual precedence, unary sign and parentheses::

    expr    := term (("+" | "-") term)*
    term    := unary (("*" | "/") unary)*
    unary   := ("+" | "-") unary | primary
    primary := NUMBER | NAME | "(" expr ")"

Names start with a letter or underscore and may contain letters, digits and
underscores (Japanese identifiers are allowed).  Formulas are parsed once into
a small tree and evaluated against a flat ``name -> number`` mapping; nothing
is ever handed to ``eval``.
"""

from __future__ import annotations

import functools
import math
from dataclasses import dataclass
from typing import Callable, Mapping

from planestimator.errors import (
    DivisionByZeroError,
    FormulaEvaluationError,
    FormulaSyntaxError,
    MissingValueError,
    UnknownNameError,
)

Context = Mapping[str, "float | None"]

_OPERATORS = "+-*/"

# Maximum parenthesis depth of a formula
MAX_NESTING = 100


@dataclass(frozen=True)
class Token:
    kind: str
    """'number', 'name', 'op', '(', ')' or 'end'."""

    text: str
    pos: int


def _is_name_start(ch: str) -> bool:
    return ch == "_" or ch.isalpha()


def _is_name_char(ch: str) -> bool:
    return ch == "_" or ch.isalnum()


def tokenize(text: str) -> list[Token]:
    """Split *text* into tokens, ending with an 'end' token."""
    tokens: list[Token] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch.isspace():
            i += 1
            continue
        if ch.isdecimal() or (ch == "." and i + 1 < n and text[i + 1].isdecimal()):
            start = i
            while i < n and text[i].isdecimal():
                i += 1
            if i < n and text[i] == ".":
                i += 1
                if i >= n or not text[i].isdecimal():
                    raise FormulaSyntaxError(f"Malformed number at {start}", start)
                while i < n and text[i].isdecimal():
                    i += 1
            tokens.append(Token("number", text[start:i], start))
            continue
        if _is_name_start(ch):
            start = i
            while i < n and _is_name_char(text[i]):
                i += 1
            tokens.append(Token("name", text[start:i], start))
            continue
        if ch in _OPERATORS:
            tokens.append(Token("op", ch, i))
            i += 1
            continue
        if ch in "()":
            tokens.append(Token(ch, ch, i))
            i += 1
            continue
        raise FormulaSyntaxError(f"Unexpected character {ch!r} at {i}", i)
    tokens.append(Token("end", "", n))
    return tokens


# -- expression tree ----------------------------------------------------------


class Node:
    def evaluate(self, context: Context) -> float:
        raise NotImplementedError

    def names(self) -> set[str]:
        return set()


@dataclass(frozen=True)
class Number(Node):
    value: float

    def evaluate(self, context: Context) -> float:
        return self.value


@dataclass(frozen=True)
class Name(Node):
    name: str

    def evaluate(self, context: Context) -> float:
        if self.name not in context:
            raise UnknownNameError(self.name)
        value = context[self.name]
        if value is None:
            raise MissingValueError(self.name)
        return float(value)

    def names(self) -> set[str]:
        return {self.name}


@dataclass(frozen=True)
class Unary(Node):
    op: str
    operand: Node

    def evaluate(self, context: Context) -> float:
        value = self.operand.evaluate(context)
        return -value if self.op == "-" else value

    def names(self) -> set[str]:
        return self.operand.names()


@dataclass(frozen=True)
class Chain(Node):
    """Left-associative run of same-precedence operators, e.g. ``a + b - c``.

    Operands are stored flat and evaluated in a loop, so the tree depth does
    not grow with the number of terms.
    """

    first: Node
    rest: tuple[tuple[str, Node], ...]

    def evaluate(self, context: Context) -> float:
        value = self.first.evaluate(context)
        for op, operand in self.rest:
            b = operand.evaluate(context)
            if op == "+":
                value += b
            elif op == "-":
                value -= b
            elif op == "*":
                value *= b
            else:
                if b == 0:
                    raise DivisionByZeroError("Division by zero")
                value /= b
        return value

    def names(self) -> set[str]:
        found = self.first.names()
        for _op, operand in self.rest:
            found |= operand.names()
        return found


class _Parser:
    """Recursive-descent parser over a token list.

    Operator runs are collected into flat :class:`Chain` nodes and repeated
    signs collapse into one, so only parentheses add depth; that depth is
    capped at :data:`MAX_NESTING`.
    """

    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._pos = 0
        self._depth = 0

    def _peek(self) -> Token:
        return self._tokens[self._pos]

    def _next(self) -> Token:
        tok = self._tokens[self._pos]
        self._pos += 1
        return tok

    def parse(self) -> Node:
        node = self._expr()
        tok = self._peek()
        if tok.kind != "end":
            raise FormulaSyntaxError(f"Unexpected {tok.text!r} at {tok.pos}", tok.pos)
        return node

    def _chain(self, operators: str, operand: Callable[[], Node]) -> Node:
        first = operand()
        rest: list[tuple[str, Node]] = []
        while self._peek().kind == "op" and self._peek().text in operators:
            op = self._next().text
            rest.append((op, operand()))
        if not rest:
            return first
        return Chain(first, tuple(rest))

    def _expr(self) -> Node:
        return self._chain("+-", self._term)

    def _term(self) -> Node:
        return self._chain("*/", self._unary)

    def _unary(self) -> Node:
        negative = False
        while self._peek().kind == "op" and self._peek().text in "+-":
            if self._next().text == "-":
                negative = not negative
        node = self._primary()
        return Unary("-", node) if negative else node

    def _primary(self) -> Node:
        tok = self._next()
        if tok.kind == "number":
            return Number(float(tok.text))
        if tok.kind == "name":
            return Name(tok.text)
        if tok.kind == "(":
            self._depth += 1
            if self._depth > MAX_NESTING:
                raise FormulaSyntaxError(f"Formula too deeply nested at {tok.pos}", tok.pos)
            node = self._expr()
            closing = self._next()
            if closing.kind != ")":
                raise FormulaSyntaxError(f"Expected ')' at {closing.pos}", closing.pos)
            self._depth -= 1
            return node
        if tok.kind == "end":
            raise FormulaSyntaxError("Unexpected end of formula", tok.pos)
        raise FormulaSyntaxError(f"Unexpected {tok.text!r} at {tok.pos}", tok.pos)


class Formula:
    """A parsed formula."""

    __slots__ = ("source", "_root")

    def __init__(self, source: str, root: Node) -> None:
        self.source = source
        self._root = root

    def names(self) -> set[str]:
        """Every name the formula references."""
        return self._root.names()

    def evaluate(self, context: Context) -> float:
        """Evaluate against *context*.

        Raises
        ------
        FormulaEvaluationError
            Unknown name, attribute without a value, division by zero, or a
            non-finite result.
        """
        value = self._root.evaluate(context)
        if not math.isfinite(value):
            raise FormulaEvaluationError(f"Formula '{self.source}' produced {value}")
        return value

    def __repr__(self) -> str:
        return f"Formula({self.source!r})"


@functools.lru_cache(maxsize=512)
def parse_formula(source: str) -> Formula:
    """Parse *source* into a :class:`Formula` (cached by text)."""
    if not source or not source.strip():
        raise FormulaSyntaxError("Empty formula", 0)
    return Formula(source, _Parser(tokenize(source)).parse())


def evaluate_formula(source: str, context: Context) -> float:
    """Parse and evaluate *source* in one step."""
    return parse_formula(source).evaluate(context)
