"""
Defines the abstract syntax tree (AST) produced by the QUILL parser.

The node set is closed. Every node is a frozen dataclass that keeps the token
it was built from, and falls into one of two families:

    Statement:  LetStatement, ReturnStatement, ExpressionStatement, BlockStatement
    Expression: Identifier, IntegerLiteral, Boolean, PrefixExpression,
                InfixExpression, IfExpression, FunctionLiteral, CallExpression

`Program` is the root and owns its statements in source order.

Each node supports:
    token_literal(): the literal text of the node's token (e.g. "let").
    str(node): canonical reconstruction. Prefix and infix expressions are
        always fully parenthesized, so the text is a witness of how the
        parser resolved precedence. It is meant for tests and debugging,
        not as a serialization format.

A child that failed to parse is stored as None and rendered as "".

Evaluators should dispatch on the `StatementNode` / `ExpressionNode` unions,
e.g. with a `match` statement, rather than adding methods to the nodes.

Example:
    >>> str(InfixExpression(tok, Identifier(a, "a"), "+", Identifier(b, "b")))
    '(a + b)'
"""

from dataclasses import dataclass
from typing import Union

from quill.quill_lexer import Token


def _text(node: "Node | None") -> str:
    return "" if node is None else str(node)


@dataclass(frozen=True)
class Node:
    """Base of every AST node."""

    token: Token

    def token_literal(self) -> str:
        return self.token.value

    def __str__(self) -> str:  # pragma: no cover
        raise NotImplementedError(f"{type(self).__name__} does not render")


@dataclass(frozen=True)
class Statement(Node):
    """Marker base for statement nodes."""


@dataclass(frozen=True)
class Expression(Node):
    """Marker base for expression nodes."""


# Expressions


@dataclass(frozen=True)
class Identifier(Expression):
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class IntegerLiteral(Expression):
    value: int = 0

    def __str__(self) -> str:
        return self.token.value


@dataclass(frozen=True)
class Boolean(Expression):
    value: bool

    def __str__(self) -> str:
        return self.token.value


@dataclass(frozen=True)
class PrefixExpression(Expression):
    operator: str
    right: Expression | None

    def __str__(self) -> str:
        return f"({self.operator}{_text(self.right)})"


@dataclass(frozen=True)
class InfixExpression(Expression):
    left: Expression | None
    operator: str
    right: Expression | None

    def __str__(self) -> str:
        return f"({_text(self.left)} {self.operator} {_text(self.right)})"


@dataclass(frozen=True)
class BlockStatement(Statement):
    statements: tuple[Statement, ...] = ()

    def __str__(self) -> str:
        return "".join(str(s) for s in self.statements)


@dataclass(frozen=True)
class IfExpression(Expression):
    condition: Expression | None
    consequence: BlockStatement
    alternative: BlockStatement | None = None

    def __str__(self) -> str:
        out = f"if{_text(self.condition)} {self.consequence}"
        if self.alternative is not None:
            out += f"else {self.alternative}"
        return out


@dataclass(frozen=True)
class FunctionLiteral(Expression):
    parameters: tuple[Identifier, ...]
    body: BlockStatement

    def __str__(self) -> str:
        params = ", ".join(str(p) for p in self.parameters)
        return f"{self.token_literal()}({params}) {self.body}"


@dataclass(frozen=True)
class CallExpression(Expression):
    function: Expression | None
    arguments: tuple[Expression | None, ...] = ()

    def __str__(self) -> str:
        args = ", ".join(_text(a) for a in self.arguments)
        return f"{_text(self.function)}({args})"


# Statements


@dataclass(frozen=True)
class LetStatement(Statement):
    name: Identifier
    value: Expression | None

    def __str__(self) -> str:
        return f"{self.token_literal()} {self.name} = {_text(self.value)};"


@dataclass(frozen=True)
class ReturnStatement(Statement):
    value: Expression | None

    def __str__(self) -> str:
        return f"{self.token_literal()} {_text(self.value)};"


@dataclass(frozen=True)
class ExpressionStatement(Statement):
    expression: Expression | None

    def __str__(self) -> str:
        return _text(self.expression)


@dataclass(frozen=True)
class Program:
    """Root of the tree: top-level statements in source order."""

    statements: tuple[Statement, ...] = ()

    def token_literal(self) -> str:
        return self.statements[0].token_literal() if self.statements else ""

    def __str__(self) -> str:
        return "".join(str(s) for s in self.statements)


StatementNode = Union[LetStatement, ReturnStatement, ExpressionStatement, BlockStatement]

ExpressionNode = Union[
    Identifier,
    IntegerLiteral,
    Boolean,
    PrefixExpression,
    InfixExpression,
    IfExpression,
    FunctionLiteral,
    CallExpression,
]


__all__ = [
    "BlockStatement",
    "Boolean",
    "CallExpression",
    "Expression",
    "ExpressionNode",
    "ExpressionStatement",
    "FunctionLiteral",
    "Identifier",
    "IfExpression",
    "InfixExpression",
    "IntegerLiteral",
    "LetStatement",
    "Node",
    "PrefixExpression",
    "Program",
    "ReturnStatement",
    "Statement",
    "StatementNode",
]
