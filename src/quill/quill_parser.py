"""
QUILL Language Parser

Turns the token stream produced by `quill.quill_lexer` into a `Program` tree
(see `quill.quill_ast`) using top-down operator precedence (Pratt) parsing.

Supported Constructs
--------------------
- Statements:
    * `let <ident> = <expr>;`
    * `return <expr>;`
    * any expression used as a statement
    * `{ ... }` blocks (bodies of `if`/`else` and functions)

- Expressions:
    * identifiers, integer literals, `true` / `false`
    * prefix `!x`, `-x`
    * infix `== != < > + - * /`, left-associative
    * grouping `( ... )`
    * `if (cond) { ... } else { ... }`
    * `fn(a, b) { ... }`
    * calls `f(x, y)`

The trailing `;` of a statement is optional and consumed when present.

Parser Behavior
---------------
- Two-token lookahead (`cur_token` / `peek_token`), no backtracking.
- Errors never abort the parse. Each problem is appended to `errors` as a
  readable sentence and the piece being parsed comes back as None; the
  statement loop then moves on to the next token. A malformed statement may
  cause follow-on diagnostics once the token stream is out of step.
- `raise_for_errors()` turns a non-empty diagnostics list into a `ParseError`
  for callers that prefer exceptions.

Entry Points
------------
- `Parser(source).parse_program()`: parse a whole token stream.
- `Parser.parse_expression(precedence)`: the Pratt loop.
- `parse_source(text)`: lex and parse a string in one call.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from quill.quill_ast import (
    BlockStatement,
    Boolean,
    CallExpression,
    Expression,
    ExpressionStatement,
    FunctionLiteral,
    Identifier,
    IfExpression,
    InfixExpression,
    IntegerLiteral,
    LetStatement,
    PrefixExpression,
    Program,
    ReturnStatement,
    Statement,
)
from quill.quill_constants import Precedence, TokenType, precedence_of
from quill.quill_lexer import Lexer, Token, TokenSource

logger = logging.getLogger(__name__)

PrefixParseFn = Callable[[], "Expression | None"]
InfixParseFn = Callable[["Expression | None"], "Expression | None"]

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class ParseError(SyntaxError):
    """Raised by `Parser.raise_for_errors` when a parse produced diagnostics.

    Attributes:
        errors (list[str]): Every diagnostic, in the order it was recorded.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        count = len(self.errors)
        summary = f"parser has {count} error{'s' if count != 1 else ''}"
        super().__init__("\n".join([summary, *self.errors]))


class Parser:
    """
    QUILL Parser Class

    One instance parses exactly one token stream. The two lookahead slots are
    primed on construction, so `cur_token` is the first token of the input.

    Attributes
    ----------
    source : TokenSource
        Where tokens are pulled from, one at a time.
    cur_token : Token
        The token under examination.
    peek_token : Token
        The token after `cur_token`.
    errors : list[str]
        Diagnostics recorded so far, oldest first.
    prefix_parse_fns : dict[TokenType, PrefixParseFn]
        Routines for tokens that can start an expression.
    infix_parse_fns : dict[TokenType, InfixParseFn]
        Routines for tokens that can continue an expression.
    trace : bool
        When set, every parse routine logs an indented BEGIN/END pair at DEBUG.
    """

    def __init__(self, source: TokenSource, trace: bool = False) -> None:
        self.source = source
        self.errors: list[str] = []
        self.trace = trace
        self._trace_depth = 0

        self.prefix_parse_fns: dict[TokenType, PrefixParseFn] = {}
        self.infix_parse_fns: dict[TokenType, InfixParseFn] = {}

        self.register_prefix(TokenType.IDENT, self.parse_identifier)
        self.register_prefix(TokenType.INT, self.parse_integer_literal)
        self.register_prefix(TokenType.BANG, self.parse_prefix_expression)
        self.register_prefix(TokenType.MINUS, self.parse_prefix_expression)
        self.register_prefix(TokenType.TRUE, self.parse_boolean)
        self.register_prefix(TokenType.FALSE, self.parse_boolean)
        self.register_prefix(TokenType.LPAREN, self.parse_grouped_expression)
        self.register_prefix(TokenType.IF, self.parse_if_expression)
        self.register_prefix(TokenType.FUNCTION, self.parse_function_literal)

        for kind in (
            TokenType.EQ,
            TokenType.NOT_EQ,
            TokenType.LT,
            TokenType.GT,
            TokenType.PLUS,
            TokenType.MINUS,
            TokenType.ASTERISK,
            TokenType.SLASH,
        ):
            self.register_infix(kind, self.parse_infix_expression)
        self.register_infix(TokenType.LPAREN, self.parse_call_expression)

        # Placeholders until the window is primed below
        self.cur_token = Token(TokenType.EOF, "")
        self.peek_token = Token(TokenType.EOF, "")
        self.next_token()
        self.next_token()

    @classmethod
    def from_source(cls, text: str, trace: bool = False) -> Parser:
        """
        Builds a parser over a fresh `Lexer` for `text`.

        Args:
            text (str): QUILL source code.
            trace (bool, optional): Log BEGIN/END around parse routines. Defaults to False.

        Returns:
            Parser: A parser with its two-token window already primed.
        """
        return cls(Lexer.from_source(text), trace=trace)

    def register_prefix(self, kind: TokenType, fn: PrefixParseFn) -> None:
        """Associates `fn` with `kind` for tokens in prefix position, replacing any earlier entry."""
        self.prefix_parse_fns[kind] = fn

    def register_infix(self, kind: TokenType, fn: InfixParseFn) -> None:
        self.infix_parse_fns[kind] = fn

    # Lookahead window

    def next_token(self) -> None:
        """Shifts the lookahead window one token forward."""
        self.cur_token = self.peek_token
        self.peek_token = self.source.next_token()

    def cur_token_is(self, kind: TokenType) -> bool:
        return self.cur_token.type == kind

    def peek_token_is(self, kind: TokenType) -> bool:
        return self.peek_token.type == kind

    def expect_peek(self, kind: TokenType) -> bool:
        """
        Advances past the next token only if it has the expected kind.

        Args:
            kind (TokenType): The kind the next token must have.

        Returns:
            bool: True if the parser advanced. On False a diagnostic has been
            recorded and the window is unchanged.
        """
        if self.peek_token_is(kind):
            self.next_token()
            return True
        self.peek_error(kind)
        return False

    def cur_precedence(self) -> Precedence:
        return precedence_of(self.cur_token.type)

    def peek_precedence(self) -> Precedence:
        return precedence_of(self.peek_token.type)

    # Diagnostics

    def add_error(self, message: str) -> None:
        logger.debug("parse error: %s", message)
        self.errors.append(message)

    def peek_error(self, kind: TokenType) -> None:
        self.add_error(
            f"expected token {kind.value} -- got {self.peek_token.type.value}"
        )

    def no_prefix_parse_fn_error(self, kind: TokenType) -> None:
        self.add_error(f"no prefix parse function for {kind.value} found")

    def raise_for_errors(self) -> None:
        """Raise `ParseError` if any diagnostic was recorded."""
        if self.errors:
            raise ParseError(self.errors)

    @contextmanager
    def traced(self, name: str) -> Iterator[None]:
        """Log BEGIN/END around a parse routine when tracing is enabled."""
        if not self.trace:
            yield
            return
        pad = "\t" * self._trace_depth
        logger.debug("%sBEGIN %s (%s)", pad, name, self.cur_token.value)
        self._trace_depth += 1
        try:
            yield
        finally:
            self._trace_depth -= 1
            logger.debug("%sEND %s", pad, name)

    # Statements

    def parse_program(self) -> Program:
        """
        Parses statements until EOF.

        Returns:
            Program: The parsed statements in source order. A statement that
            fails to parse is left out; its diagnostics stay in `errors`.
        """
        statements: list[Statement] = []
        while not self.cur_token_is(TokenType.EOF):
            stmt = self.parse_statement()
            if stmt is not None:
                statements.append(stmt)
            self.next_token()
        return Program(tuple(statements))

    def parse_statement(self) -> Statement | None:
        """Dispatches on the current token: `let`, `return`, or an expression statement."""
        if self.cur_token.type == TokenType.LET:
            return self.parse_let_statement()
        if self.cur_token.type == TokenType.RETURN:
            return self.parse_return_statement()
        return self.parse_expression_statement()

    def parse_let_statement(self) -> LetStatement | None:
        """
        Parses `let <name> = <expression>` with an optional trailing `;`.

        Returns:
            LetStatement | None: The statement, or None if the name or `=` is missing.
        """
        with self.traced("parse_let_statement"):
            token = self.cur_token
            if not self.expect_peek(TokenType.IDENT):
                return None
            name = Identifier(self.cur_token, self.cur_token.value)
            if not self.expect_peek(TokenType.ASSIGN):
                return None

            self.next_token()
            value = self.parse_expression(Precedence.LOWEST)

            if self.peek_token_is(TokenType.SEMICOLON):
                self.next_token()
            return LetStatement(token, name, value)

    def parse_return_statement(self) -> ReturnStatement:
        """Parses `return <expression>` with an optional trailing `;`."""
        with self.traced("parse_return_statement"):
            token = self.cur_token
            self.next_token()
            value = self.parse_expression(Precedence.LOWEST)

            if self.peek_token_is(TokenType.SEMICOLON):
                self.next_token()
            return ReturnStatement(token, value)

    def parse_expression_statement(self) -> ExpressionStatement:
        with self.traced("parse_expression_statement"):
            token = self.cur_token
            expression = self.parse_expression(Precedence.LOWEST)

            if self.peek_token_is(TokenType.SEMICOLON):
                self.next_token()
            return ExpressionStatement(token, expression)

    def parse_block_statement(self) -> BlockStatement:
        """Parse from the current `{` up to the matching `}` (or EOF)."""
        with self.traced("parse_block_statement"):
            token = self.cur_token
            statements: list[Statement] = []
            self.next_token()

            while not self.cur_token_is(TokenType.RBRACE) and not self.cur_token_is(
                TokenType.EOF
            ):
                stmt = self.parse_statement()
                if stmt is not None:
                    statements.append(stmt)
                self.next_token()
            return BlockStatement(token, tuple(statements))

    # Expressions

    def parse_expression(self, precedence: Precedence) -> Expression | None:
        """Pratt loop: parse a prefix, then fold in operators binding tighter than `precedence`.

        The strict `<` comparison makes operators of equal precedence group
        to the left.

        Args:
            precedence (Precedence): Binding power of the operator to the left.

        Returns:
            Expression | None: The expression, or None when no prefix routine
            handles the current token.
        """
        with self.traced("parse_expression"):
            prefix = self.prefix_parse_fns.get(self.cur_token.type)
            if prefix is None:
                self.no_prefix_parse_fn_error(self.cur_token.type)
                return None
            left = prefix()

            while (
                not self.peek_token_is(TokenType.SEMICOLON)
                and precedence < self.peek_precedence()
            ):
                infix = self.infix_parse_fns.get(self.peek_token.type)
                if infix is None:
                    return left
                self.next_token()
                left = infix(left)

            return left

    def parse_identifier(self) -> Expression:
        return Identifier(self.cur_token, self.cur_token.value)

    def parse_integer_literal(self) -> Expression:
        """
        Converts the current INT token to a signed 64-bit value.

        Only ASCII digit strings are accepted. Anything else, or a value out of
        range, records a diagnostic and yields a literal with value 0.
        """
        token = self.cur_token
        text = token.value
        value = int(text) if text.isascii() and text.isdigit() else None
        if value is None or not INT64_MIN <= value <= INT64_MAX:
            self.add_error(f"failed to parse {text!r} to integer")
            return IntegerLiteral(token)
        return IntegerLiteral(token, value)

    def parse_boolean(self) -> Expression:
        return Boolean(self.cur_token, self.cur_token_is(TokenType.TRUE))

    def parse_prefix_expression(self) -> Expression:
        """Parses `!` or `-` applied to an operand bound at PREFIX precedence."""
        with self.traced("parse_prefix_expression"):
            token = self.cur_token
            self.next_token()
            right = self.parse_expression(Precedence.PREFIX)
            return PrefixExpression(token, token.value, right)

    def parse_infix_expression(self, left: Expression | None) -> Expression:
        """
        Parses the right operand of a binary operator.

        Args:
            left (Expression | None): The already parsed left operand.

        Returns:
            Expression: An `InfixExpression` at the operator's own precedence.
        """
        with self.traced("parse_infix_expression"):
            token = self.cur_token
            precedence = self.cur_precedence()
            self.next_token()
            right = self.parse_expression(precedence)
            return InfixExpression(token, left, token.value, right)

    def parse_grouped_expression(self) -> Expression | None:
        self.next_token()
        expression = self.parse_expression(Precedence.LOWEST)
        if not self.expect_peek(TokenType.RPAREN):
            return None
        return expression

    def parse_if_expression(self) -> Expression | None:
        """Parses `if (cond) { ... }` with an optional `else { ... }`."""
        with self.traced("parse_if_expression"):
            token = self.cur_token
            if not self.expect_peek(TokenType.LPAREN):
                return None
            self.next_token()
            condition = self.parse_expression(Precedence.LOWEST)
            if not self.expect_peek(TokenType.RPAREN):
                return None
            if not self.expect_peek(TokenType.LBRACE):
                return None
            consequence = self.parse_block_statement()

            alternative = None
            if self.peek_token_is(TokenType.ELSE):
                self.next_token()
                if not self.expect_peek(TokenType.LBRACE):
                    return None
                alternative = self.parse_block_statement()

            return IfExpression(token, condition, consequence, alternative)

    def parse_function_literal(self) -> Expression | None:
        """
        Parses `fn(<params>) { ... }` starting at the `fn` token.

        Returns:
            Expression | None: The literal, or None if the parameter list or body
            opening is malformed.
        """
        with self.traced("parse_function_literal"):
            token = self.cur_token
            if not self.expect_peek(TokenType.LPAREN):
                return None
            parameters = self.parse_function_parameters()
            if parameters is None:
                return None
            if not self.expect_peek(TokenType.LBRACE):
                return None
            body = self.parse_block_statement()
            return FunctionLiteral(token, parameters, body)

    def parse_function_parameters(self) -> tuple[Identifier, ...] | None:
        """Parse `a, b, c)` after the opening `(`; an immediate `)` means no parameters."""
        identifiers: list[Identifier] = []
        if self.peek_token_is(TokenType.RPAREN):
            self.next_token()
            return ()

        if not self.expect_peek(TokenType.IDENT):
            return None
        identifiers.append(Identifier(self.cur_token, self.cur_token.value))

        while self.peek_token_is(TokenType.COMMA):
            self.next_token()
            if not self.expect_peek(TokenType.IDENT):
                return None
            identifiers.append(Identifier(self.cur_token, self.cur_token.value))

        if not self.expect_peek(TokenType.RPAREN):
            return None
        return tuple(identifiers)

    def parse_call_expression(self, function: Expression | None) -> Expression | None:
        """
        Parses the argument list of a call whose `(` is the current token.

        Args:
            function (Expression | None): The callee expression.

        Returns:
            Expression | None: The call, or None if the argument list is not closed.
        """
        with self.traced("parse_call_expression"):
            token = self.cur_token
            arguments = self.parse_call_arguments()
            if arguments is None:
                return None
            return CallExpression(token, function, arguments)

    def parse_call_arguments(self) -> tuple[Expression | None, ...] | None:
        args: list[Expression | None] = []
        if self.peek_token_is(TokenType.RPAREN):
            self.next_token()
            return ()

        self.next_token()
        args.append(self.parse_expression(Precedence.LOWEST))
        while self.peek_token_is(TokenType.COMMA):
            self.next_token()
            self.next_token()
            args.append(self.parse_expression(Precedence.LOWEST))

        if not self.expect_peek(TokenType.RPAREN):
            return None
        return tuple(args)


def parse_source(
    text: str, strict: bool = False, trace: bool = False
) -> tuple[Program, list[str]]:
    """Lex and parse `text`, returning the program and its diagnostics.

    With `strict=True` a non-empty diagnostics list raises `ParseError` instead.

    Args:
        text (str): QUILL source code.
        strict (bool, optional): Raise on diagnostics. Defaults to False.
        trace (bool, optional): Enable trace logging. Defaults to False.

    Returns:
        tuple[Program, list[str]]: The program and the diagnostics in order.

    Raises:
        ParseError: If `strict` is set and any diagnostic was recorded.
    """
    parser = Parser.from_source(text, trace=trace)
    program = parser.parse_program()
    if strict:
        parser.raise_for_errors()
    return program, parser.errors


__all__ = ["ParseError", "Parser", "parse_source"]
