"""
Token kinds, source-text lookup tables and operator precedence for QUILL.

Everything the lexer and the Pratt parser need to agree on lives here:

    TokenType:      closed set of token kinds; the enum value doubles as the
                    display name used in parser diagnostics.
    token_hashmap:  exact source text -> TokenType for keywords and symbols.
    keywords:       the word-shaped subset of token_hashmap.
    Precedence:     binding power of operators, lowest to highest.
    precedences:    TokenType -> Precedence for every infix-capable token.
"""

from enum import Enum, IntEnum


class TokenType(str, Enum):
    ILLEGAL = "ILLEGAL"
    EOF = "EOF"

    # Identifiers and literals
    IDENT = "IDENT"
    INT = "INT"

    # Operators
    ASSIGN = "ASSIGN"
    PLUS = "PLUS"
    MINUS = "MINUS"
    BANG = "BANG"
    ASTERISK = "ASTERISK"
    SLASH = "SLASH"
    LT = "LT"
    GT = "GT"
    EQ = "EQ"
    NOT_EQ = "NOT_EQ"

    # Delimiters
    COMMA = "COMMA"
    SEMICOLON = "SEMICOLON"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    LBRACE = "LBRACE"
    RBRACE = "RBRACE"

    # Keywords
    FUNCTION = "FUNCTION"
    LET = "LET"
    TRUE = "TRUE"
    FALSE = "FALSE"
    IF = "IF"
    ELSE = "ELSE"
    RETURN = "RETURN"

    def __str__(self) -> str:
        return self.value


keywords: dict[str, TokenType] = {
    "fn": TokenType.FUNCTION,
    "let": TokenType.LET,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "return": TokenType.RETURN,
}

symbols: dict[str, TokenType] = {
    "=": TokenType.ASSIGN,
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "!": TokenType.BANG,
    "*": TokenType.ASTERISK,
    "/": TokenType.SLASH,
    "<": TokenType.LT,
    ">": TokenType.GT,
    "==": TokenType.EQ,
    "!=": TokenType.NOT_EQ,
    ",": TokenType.COMMA,
    ";": TokenType.SEMICOLON,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
}

token_hashmap: dict[str, TokenType] = {**keywords, **symbols}

# Longest symbol the lexer ever has to look ahead for
MAX_SYMBOL_LENGTH = max(len(s) for s in symbols)


class Precedence(IntEnum):
    LOWEST = 1
    EQUALS = 2  # == !=
    LESSGREATER = 3  # < >
    SUM = 4  # + -
    PRODUCT = 5  # * /
    PREFIX = 6  # -x !x
    CALL = 7  # f(x)


precedences: dict[TokenType, Precedence] = {
    TokenType.EQ: Precedence.EQUALS,
    TokenType.NOT_EQ: Precedence.EQUALS,
    TokenType.LT: Precedence.LESSGREATER,
    TokenType.GT: Precedence.LESSGREATER,
    TokenType.PLUS: Precedence.SUM,
    TokenType.MINUS: Precedence.SUM,
    TokenType.ASTERISK: Precedence.PRODUCT,
    TokenType.SLASH: Precedence.PRODUCT,
    TokenType.LPAREN: Precedence.CALL,
}


def precedence_of(kind: TokenType) -> Precedence:
    """Binding power of `kind`; tokens that never appear infix are LOWEST."""
    return precedences.get(kind, Precedence.LOWEST)


__all__ = [
    "MAX_SYMBOL_LENGTH",
    "Precedence",
    "TokenType",
    "keywords",
    "precedence_of",
    "precedences",
    "symbols",
    "token_hashmap",
]
