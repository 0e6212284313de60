"""
Lexical analyzer for the QUILL scripting language.

Turns raw source text into the token stream consumed by `quill.quill_parser`.
The parser only relies on the `TokenSource` protocol defined here, so any
object with a `next_token()` method can stand in for the lexer.

Classes:
    CharacterStream: Reads characters with line/column tracking.
    Token: Immutable token with type, literal text and source location.
    TokenSource: Protocol the parser pulls tokens through.
    Lexer: Converts a CharacterStream into tokens.
    TokenStream: Replays a prepared list of tokens, then EOF forever.

Features:
    - Skips whitespace and single-line comments (`#`)
    - Longest-match recognition of operators (`==` beats `=`)
    - Identifiers, keywords and decimal integer literals
    - Unknown characters become single ILLEGAL tokens instead of raising

Example:
    >>> lexer = Lexer(CharacterStream("let x = 5;"))
    >>> lexer.next_token()
    Token(LET, 'let')
"""

from collections.abc import Iterable
from typing import Any, Protocol

from quill.quill_constants import MAX_SYMBOL_LENGTH, TokenType, keywords, symbols


def is_digit(ch: str) -> bool:
    """True only for the ASCII digits 0-9; other Unicode digits are not numbers in QUILL."""
    return "0" <= ch <= "9" and len(ch) == 1


class CharacterStream:
    """
    Reads a source string one character at a time.

    Attributes:
        source (str): The input source string.
        position (int): Index of the next unread character.
        line (int): Line of the next unread character (1-indexed).
        column (int): Column of the next unread character (1-indexed).
    """

    def __init__(self, source: str, position: int = 0, line: int = 1, column: int = 1):
        """
        Initializes the character stream.

        Args:
            source (str): The input source code.
            position (int, optional): Starting index. Defaults to 0.
            line (int, optional): Starting line number. Defaults to 1.
            column (int, optional): Starting column number. Defaults to 1.
        """
        self.source = source
        self.position = position
        self.line = line
        self.column = column

    def next(self) -> str:
        """
        Consumes and returns the next character, updating line and column.

        Returns:
            str: The consumed character.

        Raises:
            EOFError: If the stream is already exhausted.
        """
        if self.position >= len(self.source):
            raise EOFError(
                f"read past end of source at position {self.position}, line {self.line}"
            )
        char = self.source[self.position]
        self.position += 1
        if char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return char

    def peek(self, offset: int = 0) -> str:
        """Returns the character `offset` places ahead without consuming it.

        Args:
            offset (int, optional): Distance from the current position. Defaults to 0.

        Returns:
            str: The character, or an empty string when out of bounds.
        """
        index = self.position + offset
        if index < 0 or index >= len(self.source):
            return ""
        return self.source[index]

    def end_of_file(self) -> bool:
        """True once every character has been consumed."""
        return self.position >= len(self.source)


class Token:
    """A single lexical token.

    Tokens are immutable once built: the parser reads `type` and `value`
    but never rebinds them.

    Attributes:
        type (TokenType): The token kind.
        value (str): The exact source text of the token.
        line (int): 1-based line where the token starts (0 if synthetic).
        col (int): 1-based column where the token starts (0 if synthetic).
    """

    __slots__ = ("type", "value", "line", "col")

    type: TokenType
    value: str
    line: int
    col: int

    def __init__(self, type_: TokenType, value: str, line: int = 0, col: int = 0):
        object.__setattr__(self, "type", type_)
        object.__setattr__(self, "value", value)
        object.__setattr__(self, "line", line)
        object.__setattr__(self, "col", col)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"Token is immutable; cannot set {name!r}")

    def __repr__(self) -> str:
        return f"Token({self.type.value}, {self.value!r})"

    def __eq__(self, other: Any) -> bool:
        return (
            isinstance(other, Token)
            and self.type == other.type
            and self.value == other.value
            and self.line == other.line
            and self.col == other.col
        )

    def __hash__(self) -> int:
        return hash((self.type, self.value, self.line, self.col))


class TokenSource(Protocol):
    """Anything the parser can pull tokens from.

    Implementations must eventually return a token of type EOF and keep
    returning EOF on every call after that.
    """

    def next_token(self) -> Token: ...  # pragma: no cover


class Lexer:
    """Lexical analyzer for QUILL.

    Attributes:
        stream (CharacterStream): The source stream to tokenize.
    """

    def __init__(self, stream: CharacterStream) -> None:
        """
        Args:
            stream (CharacterStream): Characters to tokenize.
        """
        self.stream = stream

    @classmethod
    def from_source(cls, source: str) -> "Lexer":
        """Convenience constructor wrapping `source` in a `CharacterStream`."""
        return cls(CharacterStream(source))

    def skip_whitespace(self) -> None:
        """Skips whitespace and `#` comments."""
        while not self.stream.end_of_file():
            ch = self.stream.peek()
            if ch in " \t\r\n":
                self.stream.next()
            elif ch == "#":
                while not self.stream.end_of_file() and self.stream.peek() != "\n":
                    self.stream.next()
            else:
                break

    def match_operator(self) -> Token | None:
        """Matches the longest operator or delimiter at the current position.

        Returns:
            Token | None: The symbol token, or None if no symbol starts here.
        """
        line, col = self.stream.line, self.stream.column
        best: str | None = None
        candidate = ""

        for i in range(MAX_SYMBOL_LENGTH):
            ch = self.stream.peek(i)
            if ch == "":
                break
            candidate += ch
            if candidate in symbols:
                best = candidate

        if best is None:
            return None
        for _ in best:
            self.stream.next()
        return Token(symbols[best], best, line, col)

    def next_token(self) -> Token:
        """Consumes and returns the next token.

        Returns:
            Token: The next token. Once the source is used up this is an EOF
            token, on this call and every later one. Characters that start no
            token come back as one-character ILLEGAL tokens.
        """
        self.skip_whitespace()

        line, col = self.stream.line, self.stream.column
        if self.stream.end_of_file():
            return Token(TokenType.EOF, "", line, col)

        ch = self.stream.peek()

        if ch.isalpha() or ch == "_":
            ident = ""
            while not self.stream.end_of_file() and (
                self.stream.peek().isalnum() or self.stream.peek() == "_"
            ):
                ident += self.stream.next()
            return Token(keywords.get(ident, TokenType.IDENT), ident, line, col)

        if is_digit(ch):
            digits = ""
            while not self.stream.end_of_file() and is_digit(self.stream.peek()):
                digits += self.stream.next()
            return Token(TokenType.INT, digits, line, col)

        token = self.match_operator()
        if token:
            return token

        return Token(TokenType.ILLEGAL, self.stream.next(), line, col)


class TokenStream:
    """Feeds a prepared sequence of tokens to the parser.

    Once the sequence runs out, an EOF token is returned on every call, so a
    list without a trailing EOF is still a valid token source.
    """

    def __init__(self, tokens: Iterable[Token]) -> None:
        self._tokens = iter(tokens)
        self._eof: Token | None = None

    def next_token(self) -> Token:
        """Returns the next prepared token, or the EOF sentinel once they run out."""
        if self._eof is not None:
            return self._eof
        tok = next(self._tokens, None)
        if tok is None:
            tok = Token(TokenType.EOF, "")
        if tok.type == TokenType.EOF:
            self._eof = tok
        return tok


def tokenize(source: str) -> list[Token]:
    """Lexes `source` completely, returning every token including the final EOF."""
    lexer = Lexer.from_source(source)
    tokens = []
    while True:
        tok = lexer.next_token()
        tokens.append(tok)
        if tok.type == TokenType.EOF:
            return tokens


__all__ = ["CharacterStream", "Lexer", "Token", "TokenSource", "TokenStream", "tokenize"]
