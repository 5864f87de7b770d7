"""
Tokenizer for preference-declaration text.

Turns text such as

    user_pref("browser.startup.homepage", "https://example.com"); // note

into a stream of tokens with 1-based line/column positions. Whitespace and
comments (`// ...` and `/* ... */`) are skipped between tokens. String
literals are returned with escape sequences already decoded.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import enum as _enum
import math as _math
import typing as _typing

import foxprefs.errors as errors


class TokenType(_enum.Enum):
    """Kinds of token produced by the lexer."""

    IDENTIFIER = "identifier"
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    NULL = "null"
    LPAREN = "("
    RPAREN = ")"
    COMMA = ","
    SEMICOLON = ";"
    EOF = "end of input"


@_dataclasses.dataclass(frozen=True)
class Token:
    """
    A lexical token.

    Attributes:
        type: Token kind.
        value: Decoded payload (identifier name, string text, number, bool).
        line: 1-based line of the first character.
        column: 1-based column of the first character.
        offset: Character offset of the first character.
        end: Character offset just past the last character.
    """

    type: TokenType
    value: _typing.Any
    line: int
    column: int
    offset: int
    end: int

    def describe(self) -> str:
        """Short description for error messages."""
        if self.type is TokenType.IDENTIFIER:
            return f"identifier '{self.value}'"
        if self.type is TokenType.STRING:
            return "string"
        if self.type in (TokenType.INTEGER, TokenType.FLOAT):
            return f"number {self.value!r}"
        if self.type is TokenType.BOOLEAN:
            return "true" if self.value else "false"
        if self.type is TokenType.NULL:
            return "null"
        if self.type is TokenType.EOF:
            return "end of input"
        return f"'{self.type.value}'"


class LexError(errors.PrefSyntaxError):
    """Tokenizer failure, carrying the character offset of the problem."""

    def __init__(
        self,
        line: int,
        column: int,
        message: str,
        offset: int,
        resume_at: int | None = None,
    ) -> None:
        self.offset = offset
        self.resume_at = resume_at
        super().__init__(line, column, message)


_PUNCTUATION = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    ",": TokenType.COMMA,
    ";": TokenType.SEMICOLON,
}

_SIMPLE_ESCAPES = {
    '"': '"',
    "'": "'",
    "\\": "\\",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\x08",
    "f": "\x0c",
}

_DIGITS = frozenset("0123456789")
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


class Lexer:
    """
    Character-level tokenizer with position tracking.

    The lexer can be repositioned with `seek()`, which the parser uses
    to resynchronize after a malformed statement.
    """

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0
        self._line = 1
        self._column = 1

    @property
    def text(self) -> str:
        return self._text

    @property
    def offset(self) -> int:
        """Current character offset."""
        return self._pos

    def position(self) -> tuple[int, int]:
        """Current (line, column)."""
        return self._line, self._column

    def seek(self, offset: int) -> None:
        """Move to a character offset (forward or back), recomputing line/column."""
        offset = max(0, min(offset, len(self._text)))
        self._pos = offset
        self._line = self._text.count("\n", 0, offset) + 1
        self._column = offset - (self._text.rfind("\n", 0, offset) + 1) + 1

    def next_token(self) -> Token:
        """
        Return the next token.

        Raises:
            LexError: On an unexpected character, bad escape, unterminated
                string or comment, or malformed number.
        """
        self._skip_whitespace_and_comments()

        line, column, start = self._line, self._column, self._pos
        char = self._peek()

        if char == "":
            return Token(TokenType.EOF, None, line, column, start, start)

        if char in _PUNCTUATION:
            self._advance()
            return Token(_PUNCTUATION[char], char, line, column, start, self._pos)

        if char == '"':
            text = self._lex_string()
            return Token(TokenType.STRING, text, line, column, start, self._pos)

        if char in _DIGITS or char in ("+", "-"):
            token_type, number = self._lex_number()
            return Token(token_type, number, line, column, start, self._pos)

        if char.isalpha() or char == "_":
            name = self._lex_identifier()
            if name in ("true", "false"):
                return Token(TokenType.BOOLEAN, name == "true", line, column, start, self._pos)
            if name == "null":
                return Token(TokenType.NULL, None, line, column, start, self._pos)
            return Token(TokenType.IDENTIFIER, name, line, column, start, self._pos)

        raise self._error(f"Unexpected character {char!r}", line, column, start)

    # -------------------------------------------------------------------------
    # Character helpers
    # -------------------------------------------------------------------------

    def _peek(self, ahead: int = 0) -> str:
        index = self._pos + ahead
        if index < len(self._text):
            return self._text[index]
        return ""

    def _advance(self) -> str:
        char = self._text[self._pos]
        self._pos += 1
        if char == "\n":
            self._line += 1
            self._column = 1
        else:
            self._column += 1
        return char

    def _error(
        self,
        message: str,
        line: int | None = None,
        column: int | None = None,
        offset: int | None = None,
    ) -> LexError:
        return LexError(
            self._line if line is None else line,
            self._column if column is None else column,
            message,
            self._pos if offset is None else offset,
        )

    def _skip_whitespace_and_comments(self) -> None:
        while True:
            char = self._peek()
            if char == "":
                return
            if char.isspace() or char == "\ufeff":
                self._advance()
            elif char == "/" and self._peek(1) == "/":
                while self._peek() not in ("", "\n"):
                    self._advance()
            elif char == "/" and self._peek(1) == "*":
                line, column, start = self._line, self._column, self._pos
                self._advance()
                self._advance()
                while not (self._peek() == "*" and self._peek(1) == "/"):
                    if self._peek() == "":
                        error = self._error("Unterminated block comment", line, column, start)
                        error.resume_at = len(self._text)
                        raise error
                    self._advance()
                self._advance()
                self._advance()
            else:
                return

    # -------------------------------------------------------------------------
    # Token scanners
    # -------------------------------------------------------------------------

    def _lex_identifier(self) -> str:
        start = self._pos
        while self._peek().isalnum() or self._peek() == "_":
            self._advance()
        return self._text[start : self._pos]

    def _lex_number(self) -> tuple[TokenType, int | float]:
        line, column, start = self._line, self._column, self._pos
        is_float = False

        if self._peek() in ("+", "-"):
            self._advance()
        if self._peek() not in _DIGITS:
            raise self._error("Expected digits after sign", line, column, start)
        while self._peek() in _DIGITS:
            self._advance()

        if self._peek() == ".":
            is_float = True
            self._advance()
            while self._peek() in _DIGITS:
                self._advance()

        if self._peek() in ("e", "E"):
            is_float = True
            self._advance()
            if self._peek() in ("+", "-"):
                self._advance()
            if self._peek() not in _DIGITS:
                raise self._error("Missing exponent digits in scientific notation")
            while self._peek() in _DIGITS:
                self._advance()

        literal = self._text[start : self._pos]
        if is_float:
            number = float(literal)
            if not _math.isfinite(number):
                raise self._error(f"Number out of range: {literal}", line, column, start)
            return TokenType.FLOAT, number
        return TokenType.INTEGER, int(literal)

    def _lex_string(self) -> str:
        line, column, start = self._line, self._column, self._pos
        self._advance()  # opening quote
        parts: list[str] = []

        while True:
            char = self._peek()
            if char == "":
                raise self._error("Unterminated string literal", line, column, start)
            if char == '"':
                self._advance()
                return "".join(parts)
            if char == "\\":
                parts.append(self._lex_escape())
            else:
                parts.append(self._advance())

    def _lex_escape(self) -> str:
        line, column, start = self._line, self._column, self._pos
        self._advance()  # backslash
        char = self._peek()

        if char == "":
            raise self._error("Unexpected end of input in escape sequence", line, column, start)
        if char in _SIMPLE_ESCAPES:
            self._advance()
            return _SIMPLE_ESCAPES[char]
        if char == "0":
            self._advance()
            if self._peek() == "0":
                raise self._error(
                    "Octal escape sequences are not supported. Use \\x00 instead.",
                    line,
                    column,
                    start,
                )
            return "\x00"
        if char == "x":
            self._advance()
            return chr(self._read_hex(2, "hex", line, column, start))
        if char == "u":
            self._advance()
            code = self._read_hex(4, "unicode", line, column, start)
            if 0xD800 <= code <= 0xDBFF and self._peek() == "\\" and self._peek(1) == "u":
                low_start = self._pos
                saved = (self._line, self._column)
                self._advance()
                self._advance()
                low = self._read_hex(4, "unicode", *saved, low_start)
                if 0xDC00 <= low <= 0xDFFF:
                    return chr(0x10000 + ((code - 0xD800) << 10) + (low - 0xDC00))
                return "\ufffd" + ("\ufffd" if 0xD800 <= low <= 0xDFFF else chr(low))
            if 0xD800 <= code <= 0xDFFF:
                return "\ufffd"
            return chr(code)
        raise self._error(f"Invalid escape sequence: \\{char}", line, column, start)

    def _read_hex(self, count: int, label: str, line: int, column: int, start: int) -> int:
        digits = ""
        while len(digits) < count and self._peek() in _HEX_DIGITS:
            digits += self._advance()
        if len(digits) != count:
            escape = "\\x" if label == "hex" else "\\u"
            raise self._error(f"Incomplete {label} escape: {escape}{digits}", line, column, start)
        return int(digits, 16)


def tokenize(text: str) -> list[Token]:
    """
    Tokenize a whole text eagerly.

    Args:
        text: Preference-declaration text.

    Returns:
        All tokens, ending with an EOF token.

    Raises:
        LexError: On the first lexical error.
    """
    lexer = Lexer(text)
    tokens: list[Token] = []
    while True:
        token = lexer.next_token()
        tokens.append(token)
        if token.type is TokenType.EOF:
            return tokens
