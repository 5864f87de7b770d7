"""
Parser for preference-declaration text (prefs.js, greprefs.js, defaults).

Grammar (line-oriented, comments allowed anywhere between tokens):

    statement := kind "(" STRING "," literal ")" ";"
    kind      := "pref" | "user_pref" | "lock_pref" | "sticky_pref"
    literal   := "true" | "false" | INTEGER | FLOAT | STRING | "null"

Two modes share one algorithm:

- Lenient (default): a malformed statement becomes a ParseWarning and the
  parser resumes at the next statement boundary.
- Strict: the first malformed statement raises PrefSyntaxError.

Output order always matches source order, because "last declaration wins"
within a file depends on it.
"""

from __future__ import annotations

import pathlib as _pathlib

import foxprefs.constants as constants
import foxprefs.errors as errors
import foxprefs.prefs.lexer as lexer
import foxprefs.prefs.types as types

_VALUE_TOKENS = {
    lexer.TokenType.BOOLEAN,
    lexer.TokenType.INTEGER,
    lexer.TokenType.FLOAT,
    lexer.TokenType.STRING,
    lexer.TokenType.NULL,
}


class _StatementError(Exception):
    """Internal: a statement failed at a specific token."""

    def __init__(self, message: str, token: lexer.Token) -> None:
        self.message = message
        self.token = token
        super().__init__(message)


class Parser:
    """
    Statement parser with per-statement error recovery.

    Args:
        text: Declaration text.
        origin: Tier the parsed entries are attributed to.
        strict: Raise on the first malformed statement instead of warning.
    """

    def __init__(
        self,
        text: str,
        *,
        origin: types.Source = types.Source.USER,
        strict: bool = False,
    ) -> None:
        self._text = text
        self._origin = origin
        self._strict = strict
        self._lexer = lexer.Lexer(text)
        self._lines = text.split("\n")

    def parse(self) -> types.ParseResult:
        """
        Parse the whole text.

        Returns:
            ParseResult with entries in source order and any warnings.

        Raises:
            PrefSyntaxError: In strict mode, for the first malformed statement.
        """
        entries: list[types.Entry] = []
        warnings: list[types.ParseWarning] = []

        while True:
            first: lexer.Token | None = None
            try:
                first = self._lexer.next_token()
                if first.type is lexer.TokenType.EOF:
                    break
                entries.append(self._statement(first))
            except lexer.LexError as e:
                warning = self._warning(e.line, e.column, e.message)
                if self._strict:
                    raise errors.PrefSyntaxError(
                        e.line, e.column, e.message, warning.snippet
                    ) from e
                warnings.append(warning)
                if e.resume_at is not None:
                    self._lexer.seek(e.resume_at)
                else:
                    self._resync(e.offset)
            except _StatementError as e:
                token = e.token
                warning = self._warning(token.line, token.column, e.message)
                if self._strict:
                    raise errors.PrefSyntaxError(
                        token.line, token.column, e.message, warning.snippet
                    ) from None
                warnings.append(warning)
                if self._starts_statement(token) and token is not first:
                    # The previous statement lost its terminator; this
                    # keyword begins the next one.
                    self._lexer.seek(token.offset)
                else:
                    self._resync(token.offset)

        return types.ParseResult(entries=tuple(entries), warnings=tuple(warnings))

    # -------------------------------------------------------------------------
    # Statement grammar
    # -------------------------------------------------------------------------

    def _statement(self, first: lexer.Token) -> types.Entry:
        if first.type is not lexer.TokenType.IDENTIFIER:
            raise _StatementError(
                "Expected preference declaration "
                f"(pref, user_pref, lock_pref, sticky_pref), got {first.describe()}",
                first,
            )
        kind = types.DeclarationKind.from_function_name(first.value)
        if kind is None:
            raise _StatementError(
                f"Unknown preference function '{first.value}'. "
                "Expected pref, user_pref, lock_pref, or sticky_pref",
                first,
            )

        self._expect(lexer.TokenType.LPAREN)
        key_token = self._expect(lexer.TokenType.STRING, what="preference name string")
        if not key_token.value:
            raise _StatementError("Preference name must not be empty", key_token)
        self._expect(lexer.TokenType.COMMA)
        value = self._value(self._lexer.next_token())
        self._expect(lexer.TokenType.RPAREN)
        self._expect(lexer.TokenType.SEMICOLON)

        return types.Entry(
            key=key_token.value,
            value=value,
            kind=kind,
            origin=self._origin,
            line=first.line,
        )

    def _value(self, token: lexer.Token) -> types.PrefValue:
        if token.type not in _VALUE_TOKENS:
            raise _StatementError(f"Expected value, got {token.describe()}", token)
        if token.type is lexer.TokenType.BOOLEAN:
            return types.PrefValue.boolean(token.value)
        if token.type is lexer.TokenType.INTEGER:
            if not types.INT64_MIN <= token.value <= types.INT64_MAX:
                raise _StatementError(
                    f"Integer {token.value} is outside the signed 64-bit range", token
                )
            return types.PrefValue.integer(token.value)
        if token.type is lexer.TokenType.FLOAT:
            return types.PrefValue.float_(token.value)
        if token.type is lexer.TokenType.STRING:
            return types.PrefValue.string(token.value)
        return types.PrefValue.null()

    def _expect(self, expected: lexer.TokenType, what: str | None = None) -> lexer.Token:
        token = self._lexer.next_token()
        if token.type is not expected:
            label = what or f"'{expected.value}'"
            raise _StatementError(f"Expected {label}, got {token.describe()}", token)
        return token

    # -------------------------------------------------------------------------
    # Recovery
    # -------------------------------------------------------------------------

    @staticmethod
    def _starts_statement(token: lexer.Token) -> bool:
        return (
            token.type is lexer.TokenType.IDENTIFIER
            and token.value in types.DECLARATION_FUNCTIONS
        )

    def _resync(self, error_offset: int) -> None:
        """Skip to just past the next `);` or to the end of the error's line."""
        text = self._text
        newline = text.find("\n", error_offset)
        line_end = len(text) if newline == -1 else newline + 1
        close = text.find(");", error_offset)
        target = line_end if close == -1 else min(close + 2, line_end)
        self._lexer.seek(max(target, error_offset + 1))

    def _warning(self, line: int, column: int, message: str) -> types.ParseWarning:
        return types.ParseWarning(
            line=line,
            column=column,
            message=message,
            snippet=self._snippet(line),
        )

    def _snippet(self, line: int) -> str:
        if not 1 <= line <= len(self._lines):
            return ""
        text = self._lines[line - 1].strip()
        if len(text) > constants.SNIPPET_LENGTH:
            return text[: constants.SNIPPET_LENGTH - 3] + "..."
        return text


def parse(
    text: str,
    *,
    origin: types.Source = types.Source.USER,
    strict: bool = False,
) -> types.ParseResult:
    """
    Parse preference-declaration text.

    Args:
        text: Declaration text.
        origin: Tier to attribute the entries to.
        strict: Raise on the first malformed statement.

    Returns:
        ParseResult with entries in source order and any warnings.

    Raises:
        PrefSyntaxError: In strict mode only.

    Example:
        >>> result = parse('user_pref("a.b", 1);')
        >>> result.entries[0].value.data
        1
    """
    return Parser(text, origin=origin, strict=strict).parse()


def parse_file(
    path: _pathlib.Path,
    *,
    origin: types.Source = types.Source.USER,
    strict: bool = False,
) -> types.ParseResult:
    """
    Read and parse a declaration file.

    Raises:
        SourceUnavailable: If the file cannot be read or is not UTF-8.
        PrefSyntaxError: In strict mode only.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise errors.SourceUnavailable(str(path), f"not valid UTF-8: {e}") from e
    except OSError as e:
        raise errors.SourceUnavailable(str(path), f"cannot read file: {e}") from e
    return parse(text, origin=origin, strict=strict)
