"""A label selector parser that accepts only exact matches, e.g. "k1=v1, k2 = v2"."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from enum import IntEnum

from .validation import FieldError, is_qualified_name, is_valid_label_value

_QUALIFIED_NAME_ERROR_MSG = "must match format [ DNS 1123 subdomain / ] DNS 1123 label"
_WHITESPACE = " \t\r\n"


class Token(IntEnum):
    """Lexer token kinds."""

    ERROR = 0
    END_OF_STRING = 1
    COMMA = 2
    EQUALS = 3
    IDENTIFIER = 4


_SYMBOLS = {",": Token.COMMA, "=": Token.EQUALS}


class LabelSelectorError(ValueError):
    """Raised when a selector cannot be parsed."""


class Lexer:
    """Splits a selector string into tokens."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def __iter__(self) -> Iterator[tuple[Token, str]]:
        while True:
            item = self.lex()
            yield item
            if item[0] is Token.END_OF_STRING:
                return

    def _scan_identifier(self) -> tuple[Token, str]:
        text = self._text
        start = self._pos
        while (
            self._pos < len(text)
            and text[self._pos] not in _SYMBOLS
            and text[self._pos] not in _WHITESPACE
        ):
            self._pos += 1
        literal = text[start : self._pos]
        return _SYMBOLS.get(literal, Token.IDENTIFIER), literal

    def _scan_special_symbol(self) -> tuple[Token, str]:
        text = self._text
        buffer = ""
        last: tuple[Token, str] | None = None
        while self._pos < len(text) and text[self._pos] in _SYMBOLS:
            candidate = buffer + text[self._pos]
            token = _SYMBOLS.get(candidate)
            if token is None and last is not None:
                break
            buffer = candidate
            self._pos += 1
            if token is not None:
                last = (token, buffer)
        if last is None:
            return Token.ERROR, f"error expected: keyword found '{buffer}'"
        return last

    def lex(self) -> tuple[Token, str]:
        """Return the next token and its literal."""
        text = self._text
        while self._pos < len(text) and text[self._pos] in _WHITESPACE:
            self._pos += 1
        if self._pos >= len(text):
            return Token.END_OF_STRING, ""
        if text[self._pos] in _SYMBOLS:
            return self._scan_special_symbol()
        return self._scan_identifier()


class _Parser:
    def __init__(self, selector: str) -> None:
        self._items = list(Lexer(selector))
        self._position = 0

    def _lookahead(self) -> tuple[Token, str]:
        if self._position >= len(self._items):
            return Token.END_OF_STRING, ""
        return self._items[self._position]

    def _consume(self) -> tuple[Token, str]:
        self._position += 1
        if self._position > len(self._items):
            return Token.END_OF_STRING, ""
        return self._items[self._position - 1]

    def parse(self) -> dict[str, str]:
        labels: dict[str, str] = {}
        while True:
            token, literal = self._lookahead()
            if token is Token.END_OF_STRING:
                return labels
            if token is not Token.IDENTIFIER:
                raise LabelSelectorError(
                    f"found '{literal}', expected: identifier or 'end of string'"
                )
            try:
                key, value = self._parse_label()
            except (LabelSelectorError, FieldError) as err:
                raise LabelSelectorError(f"unable to parse requirement: {err}") from err
            labels[key] = value
            token, literal = self._consume()
            if token is Token.END_OF_STRING:
                return labels
            if token is not Token.COMMA:
                raise LabelSelectorError(
                    f"found '{literal}', expected: ',' or 'end of string'"
                )
            next_token, next_literal = self._lookahead()
            if next_token is not Token.IDENTIFIER:
                raise LabelSelectorError(
                    f"found '{next_literal}', expected: identifier after ','"
                )

    def _parse_label(self) -> tuple[str, str]:
        key = self._parse_key()
        self._parse_operator()
        return key, self._parse_exact_value()

    def _parse_key(self) -> str:
        token, literal = self._consume()
        if token is not Token.IDENTIFIER:
            raise LabelSelectorError(f"found '{literal}', expected: identifier")
        if is_qualified_name(literal):
            raise FieldError("label key", literal, _QUALIFIED_NAME_ERROR_MSG)
        return literal

    def _parse_operator(self) -> str:
        token, literal = self._consume()
        if token is not Token.EQUALS:
            raise LabelSelectorError(f"found '{literal}', expected: '='")
        return "="

    def _parse_exact_value(self) -> str:
        token, _ = self._lookahead()
        if token in (Token.END_OF_STRING, Token.COMMA):
            return ""
        token, literal = self._consume()
        if token is not Token.IDENTIFIER:
            raise LabelSelectorError(f"found '{literal}', expected: identifier")
        if is_valid_label_value(literal):
            raise FieldError("label value", literal, _QUALIFIED_NAME_ERROR_MSG)
        return literal


def parse(selector: str) -> dict[str, str]:
    """Parse a selector of the form "k1=v1,k2=v2" into a mapping.

    Raises LabelSelectorError when the selector is malformed.
    """
    return _Parser(selector).parse()


def conflicts(labels1: Mapping[str, str], labels2: Mapping[str, str]) -> bool:
    """Return True if some key is in both mappings with different values."""
    return any(key in labels2 and labels2[key] != value for key, value in labels1.items())


def merge(labels1: Mapping[str, str], labels2: Mapping[str, str]) -> dict[str, str]:
    """Combine two mappings; values from the second win. Conflicts are not checked."""
    return {**labels1, **labels2}


def equals(labels1: Mapping[str, str], labels2: Mapping[str, str]) -> bool:
    """Return True if the two mappings hold the same keys and values."""
    return dict(labels1) == dict(labels2)