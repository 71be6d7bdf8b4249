"""Split PGN movetext into a flat token stream.

The tokenizer knows nothing about chess or about nesting: ``(`` and ``)``
come out as single tokens and it is the builder's job to pair them.

  1. e4 e5 2. Nf3!? {main line} (2. Bc4 $1) *

becomes::

  MOVE_NUMBER "1."  MOVE "e4"  MOVE "e5"  MOVE_NUMBER "2."  MOVE "Nf3"
  NAG "!?"  COMMENT "main line"  VARIATION_START  MOVE_NUMBER "2."
  MOVE "Bc4"  NAG "$1"  VARIATION_END  RESULT "*"
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass


class TokenKind(enum.Enum):
    MOVE = "move"
    MOVE_NUMBER = "move_number"
    VARIATION_START = "variation_start"
    VARIATION_END = "variation_end"
    COMMENT = "comment"
    NAG = "nag"
    RESULT = "result"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str


_RESULTS = frozenset({"1-0", "0-1", "1/2-1/2", "*"})
_GLYPHS = frozenset({"!", "?", "!!", "??", "!?", "?!"})
# Longest first so "Nf3!!" strips "!!" rather than "!".
_GLYPH_SUFFIXES = ("!!", "??", "!?", "?!", "!", "?")
_WORD_STOP = frozenset("{();$")

_MOVE_NUMBER_RE = re.compile(r"\d+\.+")
# "1.e4" / "12...Nf6" written without the separating space.
_GLUED_NUMBER_RE = re.compile(r"(\d+\.+)(\S+)")


def tokenize(movetext: str) -> list[Token]:
    """Return the tokens of *movetext* in order."""
    tokens: list[Token] = []
    i = 0
    n = len(movetext)

    while i < n:
        ch = movetext[i]

        if ch.isspace():
            i += 1
            continue

        if ch == "{":
            end = movetext.find("}", i + 1)
            if end == -1:
                end = n
            tokens.append(Token(TokenKind.COMMENT, movetext[i + 1:end]))
            i = end + 1
            continue

        if ch == ";":
            end = movetext.find("\n", i)
            i = n if end == -1 else end
            continue

        if ch == "(":
            tokens.append(Token(TokenKind.VARIATION_START, "("))
            i += 1
            continue

        if ch == ")":
            tokens.append(Token(TokenKind.VARIATION_END, ")"))
            i += 1
            continue

        if ch == "$":
            start = i + 1
            j = start
            while j < n and movetext[j].isdigit():
                j += 1
            tokens.append(Token(TokenKind.NAG, "$" + movetext[start:j]))
            i = j
            continue

        start = i
        while i < n and not movetext[i].isspace() and movetext[i] not in _WORD_STOP:
            i += 1
        _classify_word(movetext[start:i], tokens)

    return tokens


def _classify_word(word: str, tokens: list[Token]) -> None:
    if not word:
        return

    if word in _RESULTS:
        tokens.append(Token(TokenKind.RESULT, word))
        return

    if word in _GLYPHS:
        tokens.append(Token(TokenKind.NAG, word))
        return

    if _MOVE_NUMBER_RE.fullmatch(word):
        tokens.append(Token(TokenKind.MOVE_NUMBER, word))
        return

    glued = _GLUED_NUMBER_RE.fullmatch(word)
    if glued:
        tokens.append(Token(TokenKind.MOVE_NUMBER, glued.group(1)))
        _classify_word(glued.group(2), tokens)
        return

    move, glyph = strip_glyph(word)
    if move:
        tokens.append(Token(TokenKind.MOVE, move))
        if glyph:
            tokens.append(Token(TokenKind.NAG, glyph))


def strip_glyph(word: str) -> tuple[str, str]:
    """Split a trailing annotation glyph off a move: ``"Nf3!?"`` → ``("Nf3", "!?")``."""
    for suffix in _GLYPH_SUFFIXES:
        if word.endswith(suffix):
            return word[: -len(suffix)], suffix
    return word, ""
