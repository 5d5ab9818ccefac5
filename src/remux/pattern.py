"""Anchored regular-expression path patterns."""

import re


class PatternError(ValueError):
    """Raised when a route pattern is not a valid regular expression."""


class Pattern:
    """A path template compiled once into a whole-path matcher.

    Parenthesised groups are captures. They are returned positionally, left
    to right, as raw strings; a group that did not participate in the match
    is returned as ``""``.

    >>> Pattern(r"/items/([0-9]+)").match("/items/42")
    ('42',)
    >>> Pattern(r"/items/([0-9]+)").match("/items/42/edit") is None
    True
    """

    __slots__ = ("_regex", "source")

    source: str
    _regex: re.Pattern[str]

    def __init__(self, source: str) -> None:
        try:
            regex = re.compile(source)
        except re.error as e:
            msg = f"invalid route pattern {source!r}: {e}"
            raise PatternError(msg) from e
        self.source = source
        self._regex = regex

    @property
    def groups(self) -> int:
        return self._regex.groups

    def match(self, path: str) -> tuple[str, ...] | None:
        # fullmatch: "$" alone would accept a trailing newline and "^a|b$" would
        # only anchor one side of the alternation
        m = self._regex.fullmatch(path)
        if m is None:
            return None
        return m.groups(default="")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Pattern):
            return NotImplemented
        return self.source == other.source

    def __hash__(self) -> int:
        return hash(self.source)

    def __repr__(self) -> str:
        return f"Pattern({self.source!r})"
