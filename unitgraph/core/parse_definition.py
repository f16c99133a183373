"""Definition Parsing - tokenizes a multiplicative unit definition into terms.

Grammar:
    definition := term ('*' term)*
    term       := ref | ref '(' integer ')'
    ref        := name | qualifier ':' name | '[' ref ']'

Invariants:
    - Pure: no lookups, no recursion into other items
    - Exponent defaults to 1; negative exponents express division
    - No '+', '-' or '/' operators: unit algebra is purely multiplicative
"""

import re
from dataclasses import dataclass
from fractions import Fraction

from unitgraph.core.errors import InvalidDefinitionError

_TERM = re.compile(
    r"""^\s*
    (?P<open>\[)?\s*
    (?:(?P<qualifier>[A-Za-z_]\w*)\s*:\s*)?
    (?P<name>[A-Za-z_]\w*)\s*
    (?P<close>\])?\s*
    (?:\(\s*(?P<exponent>[+-]?\d+)\s*\))?
    \s*$""",
    re.VERBOSE,
)


@dataclass(frozen=True)
class DefinitionTerm:
    """One factor of a definition: reference raised to an exponent."""
    name: str
    exponent: Fraction = Fraction(1)
    qualifier: str | None = None
    bracketed: bool = False

    @property
    def reference(self) -> str:
        return f"{self.qualifier}:{self.name}" if self.qualifier else self.name


def parse_term(text: str, owner: str = "") -> DefinitionTerm:
    match = _TERM.match(text)
    if match is None:
        raise InvalidDefinitionError(owner or text, f"cannot parse term {text.strip()!r}")
    if bool(match.group("open")) != bool(match.group("close")):
        raise InvalidDefinitionError(owner or text, f"unbalanced brackets in {text.strip()!r}")
    raw_exp = match.group("exponent")
    exponent = Fraction(int(raw_exp)) if raw_exp is not None else Fraction(1)
    if exponent == 0:
        raise InvalidDefinitionError(owner or text, f"zero exponent in {text.strip()!r}")
    return DefinitionTerm(
        name=match.group("name"),
        exponent=exponent,
        qualifier=match.group("qualifier"),
        bracketed=bool(match.group("open")),
    )


def parse_definition(definition: str, owner: str = "") -> list[DefinitionTerm]:
    """Split a definition on '*' and parse every term, in order."""
    if not definition or not definition.strip():
        raise InvalidDefinitionError(owner or "<anonymous>", "empty definition")
    return [parse_term(part, owner) for part in definition.split("*")]

