"""Income bracket table used to classify household monthly income."""
from __future__ import annotations

import json
from bisect import bisect_right
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Sequence, Tuple, Union

Number = Union[int, str, Decimal]


@dataclass(frozen=True)
class IncomeBracket:
    name: str
    lower_bound: Decimal


class IncomeBracketTable:
    """Ordered, non-overlapping brackets keyed by inclusive lower bound.

    Amounts below the first lower bound fall into the first bracket; the last
    bracket is unbounded above.
    """

    def __init__(self, brackets: Iterable[Tuple[str, Number]]):
        parsed: List[IncomeBracket] = []
        for name, bound in brackets:
            try:
                lower = Decimal(str(bound))
            except (InvalidOperation, ValueError) as exc:
                raise ValueError(f"Invalid lower bound {bound!r} for income bracket {name!r}") from exc
            if not lower.is_finite():
                raise ValueError(f"Income bracket {name!r} has a non-finite lower bound {bound!r}")
            if lower < 0:
                raise ValueError(f"Income bracket {name!r} has a negative lower bound")
            parsed.append(IncomeBracket(name=str(name), lower_bound=lower))
        if not parsed:
            raise ValueError("Income bracket table must contain at least one bracket")
        names = [b.name for b in parsed]
        if len(set(names)) != len(names):
            raise ValueError("Income bracket names must be unique")
        for previous, current in zip(parsed, parsed[1:]):
            if current.lower_bound <= previous.lower_bound:
                raise ValueError(
                    f"Income brackets must be strictly ascending: {current.name!r} does not start above {previous.name!r}"
                )
        self._brackets: Tuple[IncomeBracket, ...] = tuple(parsed)
        self._bounds = [b.lower_bound for b in self._brackets]

    @property
    def brackets(self) -> Sequence[IncomeBracket]:
        return self._brackets

    @property
    def lowest(self) -> str:
        return self._brackets[0].name

    def classify(self, amount: Decimal) -> str:
        index = bisect_right(self._bounds, amount) - 1
        return self._brackets[max(index, 0)].name

    @classmethod
    def from_json(cls, raw: str) -> "IncomeBracketTable":
        """Parse ``[["poor", 0], ["low_income", 9520], ...]``."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Income bracket table is not valid JSON: {exc}") from exc
        if not isinstance(data, list) or not all(isinstance(row, (list, tuple)) and len(row) == 2 for row in data):
            raise ValueError("Income bracket table must be a JSON list of [name, lower_bound] pairs")
        return cls((row[0], row[1]) for row in data)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, IncomeBracketTable) and self._brackets == other._brackets

    def __hash__(self) -> int:
        return hash(self._brackets)

    def __repr__(self) -> str:
        return f"IncomeBracketTable({[(b.name, str(b.lower_bound)) for b in self._brackets]})"


# Philippine socioeconomic classes used by the original deployment.
DEFAULT_INCOME_BRACKETS = IncomeBracketTable([
    ("poor", 0),
    ("low_income", 9520),
    ("lower_middle_class", 21194),
    ("middle_class", 43828),
    ("upper_middle_income", 76669),
    ("high_income", 131484),
    ("rich", 219140),
])
