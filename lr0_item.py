"""
LR(0) items and states.
"""

from dataclasses import dataclass, field
from typing import FrozenSet

from grammar import Production, format_production
from symbol_table import END_MARKER, EPSILON


@dataclass(frozen=True)
class LR0Item:
    """
    A production with a dot marking how much of it has been recognised.

    Items are values: two items are equal when antecedent, production and
    dot position match. An epsilon production is always complete, so its
    dot is normalised to 1.
    """
    antecedent: str
    production: Production
    dot: int = 0
    epsilon: str = field(default=EPSILON, compare=False, repr=False)
    end_marker: str = field(default=END_MARKER, compare=False, repr=False)

    def __post_init__(self):
        # Frozen dataclass: normalise through object.__setattr__.
        object.__setattr__(self, 'production', tuple(self.production))
        if self.production == (self.epsilon,):
            object.__setattr__(self, 'dot', 1)
        elif self.dot > len(self.production):
            object.__setattr__(self, 'dot', len(self.production))

    def next_symbol(self) -> str:
        """Symbol right after the dot, or EPSILON when nothing follows it."""
        if self.dot >= len(self.production):
            return self.epsilon
        return self.production[self.dot]

    def advance_dot(self) -> 'LR0Item':
        """Item with the dot one position to the right (saturates at the end)."""
        if self.dot >= len(self.production):
            return self
        return LR0Item(self.antecedent, self.production, self.dot + 1,
                       self.epsilon, self.end_marker)

    def is_complete(self) -> bool:
        return self.dot >= len(self.production) or self.production == (self.epsilon,)

    def __str__(self) -> str:
        symbols = list(self.production)
        symbols.insert(self.dot, "·")
        return f"[ {self.antecedent} -> {' '.join(symbols)} ]"


@dataclass(frozen=True)
class LR0State:
    """A closed set of LR(0) items. The id takes no part in equality."""
    items: FrozenSet[LR0Item]
    state_id: int = field(default=-1, compare=False)

    def __str__(self) -> str:
        lines = [f"State {self.state_id}:"]
        for item in sorted(self.items, key=str):
            lines.append(f"  {item}")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self.items)


def production_label(antecedent: str, production: Production) -> str:
    return f"{antecedent} -> {format_production(production)}"
