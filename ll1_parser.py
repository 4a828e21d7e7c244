"""
LL(1) Table Construction

Builds the predictive parsing table of a grammar from its FIRST and FOLLOW
sets and reports every cell that would need more than one production.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Set, Tuple

from first_follow import FirstFollowComputer
from grammar import Grammar, Production, format_production
from symbol_table import END_MARKER, EPSILON

logger = logging.getLogger(__name__)

LL1Table = Dict[str, Dict[str, List[Production]]]


@dataclass
class LL1Conflict:
    """Represents a cell of the LL(1) table claimed by several productions."""
    non_terminal: str
    symbol: str
    productions: List[Production]

    def __str__(self) -> str:
        alternatives = " | ".join(format_production(p) for p in self.productions)
        return (f"LL(1) conflict on ({self.non_terminal}, '{self.symbol}'): "
                f"{self.non_terminal} -> {alternatives}")


class LL1TableBuilder(FirstFollowComputer):
    """Generates the LL(1) table of a grammar."""

    def __init__(self, grammar: Grammar):
        super().__init__(grammar)
        self.table: LL1Table = {}
        self.conflicts: List[LL1Conflict] = []

    def prediction_symbols(self, antecedent: str, production: Production) -> Set[str]:
        """
        Lookahead symbols that select ``antecedent -> production``.

        FIRST(production), with EPSILON replaced by FOLLOW(antecedent) when
        the production is nullable. FIRST/FOLLOW are computed on first use.
        """
        self.ensure_sets()
        symbols = self.first(production)
        if EPSILON in symbols:
            symbols.discard(EPSILON)
            symbols.update(self.follow_sets.get(antecedent, set()))
        return symbols

    def build_table(self) -> bool:
        """
        Fill the LL(1) table.

        Every production is written into each cell named by its prediction
        symbols. Writing into a cell that already holds a production records
        a conflict; the build carries on so that the full table and every
        conflict are available afterwards.

        Returns:
            True iff the grammar is LL(1) (no conflicts)
        """
        self.ensure_sets()
        self.table = {nt: {} for nt in self.grammar.rules}
        conflicting_cells: Dict[Tuple[str, str], LL1Conflict] = {}

        for antecedent, production in self.grammar.productions():
            for symbol in sorted(self.prediction_symbols(antecedent, production)):
                cell = self.table[antecedent].setdefault(symbol, [])
                if cell:
                    key = (antecedent, symbol)
                    if key not in conflicting_cells:
                        conflicting_cells[key] = LL1Conflict(antecedent, symbol, cell)
                        logger.debug("LL(1) conflict at (%s, %s)", antecedent, symbol)
                cell.append(production)

        self.conflicts = list(conflicting_cells.values())
        return not self.conflicts

    @property
    def is_ll1(self) -> bool:
        return not self.conflicts

    def columns(self) -> List[str]:
        """Table columns: input terminals in sorted order, then the end marker."""
        columns = sorted(self.grammar.st.input_terminals)
        columns.append(END_MARKER)
        return columns
