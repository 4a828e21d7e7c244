"""
FIRST / FOLLOW set computation shared by the LL(1) and SLR(1) builders.
"""

import logging
from typing import Dict, Sequence, Set

from grammar import Grammar
from symbol_table import END_MARKER, EPSILON

logger = logging.getLogger(__name__)


class FirstFollowComputer:
    """Computes FIRST and FOLLOW sets of a grammar by fixed-point iteration."""

    def __init__(self, grammar: Grammar):
        self.grammar = grammar
        self.first_sets: Dict[str, Set[str]] = {}
        self.follow_sets: Dict[str, Set[str]] = {}

    def first(self, symbols: Sequence[str]) -> Set[str]:
        """
        FIRST of a symbol sequence.

        FIRST sets of non-terminals are computed on first use.

        Args:
            symbols: Sequence of grammar symbols (may be empty)

        Returns:
            Set of terminals, possibly containing EPSILON
        """
        if not self.first_sets:
            self.compute_first_sets()
        return self._first_of_sequence(symbols)

    def _first_of_sequence(self, symbols: Sequence[str]) -> Set[str]:
        """
        FIRST of a symbol sequence from the current (possibly partial) sets.

        The end marker never appears in a FIRST set: reaching it means the
        prefix before it is nullable, so it contributes EPSILON instead.
        Unknown symbols are treated as terminals.
        """
        result: Set[str] = set()
        for symbol in symbols:
            if symbol == EPSILON:
                continue
            if symbol == END_MARKER:
                result.add(EPSILON)
                return result
            if not self.grammar.st.is_non_terminal(symbol):
                result.add(symbol)
                return result

            symbol_first = self.first_sets.get(symbol, set())
            result.update(symbol_first - {EPSILON})
            if EPSILON not in symbol_first:
                return result

        result.add(EPSILON)
        return result

    def compute_first_sets(self) -> Dict[str, Set[str]]:
        """
        FIRST(A) for every non-terminal A.

        Re-evaluates FIRST of every right-hand side until no set grows.
        Safe to call repeatedly: each call starts from empty sets.
        """
        self.first_sets = {nt: set() for nt in self.grammar.rules}

        iterations = 0
        changed = True
        while changed:
            changed = False
            iterations += 1
            for antecedent, production in self.grammar.productions():
                current = self._first_of_sequence(production)
                if END_MARKER in current:
                    current.discard(END_MARKER)
                    current.add(EPSILON)

                before_size = len(self.first_sets[antecedent])
                self.first_sets[antecedent].update(current)
                if len(self.first_sets[antecedent]) > before_size:
                    changed = True

        logger.debug("FIRST sets converged after %d iterations", iterations)
        return self.first_sets

    def compute_follow_sets(self) -> Dict[str, Set[str]]:
        """
        FOLLOW(A) for every non-terminal A.

        FOLLOW(axiom) is seeded with the end marker. Requires FIRST sets;
        they are computed first if the cache is empty.
        """
        if not self.first_sets:
            self.compute_first_sets()

        self.follow_sets = {nt: set() for nt in self.grammar.rules}
        if self.grammar.axiom is not None:
            self.follow_sets[self.grammar.axiom].add(END_MARKER)

        iterations = 0
        changed = True
        while changed:
            changed = False
            iterations += 1
            for antecedent, production in self.grammar.productions():
                for i, symbol in enumerate(production):
                    if not self.grammar.st.is_non_terminal(symbol):
                        continue
                    follow = self.follow_sets.setdefault(symbol, set())
                    before_size = len(follow)

                    first_beta = self._first_of_sequence(production[i + 1:])
                    follow.update(first_beta - {EPSILON})
                    if EPSILON in first_beta:
                        follow.update(self.follow_sets[antecedent])

                    if len(follow) > before_size:
                        changed = True

        logger.debug("FOLLOW sets converged after %d iterations", iterations)
        return self.follow_sets

    def follow(self, non_terminal: str) -> Set[str]:
        if not self.follow_sets:
            self.compute_follow_sets()
        return set(self.follow_sets.get(non_terminal, set()))

    def ensure_sets(self) -> None:
        """Compute FIRST/FOLLOW lazily when the caches are empty."""
        if not self.first_sets:
            self.compute_first_sets()
        if not self.follow_sets:
            self.compute_follow_sets()
