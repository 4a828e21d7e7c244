"""
Grammar Analysis and Transformation

Stateless checks over a ``Grammar`` (infinite language, unreachable symbols,
left recursion, nullable symbols) and the rewriting passes that prepare a
grammar for top-down parsing: left-recursion removal, left factorization and
unit-rule removal.

The transformation passes mutate the grammar they receive. Call them on
``grammar.copy()`` to keep the original.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Set

from grammar import EPSILON_PRODUCTION, Grammar, Production
from symbol_table import END_MARKER, EPSILON

logger = logging.getLogger(__name__)


@dataclass
class GrammarReport:
    """Summary of every analysis check on a grammar."""
    is_infinite: bool
    has_unreachable_symbols: bool
    has_direct_left_recursion: bool
    has_indirect_left_recursion: bool
    nullable_symbols: Set[str] = field(default_factory=set)

    def to_dict(self) -> Dict[str, object]:
        return {
            'is_infinite': self.is_infinite,
            'has_unreachable_symbols': self.has_unreachable_symbols,
            'has_direct_left_recursion': self.has_direct_left_recursion,
            'has_indirect_left_recursion': self.has_indirect_left_recursion,
            'nullable_symbols': sorted(self.nullable_symbols),
        }


class GrammarAnalyzer:
    """Checks and transformations over context-free grammars."""

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def generating_symbols(self, grammar: Grammar) -> Set[str]:
        """Non-terminals that derive at least one finite terminal string."""
        generating: Set[str] = set()
        changed = True
        while changed:
            changed = False
            for antecedent, production in grammar.productions():
                if antecedent in generating:
                    continue
                if all(grammar.st.is_terminal(s) or s in generating for s in production):
                    generating.add(antecedent)
                    changed = True
        return generating

    def is_infinite(self, grammar: Grammar) -> bool:
        """
        True iff some non-terminal can never derive a terminal string.

        Every derivation through such a non-terminal goes on forever.
        """
        return self.generating_symbols(grammar) != set(grammar.non_terminals)

    def reachable_symbols(self, grammar: Grammar) -> Set[str]:
        """Non-terminals reachable from the axiom (breadth-first)."""
        if grammar.axiom is None:
            return set()
        visited = {grammar.axiom}
        queue = deque([grammar.axiom])
        while queue:
            current = queue.popleft()
            for production in grammar.rules.get(current, []):
                for symbol in production:
                    if grammar.st.is_non_terminal(symbol) and symbol not in visited:
                        visited.add(symbol)
                        queue.append(symbol)
        return visited

    def has_unreachable_symbols(self, grammar: Grammar) -> bool:
        return not set(grammar.non_terminals) <= self.reachable_symbols(grammar)

    def has_direct_left_recursion(self, grammar: Grammar) -> bool:
        return any(grammar.has_left_recursion(antecedent, production)
                   for antecedent, production in grammar.productions())

    def has_indirect_left_recursion(self, grammar: Grammar) -> bool:
        """
        Left recursion through any chain of non-terminals.

        Builds the left-corner graph (A -> X when some production of A starts
        with X after a nullable prefix) and looks for a cycle. A self-loop is
        a cycle too, so directly left-recursive grammars are also reported.
        """
        nullable = self.nullable_symbols(grammar)
        graph: Dict[str, Set[str]] = {nt: set() for nt in grammar.rules}

        for antecedent, production in grammar.productions():
            for symbol in production:
                if symbol == EPSILON:
                    continue
                if not grammar.st.is_non_terminal(symbol):
                    break
                graph[antecedent].add(symbol)
                if symbol not in nullable:
                    break

        return self.has_cycle(graph)

    @staticmethod
    def has_cycle(graph: Dict[str, Set[str]]) -> bool:
        """Kahn's topological sort: a cycle leaves some nodes unprocessed."""
        nodes: Set[str] = set(graph)
        for targets in graph.values():
            nodes.update(targets)

        in_degree = {node: 0 for node in nodes}
        for targets in graph.values():
            for target in targets:
                in_degree[target] += 1

        queue = deque(sorted(node for node, degree in in_degree.items() if degree == 0))
        processed = 0
        while queue:
            node = queue.popleft()
            processed += 1
            for target in graph.get(node, ()):
                in_degree[target] -= 1
                if in_degree[target] == 0:
                    queue.append(target)

        return processed < len(nodes)

    def nullable_symbols(self, grammar: Grammar) -> Set[str]:
        """
        Non-terminals that derive the empty string.

        The end marker counts as nullable, consistent with FIRST where it
        stands for EPSILON.
        """
        nullable: Set[str] = set()
        changed = True
        while changed:
            changed = False
            for antecedent, production in grammar.productions():
                if antecedent in nullable:
                    continue
                if all(s in (EPSILON, END_MARKER) or s in nullable for s in production):
                    nullable.add(antecedent)
                    changed = True
        return nullable

    def analyze(self, grammar: Grammar) -> GrammarReport:
        return GrammarReport(
            is_infinite=self.is_infinite(grammar),
            has_unreachable_symbols=self.has_unreachable_symbols(grammar),
            has_direct_left_recursion=self.has_direct_left_recursion(grammar),
            has_indirect_left_recursion=self.has_indirect_left_recursion(grammar),
            nullable_symbols=self.nullable_symbols(grammar),
        )

    # ------------------------------------------------------------------
    # Transformations (in place)
    # ------------------------------------------------------------------

    def remove_left_recursion(self, grammar: Grammar) -> Grammar:
        """
        Eliminate direct left recursion in place.

        A -> A a1 | ... | A an | b1 | ... | bm becomes
        A -> b1 A' | ... | bm A' and A' -> a1 A' | ... | an A' | EPSILON,
        with one fresh A' per left-recursive antecedent. Indirect left
        recursion is left untouched.

        Returns:
            The same (mutated) grammar
        """
        for antecedent in list(grammar.rules):
            productions = grammar.rules[antecedent]
            alphas = [tuple(s for s in p[1:] if s != EPSILON)
                      for p in productions if grammar.has_left_recursion(antecedent, p)]
            if not alphas:
                continue
            betas = [p for p in productions if not grammar.has_left_recursion(antecedent, p)]

            new_nt = grammar.generate_new_non_terminal(antecedent)
            grammar.st.put_symbol(new_nt, False)

            new_productions = [(new_nt,) if beta == EPSILON_PRODUCTION else beta + (new_nt,)
                               for beta in betas] or [(new_nt,)]
            tail_productions = [alpha + (new_nt,) for alpha in alphas if alpha]
            tail_productions.append(EPSILON_PRODUCTION)

            grammar.replace_rules(antecedent, new_productions)
            grammar.insert_rules_after(antecedent, new_nt, tail_productions)
            logger.debug("Removed left recursion of %s via %s", antecedent, new_nt)

        return grammar

    def left_factorize(self, grammar: Grammar) -> Grammar:
        """
        Left-factorize every non-terminal in place, until nothing changes.

        The longest prefix shared by two or more productions of A is pulled
        out: A -> p s1 | p s2 | r becomes A -> p A' | r and A' -> s1 | s2
        (EPSILON for an empty suffix). New non-terminals are factorized in
        later rounds.

        Returns:
            The same (mutated) grammar
        """
        rounds = 0
        changed = True
        while changed:
            changed = False
            rounds += 1
            for antecedent in list(grammar.rules):
                if self._factorize_antecedent(grammar, antecedent):
                    changed = True
        logger.debug("Left factorization reached a fixed point after %d rounds", rounds)
        return grammar

    def _factorize_antecedent(self, grammar: Grammar, antecedent: str) -> bool:
        productions = grammar.rules[antecedent]
        ordered = sorted(productions)

        # Productions sharing a prefix are adjacent once sorted.
        prefix: Production = ()
        for first, second in zip(ordered, ordered[1:]):
            candidate = self.longest_common_prefix([first, second])
            if len(candidate) > len(prefix):
                prefix = candidate
        if not prefix or prefix == EPSILON_PRODUCTION:
            return False

        new_nt = grammar.generate_new_non_terminal(antecedent)
        grammar.st.put_symbol(new_nt, False)

        rewritten: List[Production] = []
        suffixes: List[Production] = []
        for production in productions:
            if self.starts_with(production, prefix):
                if not suffixes:
                    rewritten.append(prefix + (new_nt,))
                suffixes.append(production[len(prefix):] or EPSILON_PRODUCTION)
            else:
                rewritten.append(production)

        grammar.replace_rules(antecedent, rewritten)
        grammar.insert_rules_after(antecedent, new_nt, suffixes)
        logger.debug("Factorized %s on prefix %s via %s", antecedent, " ".join(prefix), new_nt)
        return True

    def remove_unit_rules(self, grammar: Grammar) -> Grammar:
        """
        Replace unit rules A -> B by B's productions, in place.

        Non-terminals that become unreachable from the axiom are dropped.

        Returns:
            The same (mutated) grammar

        Raises:
            ValueError: if a non-terminal only has unit rules leading back
                into a cycle, so nothing would be left of it. The grammar is
                left unchanged.
        """
        defined = set(grammar.rules)

        def is_unit(production: Production) -> bool:
            return len(production) == 1 and production[0] in defined

        rewritten: Dict[str, List[Production]] = {}
        for antecedent in grammar.rules:
            # Every non-terminal reachable from antecedent through unit rules.
            reach = [antecedent]
            for current in reach:
                for production in grammar.rules[current]:
                    if is_unit(production) and production[0] not in reach:
                        reach.append(production[0])

            productions: List[Production] = []
            for current in reach:
                for production in grammar.rules[current]:
                    if not is_unit(production) and production not in productions:
                        productions.append(production)
            rewritten[antecedent] = productions

        emptied = [antecedent for antecedent, productions in rewritten.items()
                   if not productions and grammar.rules[antecedent]]
        if emptied:
            raise ValueError(f"Unit rules of {', '.join(emptied)} only form a cycle; "
                             "no production would remain")

        for antecedent, productions in rewritten.items():
            grammar.replace_rules(antecedent, productions)

        reachable = self.reachable_symbols(grammar)
        for antecedent in list(grammar.rules):
            if antecedent not in reachable:
                grammar.remove_non_terminal(antecedent)
                logger.debug("Dropped unreachable non-terminal %s", antecedent)
        return grammar

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def longest_common_prefix(productions: Iterable[Sequence[str]]) -> Production:
        """Longest prefix common to all productions (sorted first vs. last)."""
        ordered = sorted(tuple(p) for p in productions)
        if not ordered:
            return ()
        first, last = ordered[0], ordered[-1]
        length = 0
        while length < min(len(first), len(last)) and first[length] == last[length]:
            length += 1
        return first[:length]

    @staticmethod
    def starts_with(production: Sequence[str], prefix: Sequence[str]) -> bool:
        return tuple(production[:len(prefix)]) == tuple(prefix)
