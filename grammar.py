"""
Grammar - Core Data Structures and Grammar Text Processing

This module implements the production-rule container used by every analysis
in the project, together with the textual grammar notation accepted by the
service layer.
"""

import logging
import re
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from symbol_table import EPSILON, RESERVED_SYMBOLS, SymbolTable

logger = logging.getLogger(__name__)

# A production is the right-hand side of a rule: an immutable symbol sequence.
Production = Tuple[str, ...]

EPSILON_PRODUCTION: Production = (EPSILON,)


def looks_like_non_terminal(symbol: str) -> bool:
    """Lexical convention for symbols that are not rule keys."""
    if symbol in RESERVED_SYMBOLS:
        return False
    return symbol[:1].isupper()


def format_production(production: Sequence[str]) -> str:
    return " ".join(production) if production else EPSILON


class Grammar:
    """
    A context-free grammar: ordered rules, an axiom and a symbol table.

    Rules map each non-terminal to the ordered list of its productions. The
    insertion order of both antecedents and productions is kept so that
    tables and printouts are deterministic.

    Transformation passes (see ``grammar_analyzer``) mutate a grammar in
    place. Use ``copy()`` when the original must survive.
    """

    def __init__(self, rules: Optional[Dict[str, Iterable[Sequence[str]]]] = None,
                 axiom: Optional[str] = None):
        self.rules: Dict[str, List[Production]] = {}
        self.st = SymbolTable()
        self.axiom: Optional[str] = None
        self.is_augmented = False

        rules = rules or {}
        # Keys are non-terminals whatever their spelling.
        for antecedent in rules:
            self.st.put_symbol(antecedent, False)
            self.rules[antecedent] = []
        for antecedent, productions in rules.items():
            for production in productions:
                self.add_production(antecedent, production)

        if axiom is None and self.rules:
            axiom = next(iter(self.rules))
        if axiom is not None:
            self.set_axiom(axiom)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def set_axiom(self, axiom: str) -> None:
        if axiom not in self.rules:
            raise ValueError(f"Axiom '{axiom}' has no productions")
        self.axiom = axiom

    def add_production(self, antecedent: str, production: Sequence[str]) -> Production:
        """
        Append a production to ``antecedent``'s rule list.

        Symbols not yet in the symbol table are registered following the
        lexical convention (uppercase initial means non-terminal). An empty
        sequence is stored as the epsilon production.

        Returns:
            The stored (immutable) production
        """
        production = tuple(production) or EPSILON_PRODUCTION
        self.st.put_symbol(antecedent, False)
        for symbol in production:
            if symbol not in self.st:
                self.st.put_symbol(symbol, not looks_like_non_terminal(symbol))
        self.rules.setdefault(antecedent, []).append(production)
        return production

    def replace_rules(self, antecedent: str, productions: Iterable[Sequence[str]]) -> None:
        """Replace every production of ``antecedent``, keeping its position."""
        self.rules[antecedent] = []
        for production in productions:
            self.add_production(antecedent, production)

    def insert_rules_after(self, anchor: str, antecedent: str,
                           productions: Iterable[Sequence[str]]) -> None:
        """Add a new antecedent right after ``anchor`` in rule order."""
        rebuilt: Dict[str, List[Production]] = {}
        for key, value in self.rules.items():
            rebuilt[key] = value
            if key == anchor:
                rebuilt[antecedent] = []
        if antecedent not in rebuilt:
            rebuilt[antecedent] = []
        self.rules = rebuilt
        self.replace_rules(antecedent, productions)

    def remove_non_terminal(self, antecedent: str) -> None:
        if antecedent == self.axiom:
            raise ValueError(f"Cannot remove the axiom '{antecedent}'")
        del self.rules[antecedent]
        if not any(antecedent in production for _, production in self.productions()):
            self.st.remove_symbol(antecedent)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def terminals(self):
        return self.st.terminals

    @property
    def non_terminals(self):
        return self.st.non_terminals

    def productions(self) -> Iterator[Tuple[str, Production]]:
        for antecedent, productions in self.rules.items():
            for production in productions:
                yield antecedent, production

    def has_empty_production(self, antecedent: str) -> bool:
        """Raises KeyError when ``antecedent`` has no rules."""
        return EPSILON_PRODUCTION in self.rules[antecedent]

    def filter_rules_by_consequent(self, symbol: str) -> List[Tuple[str, Production]]:
        return [(antecedent, production) for antecedent, production in self.productions()
                if symbol in production]

    @staticmethod
    def has_left_recursion(antecedent: str, production: Sequence[str]) -> bool:
        return len(production) > 0 and production[0] == antecedent

    def generate_new_non_terminal(self, base: str) -> str:
        """Fresh non-terminal name: ``base'``, then ``base'1``, ``base'2``..."""
        candidate = base + "'"
        counter = 1
        while candidate in self.st:
            candidate = f"{base}'{counter}"
            counter += 1
        return candidate

    def transform_to_augmented_grammar(self) -> str:
        """
        Add a fresh axiom ``S'`` with the single production ``S' -> S``.

        The new axiom is placed first in rule order. If ``S'`` is already a
        symbol of the grammar, quotes are appended until the name is unused.

        Returns:
            The name of the new axiom
        """
        if self.axiom is None:
            raise ValueError("Cannot augment a grammar without an axiom")
        new_axiom = self.axiom + "'"
        while new_axiom in self.st:
            new_axiom += "'"

        self.st.put_symbol(new_axiom, False)
        rules: Dict[str, List[Production]] = {new_axiom: [(self.axiom,)]}
        rules.update(self.rules)
        self.rules = rules
        self.axiom = new_axiom
        self.is_augmented = True
        logger.debug("Augmented grammar with axiom %s", new_axiom)
        return new_axiom

    def split(self, text: str) -> List[str]:
        """
        Tokenize a separator-free rule string into registered symbols.

        At each position the longest registered symbol is taken, with no
        backtracking, so a greedy choice that dead-ends makes the whole split
        fail even when another segmentation exists. Failure is reported as
        an empty list.

        Example: with symbols A, a and B registered, ``split("AaB")`` gives
        ``["A", "a", "B"]``.
        """
        if text == EPSILON:
            return [EPSILON]

        symbols: List[str] = []
        start, end = 0, 1
        while end <= len(text):
            if text[start:end] in self.st:
                lookahead = end + 1
                while lookahead <= len(text):
                    if text[start:lookahead] in self.st:
                        end = lookahead
                    lookahead += 1
                symbols.append(text[start:end])
                start = end
                end = start + 1
            else:
                end += 1

        if start < end - 1:
            return []
        return symbols

    # ------------------------------------------------------------------
    # Misc
    # ------------------------------------------------------------------

    def copy(self) -> 'Grammar':
        clone = Grammar()
        clone.rules = {antecedent: list(productions)
                       for antecedent, productions in self.rules.items()}
        clone.st = self.st.copy()
        clone.axiom = self.axiom
        clone.is_augmented = self.is_augmented
        return clone

    def to_dict(self) -> Dict[str, List[List[str]]]:
        return {antecedent: [list(production) for production in productions]
                for antecedent, productions in self.rules.items()}

    def __eq__(self, other) -> bool:
        if not isinstance(other, Grammar):
            return NotImplemented
        return self.axiom == other.axiom and self.rules == other.rules

    __hash__ = None

    def __str__(self) -> str:
        lines = []
        for antecedent, productions in self.rules.items():
            alternatives = " | ".join(format_production(p) for p in productions)
            lines.append(f"{antecedent} -> {alternatives}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"Grammar(axiom={self.axiom!r}, rules={self.to_dict()!r})"


class GrammarSyntaxError(ValueError):
    """Malformed grammar text."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class GrammarProcessor:
    """
    Parses grammar text into ``Grammar`` objects.

    Supported notation::

        E  -> T E'
        E' -> + T E' | ε
        T  -> ( E )
            | n          # continuation lines start with '|'

    Symbols are separated by whitespace. ``ε``, ``EPSILON`` or an empty
    alternative denote the empty production. ``#`` and ``//`` start a comment
    at the start of a line or after whitespace, so symbols such as ``c#``
    keep their marker.
    """

    RULE_PATTERN = re.compile(r'^(?P<lhs>\S+?)\s*(?:->|→|::=)\s*(?P<rhs>.*)$')
    COMMENT_PATTERN = re.compile(r"(?:^|\s)(?:#|//).*$")
    EPSILON_SPELLINGS = {"ε", EPSILON}

    def parse_grammar(self, cfg_text: str, axiom: Optional[str] = None) -> Grammar:
        """
        Parse grammar text.

        Args:
            cfg_text: Rules, one antecedent per line (plus '|' continuations)
            axiom: Start symbol; the first antecedent when omitted

        Returns:
            The parsed Grammar

        Raises:
            GrammarSyntaxError: on malformed lines, an empty grammar or an
                unknown axiom
        """
        rules: Dict[str, List[List[str]]] = {}
        current: Optional[str] = None

        for line_number, line in self._clean_input(cfg_text):
            match = self.RULE_PATTERN.match(line)
            if match:
                current = match.group('lhs')
                if current in RESERVED_SYMBOLS:
                    raise GrammarSyntaxError(
                        f"reserved symbol '{current}' cannot be an antecedent", line_number)
                rhs_text = match.group('rhs')
            elif line.startswith('|') and current is not None:
                rhs_text = line[1:]
            else:
                raise GrammarSyntaxError(f"expected 'A -> alpha', got '{line}'", line_number)

            rules.setdefault(current, []).extend(self._parse_alternatives(rhs_text))

        if not rules:
            raise GrammarSyntaxError("grammar contains no productions")
        if axiom is not None and axiom not in rules:
            raise GrammarSyntaxError(f"axiom '{axiom}' has no productions")

        logger.debug("Parsed %d antecedents from grammar text", len(rules))
        return Grammar(rules, axiom)

    def _clean_input(self, cfg_text: str) -> List[Tuple[int, str]]:
        """Strip comments and blank lines, keeping original line numbers."""
        lines = []
        for number, line in enumerate(cfg_text.splitlines(), 1):
            line = self.COMMENT_PATTERN.sub('', line).strip()
            if line:
                lines.append((number, line))
        return lines

    def _parse_alternatives(self, rhs_text: str) -> List[List[str]]:
        alternatives = []
        for alternative in rhs_text.split('|'):
            symbols = alternative.split()
            if not symbols or (len(symbols) == 1 and symbols[0] in self.EPSILON_SPELLINGS):
                alternatives.append([EPSILON])
            else:
                alternatives.append(symbols)
        return alternatives

