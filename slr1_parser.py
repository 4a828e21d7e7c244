"""
SLR(1) Table Construction

Builds the canonical collection of LR(0) states of a grammar with
closure/goto and fills the ACTION and GOTO tables, using FOLLOW sets to
place reduce actions.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from first_follow import FirstFollowComputer
from grammar import Grammar
from lr0_item import LR0Item, LR0State, production_label
from symbol_table import END_MARKER, EPSILON

logger = logging.getLogger(__name__)


@dataclass
class SLRAutomaton:
    """Canonical collection of LR(0) states and the transitions between them."""
    states: List[LR0State]
    transitions: Dict[Tuple[int, str], int] = field(default_factory=dict)
    start_state_id: int = 0

    def __str__(self) -> str:
        lines = [f"LR(0) automaton with {len(self.states)} states:"]
        for state in self.states:
            lines.append(str(state))
        lines.append("Transitions:")
        for (from_state, symbol), to_state in sorted(self.transitions.items()):
            lines.append(f"  {from_state} --{symbol}--> {to_state}")
        return "\n".join(lines)


class ActionType(Enum):
    """Enumeration of SLR(1) parsing actions."""
    SHIFT = "shift"
    REDUCE = "reduce"
    ACCEPT = "accept"


# Precedence used only to name conflicts consistently ("shift/reduce", ...).
_ACTION_ORDER = {ActionType.SHIFT: 0, ActionType.REDUCE: 1, ActionType.ACCEPT: 2}


@dataclass(frozen=True)
class ParseAction:
    """A single ACTION table entry."""
    action_type: ActionType
    value: Optional[Union[int, LR0Item]] = None  # State ID for shift, item for reduce

    def __str__(self) -> str:
        if self.action_type == ActionType.SHIFT:
            return f"shift {self.value}"
        if self.action_type == ActionType.REDUCE:
            return f"reduce {production_label(self.value.antecedent, self.value.production)}"
        return "accept"


@dataclass
class ParsingTables:
    """Represents the complete set of SLR(1) parsing tables."""
    action_table: Dict[Tuple[int, str], ParseAction]  # (state, terminal) -> action
    goto_table: Dict[Tuple[int, str], int]             # (state, non_terminal) -> state

    def __str__(self) -> str:
        lines = ["Parsing Tables:"]
        lines.append("\nAction Table:")
        for (state, terminal), action in sorted(self.action_table.items(), key=lambda kv: kv[0]):
            lines.append(f"  ACTION[{state}, {terminal}] = {action}")
        lines.append("\nGoto Table:")
        for (state, non_terminal), target in sorted(self.goto_table.items()):
            lines.append(f"  GOTO[{state}, {non_terminal}] = {target}")
        return "\n".join(lines)


@dataclass
class Conflict:
    """Represents a parsing conflict in the SLR(1) tables."""
    state_id: int
    symbol: str
    conflict_type: str  # "shift/reduce", "reduce/reduce", ...
    actions: List[str]
    description: str

    def __str__(self) -> str:
        return (f"{self.conflict_type} conflict in state {self.state_id} "
                f"on symbol '{self.symbol}': {self.description}")


class SLR1TableBuilder(FirstFollowComputer):
    """
    Generates the SLR(1) tables of a grammar.

    The grammar is used as given. Augment it beforehand
    (``Grammar.transform_to_augmented_grammar``) unless the axiom already has
    a single production ending with the end marker; an item of the axiom
    that becomes complete is taken as the accepting item.
    """

    def __init__(self, grammar: Grammar):
        super().__init__(grammar)
        self.automaton: Optional[SLRAutomaton] = None
        self.action_table: Dict[Tuple[int, str], ParseAction] = {}
        self.goto_table: Dict[Tuple[int, str], int] = {}
        self.conflicts: List[Conflict] = []

    # ------------------------------------------------------------------
    # Item sets
    # ------------------------------------------------------------------

    def closure(self, items: Iterable[LR0Item]) -> FrozenSet[LR0Item]:
        """
        Close an item set under non-terminal expansion.

        Each non-terminal found after a dot is expanded once per call, adding
        its productions with the dot at position 0.
        """
        result = set(items)
        pending = list(result)
        expanded = set()

        while pending:
            symbol = pending.pop().next_symbol()
            if symbol in expanded or not self.grammar.st.is_non_terminal(symbol):
                continue
            expanded.add(symbol)
            for production in self.grammar.rules.get(symbol, []):
                new_item = LR0Item(symbol, production, 0)
                if new_item not in result:
                    result.add(new_item)
                    pending.append(new_item)

        return frozenset(result)

    def goto(self, items: Iterable[LR0Item], symbol: str) -> FrozenSet[LR0Item]:
        """
        Items reached from ``items`` by reading ``symbol``.

        EPSILON is never a transition label, so goto on it is empty.
        """
        if symbol == EPSILON:
            return frozenset()
        moved = [item.advance_dot() for item in items
                 if not item.is_complete() and item.next_symbol() == symbol]
        if not moved:
            return frozenset()
        return self.closure(moved)

    def make_initial_state(self) -> LR0State:
        axiom = self.grammar.axiom
        first_production = self.grammar.rules[axiom][0]
        return LR0State(self.closure([LR0Item(axiom, first_production, 0)]), 0)

    def build_canonical_collection(self) -> SLRAutomaton:
        """
        Discover every LR(0) state reachable from the initial state.

        Breadth-first: states get sequential ids in discovery order and are
        deduplicated by their item set. Every transition is recorded, also
        those leading back to an already known state.
        """
        initial = self.make_initial_state()
        states = [initial]
        known: Dict[FrozenSet[LR0Item], LR0State] = {initial.items: initial}
        transitions: Dict[Tuple[int, str], int] = {}
        queue = deque([initial])

        while queue:
            state = queue.popleft()
            for symbol in self._symbols_after_dot(state.items):
                target_items = self.goto(state.items, symbol)
                if not target_items:
                    continue
                target = known.get(target_items)
                if target is None:
                    target = LR0State(target_items, len(states))
                    states.append(target)
                    known[target_items] = target
                    queue.append(target)
                transitions[(state.state_id, symbol)] = target.state_id

        self.automaton = SLRAutomaton(states=states, transitions=transitions, start_state_id=0)
        logger.debug("Canonical collection: %d states, %d transitions",
                     len(states), len(transitions))
        return self.automaton

    def all_items(self) -> List[LR0Item]:
        """Every LR(0) item of the grammar, rule by rule and dot by dot."""
        items: List[LR0Item] = []
        for antecedent, production in self.grammar.productions():
            item = LR0Item(antecedent, production, 0)
            while True:
                if item not in items:
                    items.append(item)
                if item.is_complete():
                    break
                item = item.advance_dot()
        return items

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def resolve_conflicts(self, state: LR0State) -> bool:
        """
        Write the ACTION entries demanded by the items of ``state``.

        - complete item of the axiom: accept on the end marker
        - other complete item A -> alpha: reduce on every terminal of FOLLOW(A)
        - item with a terminal after the dot: shift to GOTO(state, terminal)

        A cell already holding a different action is left unchanged and the
        clash is recorded in ``conflicts``.

        Returns:
            True iff no conflict arose in this state
        """
        if self.automaton is None:
            self.build_canonical_collection()
        self.ensure_sets()

        success = True
        for item in sorted(state.items, key=str):
            if item.is_complete():
                if item.antecedent == self.grammar.axiom:
                    success &= self._add_action(state.state_id, END_MARKER,
                                                ParseAction(ActionType.ACCEPT))
                else:
                    for terminal in sorted(self.follow_sets.get(item.antecedent, set())):
                        success &= self._add_action(state.state_id, terminal,
                                                    ParseAction(ActionType.REDUCE, item))
                continue

            symbol = item.next_symbol()
            if self.grammar.st.is_terminal(symbol) and symbol != EPSILON:
                target = self.automaton.transitions.get((state.state_id, symbol))
                if target is not None:
                    success &= self._add_action(state.state_id, symbol,
                                                ParseAction(ActionType.SHIFT, target))
        return bool(success)

    def build_goto_table(self) -> Dict[Tuple[int, str], int]:
        self.goto_table = {
            (state_id, symbol): target
            for (state_id, symbol), target in self.automaton.transitions.items()
            if self.grammar.st.is_non_terminal(symbol)
        }
        return self.goto_table

    def build_tables(self) -> bool:
        """
        Build the automaton and both tables.

        Every state is resolved even after a conflict, so the tables and
        the full conflict list stay available for inspection.

        Returns:
            True iff the grammar is SLR(1)
        """
        if not self._has_accepting_axiom():
            logger.warning("Axiom %s is not augmented and does not end with %s; "
                           "reduce actions on FOLLOW(%s) will be missing",
                           self.grammar.axiom, END_MARKER, self.grammar.axiom)
        self.ensure_sets()
        self.build_canonical_collection()
        self.action_table = {}
        self.conflicts = []

        success = True
        for state in self.automaton.states:
            if not self.resolve_conflicts(state):
                success = False
        self.build_goto_table()

        logger.debug("SLR(1) tables built: %d actions, %d gotos, %d conflicts",
                     len(self.action_table), len(self.goto_table), len(self.conflicts))
        return success

    @property
    def is_slr1(self) -> bool:
        return self.automaton is not None and not self.conflicts

    @property
    def tables(self) -> ParsingTables:
        return ParsingTables(action_table=dict(self.action_table),
                             goto_table=dict(self.goto_table))

    def _add_action(self, state_id: int, symbol: str, action: ParseAction) -> bool:
        key = (state_id, symbol)
        existing = self.action_table.get(key)
        if existing is None:
            self.action_table[key] = action
            return True
        if existing == action:
            return True

        first, second = sorted((existing, action), key=lambda a: _ACTION_ORDER[a.action_type])
        conflict_type = f"{first.action_type.value}/{second.action_type.value}"
        self.conflicts.append(Conflict(
            state_id=state_id,
            symbol=symbol,
            conflict_type=conflict_type,
            actions=[str(existing), str(action)],
            description=f"cannot choose between '{existing}' and '{action}'",
        ))
        logger.debug("%s conflict in state %d on %s", conflict_type, state_id, symbol)
        return False

    def _has_accepting_axiom(self) -> bool:
        """True when a complete axiom item can only mean end of input."""
        if self.grammar.is_augmented:
            return True
        productions = self.grammar.rules.get(self.grammar.axiom, [])
        return bool(productions) and all(p[-1] == END_MARKER for p in productions)

    @staticmethod
    def _symbols_after_dot(items: Iterable[LR0Item]) -> List[str]:
        symbols = {item.next_symbol() for item in items if not item.is_complete()}
        symbols.discard(EPSILON)
        return sorted(symbols)
