"""
Grammar workflow orchestration.

``GrammarWorkflowManager`` turns grammar text into the JSON-ready payloads
served by ``server.py``: parsed productions, analysis results, LL(1) and
SLR(1) tables, transformed grammars and rule splitting.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from grammar import Grammar, GrammarProcessor, format_production
from grammar_analyzer import GrammarAnalyzer
from ll1_parser import LL1TableBuilder
from slr1_parser import SLR1TableBuilder
from symbol_table import END_MARKER
from visualization import (DOTGenerator, ErrorMessageFormatter, HTMLTableGenerator,
                           TextTableRenderer, VisualizationConfig)

logger = logging.getLogger(__name__)

TRANSFORMATIONS = ("remove_left_recursion", "left_factorize", "remove_unit_rules")


def _production_strings(grammar: Grammar) -> List[str]:
    return [f"{antecedent} -> {format_production(production)}"
            for antecedent, production in grammar.productions()]


def _sorted_sets(sets: Dict[str, set]) -> Dict[str, List[str]]:
    return {symbol: sorted(values) for symbol, values in sets.items()}


class GrammarWorkflowManager:
    """
    Manages the step-by-step grammar analysis workflow.

    Every public method returns a dictionary with a ``success`` flag and,
    on failure, an ``error`` message. Grammar syntax errors, unknown
    symbols and classification clashes are reported this way; anything
    else propagates to the caller.
    """

    def __init__(self, cfg_text: str, axiom: Optional[str] = None,
                 config: Optional[VisualizationConfig] = None):
        """
        Initialize the workflow manager with grammar text.

        Args:
            cfg_text: Grammar in ``A -> alpha | beta`` notation
            axiom: Start symbol; the first antecedent when omitted
            config: Rendering options for the HTML/DOT outputs
        """
        self.cfg_text = cfg_text
        self.axiom = axiom
        self.config = config or VisualizationConfig()
        self.grammar_processor = GrammarProcessor()
        self.analyzer = GrammarAnalyzer()
        self.grammar: Optional[Grammar] = None
        self.workflow_state = "initial"

    def _load_grammar(self) -> Grammar:
        if self.grammar is None:
            self.grammar = self.grammar_processor.parse_grammar(self.cfg_text, self.axiom)
            self.workflow_state = "productions_parsed"
        return self.grammar

    @staticmethod
    def _failure(step: str, error: Exception) -> Dict[str, Any]:
        logger.info("%s failed: %s", step, error)
        return {'success': False, 'error': f"{step} failed: {error}"}

    def parse_productions(self) -> Dict[str, Any]:
        """
        Parse the grammar text.

        Returns:
            Dictionary containing productions, potential start symbols and
            the terminal / non-terminal classification
        """
        try:
            grammar = self._load_grammar()
        except ValueError as e:
            return self._failure("Grammar parsing", e)

        return {
            'success': True,
            'axiom': grammar.axiom,
            'productions': _production_strings(grammar),
            'start_symbols': list(grammar.rules),
            'grammar_info': {
                'terminals': sorted(grammar.st.input_terminals),
                'non_terminals': sorted(grammar.non_terminals),
                'production_count': sum(1 for _ in grammar.productions()),
            },
        }

    def analyze(self) -> Dict[str, Any]:
        try:
            grammar = self._load_grammar()
        except ValueError as e:
            return self._failure("Grammar analysis", e)

        report = self.analyzer.analyze(grammar)
        self.workflow_state = "analyzed"
        result = {'success': True}
        result.update(report.to_dict())
        return result

    def build_ll1(self) -> Dict[str, Any]:
        """
        Compute FIRST/FOLLOW sets and the LL(1) table.

        Returns:
            Dictionary with the sets, the table (productions as strings),
            the conflicts and HTML/text renderings
        """
        try:
            grammar = self._load_grammar()
        except ValueError as e:
            return self._failure("LL(1) construction", e)

        builder = LL1TableBuilder(grammar)
        is_ll1 = builder.build_table()
        columns = builder.columns()
        html_generator = HTMLTableGenerator(self.config)
        text_renderer = TextTableRenderer(self.config)

        table = {
            non_terminal: {symbol: [format_production(p) for p in cell]
                           for symbol, cell in row.items()}
            for non_terminal, row in builder.table.items()
        }
        self.workflow_state = "ll1_built"
        return {
            'success': True,
            'is_ll1': is_ll1,
            'first_sets': _sorted_sets(builder.first_sets),
            'follow_sets': _sorted_sets(builder.follow_sets),
            'columns': columns,
            'table': table,
            'conflicts': [str(conflict) for conflict in builder.conflicts],
            'first_follow_html': html_generator.generate_first_follow_html(
                builder.first_sets, builder.follow_sets),
            'table_html': html_generator.generate_ll1_table_html(builder.table, columns),
            'conflicts_html': ErrorMessageFormatter(self.config).format_ll1_conflict_report(
                builder.conflicts),
            'table_text': text_renderer.ll1_table(builder.table, columns),
        }

    def build_slr1(self) -> Dict[str, Any]:
        """
        Build the LR(0) automaton and the SLR(1) tables on an augmented copy.

        Returns:
            Dictionary with states, transitions, ACTION/GOTO tables,
            conflicts, and HTML/DOT/text renderings
        """
        try:
            grammar = self._load_grammar().copy()
        except ValueError as e:
            return self._failure("SLR(1) construction", e)

        if not grammar.is_augmented:
            grammar.transform_to_augmented_grammar()
        builder = SLR1TableBuilder(grammar)
        is_slr1 = builder.build_tables()
        automaton = builder.automaton

        terminals = sorted(grammar.st.input_terminals) + [END_MARKER]
        non_terminals = [nt for nt in grammar.rules if nt != grammar.axiom]
        state_ids = [state.state_id for state in automaton.states]

        action: Dict[str, Dict[str, str]] = {}
        for (state_id, symbol), entry in builder.action_table.items():
            action.setdefault(str(state_id), {})[symbol] = str(entry)
        goto: Dict[str, Dict[str, int]] = {}
        for (state_id, symbol), target in builder.goto_table.items():
            goto.setdefault(str(state_id), {})[symbol] = target

        self.workflow_state = "slr1_built"
        return {
            'success': True,
            'is_slr1': is_slr1,
            'augmented_axiom': grammar.axiom,
            'states': [{'id': state.state_id,
                        'items': [str(item) for item in sorted(state.items, key=str)]}
                       for state in automaton.states],
            'transitions': [{'from': src, 'symbol': symbol, 'to': dst}
                            for (src, symbol), dst in sorted(automaton.transitions.items())],
            'action': action,
            'goto': goto,
            'conflicts': [str(conflict) for conflict in builder.conflicts],
            'table_html': HTMLTableGenerator(self.config).generate_action_goto_tables_html(
                builder.action_table, builder.goto_table, terminals, non_terminals,
                state_ids, builder.conflicts),
            'conflicts_html': ErrorMessageFormatter(self.config).format_conflict_report(
                builder.conflicts),
            'automaton_dot': DOTGenerator(self.config).generate_automaton_dot(automaton),
            'table_text': TextTableRenderer(self.config).actions_table(
                builder.action_table, builder.goto_table, terminals, non_terminals, state_ids),
        }

    def transform(self, operations: Sequence[str]) -> Dict[str, Any]:
        """
        Apply transformations, in order, to a copy of the grammar.

        Args:
            operations: Names from ``TRANSFORMATIONS``

        Returns:
            Dictionary with the transformed grammar as text and as rules
        """
        unknown = [op for op in operations if op not in TRANSFORMATIONS]
        if unknown:
            return {'success': False,
                    'error': f"Unknown transformation(s) {unknown}. Must be among: {list(TRANSFORMATIONS)}"}
        try:
            grammar = self._load_grammar().copy()
            for operation in operations:
                getattr(self.analyzer, operation)(grammar)
        except ValueError as e:
            return self._failure("Grammar transformation", e)

        return {
            'success': True,
            'applied': list(operations),
            'grammar': str(grammar),
            'rules': grammar.to_dict(),
            'productions': _production_strings(grammar),
        }

    def split_rule(self, text: str) -> Dict[str, Any]:
        """Split a separator-free rule body into grammar symbols."""
        try:
            grammar = self._load_grammar()
        except ValueError as e:
            return self._failure("Rule splitting", e)

        symbols = grammar.split(text)
        if not symbols:
            return {'success': False, 'symbols': [],
                    'error': f"'{text}' cannot be split into known grammar symbols"}
        return {'success': True, 'symbols': symbols}

    def get_workflow_state(self) -> Dict[str, Any]:
        return {
            'workflow_state': self.workflow_state,
            'axiom': self.grammar.axiom if self.grammar else self.axiom,
            'has_grammar': self.grammar is not None,
        }
