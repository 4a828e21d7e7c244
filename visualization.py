"""
Visualization and Output Formatting Module

This module renders the outputs of the grammar analysis core: FIRST/FOLLOW
sets, LL(1) tables, SLR(1) ACTION/GOTO tables, LR(0) automata and conflict
reports. HTML and DOT are produced for the web front end, plain-text tables
(via tabulate) for terminals and logs.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple
from dataclasses import dataclass
import html

from tabulate import tabulate

from grammar import Production, format_production
from ll1_parser import LL1Conflict
from slr1_parser import Conflict, ParseAction, SLRAutomaton
from symbol_table import EPSILON


@dataclass
class VisualizationConfig:
    """Configuration options for visualization output."""
    table_css_classes: str = "parse-table"
    error_css_classes: str = "error-message"
    include_inline_styles: bool = False
    compact_mode: bool = False
    max_items_per_state: int = 0  # 0 shows every item of a DOT node
    epsilon_display: str = "ε"
    text_table_format: str = "grid"


def _display_symbol(symbol: str, config: VisualizationConfig) -> str:
    return config.epsilon_display if symbol == EPSILON else symbol


def _display_production(antecedent: str, production: Production,
                        config: VisualizationConfig) -> str:
    body = " ".join(_display_symbol(s, config) for s in production)
    return f"{antecedent} -> {body}"


def _display_set(symbols: Iterable[str], config: VisualizationConfig) -> str:
    return "{" + ", ".join(_display_symbol(s, config) for s in sorted(symbols)) + "}"


class HTMLTableGenerator:
    """Generates HTML tables for FIRST/FOLLOW, LL(1) and SLR(1) tables."""

    def __init__(self, config: Optional[VisualizationConfig] = None):
        self.config = config or VisualizationConfig()

    def generate_first_follow_html(self, first_sets: Dict[str, Set[str]],
                                   follow_sets: Dict[str, Set[str]]) -> str:
        """One row per non-terminal with its FIRST and FOLLOW sets."""
        if not first_sets:
            return self._generate_empty_table_html("No FIRST/FOLLOW sets computed")

        lines = []
        if self.config.include_inline_styles:
            lines.append(self._generate_table_styles())
        lines.append(f'<table class="grammar-table {self.config.table_css_classes}" role="table" '
                     f'aria-label="FIRST and FOLLOW sets">')
        lines.append('<thead><tr>')
        for title in ("Non-terminal", "FIRST", "FOLLOW"):
            lines.append(f'<th class="grammar-table-header" scope="col">{title}</th>')
        lines.append('</tr></thead>')
        lines.append('<tbody>')
        for non_terminal, first in first_sets.items():
            follow = follow_sets.get(non_terminal, set())
            lines.append('<tr>')
            lines.append(f'<th class="grammar-table-cell grammar-table-cell-primary" scope="row">'
                         f'{html.escape(non_terminal)}</th>')
            lines.append(f'<td class="grammar-table-cell">{html.escape(_display_set(first, self.config))}</td>')
            lines.append(f'<td class="grammar-table-cell">{html.escape(_display_set(follow, self.config))}</td>')
            lines.append('</tr>')
        lines.append('</tbody>')
        lines.append('</table>')
        return '\n'.join(lines)

    def generate_ll1_table_html(self, table: Dict[str, Dict[str, List[Production]]],
                                columns: Sequence[str]) -> str:
        """
        Generate the LL(1) table.

        Args:
            table: Mapping non-terminal -> lookahead -> productions
            columns: Lookahead symbols in display order

        Returns:
            HTML string; cells with several productions are marked as conflicts
        """
        if not table:
            return self._generate_empty_table_html("No LL(1) table built")

        lines = []
        if self.config.include_inline_styles:
            lines.append(self._generate_table_styles())
        lines.append(f'<table class="grammar-table {self.config.table_css_classes}" role="table" '
                     f'aria-label="LL(1) parsing table">')
        lines.append('<thead><tr>')
        lines.append('<th class="grammar-table-header grammar-table-header-primary" scope="col"></th>')
        for column in columns:
            lines.append(f'<th class="grammar-table-header" scope="col">{html.escape(column)}</th>')
        lines.append('</tr></thead>')
        lines.append('<tbody>')
        for non_terminal, row in table.items():
            lines.append('<tr>')
            lines.append(f'<th class="grammar-table-cell grammar-table-cell-primary" scope="row">'
                         f'{html.escape(non_terminal)}</th>')
            for column in columns:
                cell = row.get(column, [])
                entries = [html.escape(_display_production(non_terminal, p, self.config)) for p in cell]
                if len(entries) > 1:
                    content = ('<span class="grammar-action-conflict">'
                               + ' / '.join(f'<span class="conflict-action">{e}</span>' for e in entries)
                               + '</span>')
                else:
                    content = ''.join(entries)
                lines.append(f'<td class="grammar-table-cell">{content}</td>')
            lines.append('</tr>')
        lines.append('</tbody>')
        lines.append('</table>')
        return '\n'.join(lines)

    def generate_action_goto_tables_html(self,
                                         action_table: Dict[Tuple[int, str], ParseAction],
                                         goto_table: Dict[Tuple[int, str], int],
                                         terminals: Sequence[str],
                                         non_terminals: Sequence[str],
                                         state_ids: Iterable[int],
                                         conflicts: Optional[List[Conflict]] = None) -> str:
        """
        Generate combined HTML table for ACTION and GOTO tables.

        Args:
            action_table: Mapping (state, terminal) to action
            goto_table: Mapping (state, non_terminal) to target state
            terminals: ACTION columns in display order
            non_terminals: GOTO columns in display order
            state_ids: Rows to show
            conflicts: Conflicts to mark in their cells

        Returns:
            HTML string containing the combined parsing table
        """
        sorted_states = sorted(state_ids)
        if not sorted_states:
            return self._generate_empty_table_html("No parsing states found")

        conflict_actions: Dict[Tuple[int, str], List[str]] = {}
        for conflict in conflicts or []:
            known = conflict_actions.setdefault((conflict.state_id, conflict.symbol), [])
            for action in conflict.actions:
                if action not in known:
                    known.append(action)

        lines = []
        if self.config.include_inline_styles:
            lines.append(self._generate_table_styles())
        lines.append(f'<table class="grammar-table {self.config.table_css_classes}" role="table" '
                     f'aria-label="SLR(1) Parsing Table with ACTION and GOTO sections">')
        lines.append(self._generate_table_header(terminals, non_terminals))
        lines.append('<tbody>')
        for state in sorted_states:
            lines.append(self._generate_table_row(state, terminals, non_terminals,
                                                  action_table, goto_table, conflict_actions))
        lines.append('</tbody>')
        lines.append('</table>')
        return '\n'.join(lines)

    def _generate_table_header(self, terminals: Sequence[str],
                               non_terminals: Sequence[str]) -> str:
        """Generate the table header with ACTION and GOTO sections."""
        lines = ['<thead>', '<tr>']
        lines.append('<th class="grammar-table-header grammar-table-header-primary" scope="col" rowspan="2">State</th>')
        if terminals:
            lines.append(f'<th class="grammar-table-header" scope="colgroup" colspan="{len(terminals)}">ACTION</th>')
        if non_terminals:
            lines.append(f'<th class="grammar-table-header" scope="colgroup" colspan="{len(non_terminals)}">GOTO</th>')
        lines.append('</tr>')
        lines.append('<tr>')
        for symbol in list(terminals) + list(non_terminals):
            lines.append(f'<th class="grammar-table-header" scope="col">{html.escape(symbol)}</th>')
        lines.append('</tr>')
        lines.append('</thead>')
        return '\n'.join(lines)

    def _generate_table_row(self, state: int, terminals: Sequence[str],
                            non_terminals: Sequence[str],
                            action_table: Dict[Tuple[int, str], ParseAction],
                            goto_table: Dict[Tuple[int, str], int],
                            conflict_actions: Dict[Tuple[int, str], List[str]]) -> str:
        lines = ['<tr>']
        lines.append(f'<th class="grammar-table-cell grammar-table-cell-primary" scope="row">{state}</th>')
        for terminal in terminals:
            if (state, terminal) in conflict_actions:
                content = self._format_conflict(conflict_actions[(state, terminal)])
            else:
                content = self._format_action(action_table.get((state, terminal)))
            lines.append(f'<td class="grammar-table-cell">{content}</td>')
        for non_terminal in non_terminals:
            target_state = goto_table.get((state, non_terminal), '')
            lines.append(f'<td class="grammar-table-cell">{target_state}</td>')
        lines.append('</tr>')
        return '\n'.join(lines)

    def _format_action(self, action: Optional[ParseAction]) -> str:
        if action is None:
            return ''
        text = html.escape(str(action))
        return f'<span class="grammar-action-{action.action_type.value}">{text}</span>'

    def _format_conflict(self, actions: List[str]) -> str:
        formatted = [f'<span class="conflict-action">{html.escape(a)}</span>' for a in actions]
        return '<span class="grammar-action-conflict">' + ' / '.join(formatted) + '</span>'

    def _generate_empty_table_html(self, message: str) -> str:
        return f'<div class="{self.config.error_css_classes}">\n<p>{html.escape(message)}</p>\n</div>'

    def _generate_table_styles(self) -> str:
        css = self.config.table_css_classes
        return f"""
<style>
.{css} {{ border-collapse: collapse; font-family: 'Courier New', monospace; font-size: 12px; }}
.{css} th, .{css} td {{ border: 1px solid #374151; padding: 6px 10px; text-align: center; }}
.{css} th {{ background-color: #111827; color: #60a5fa; }}
.grammar-action-conflict {{ color: #dc2626; font-weight: bold; }}
</style>
"""


class DOTGenerator:
    """Generates DOT (Graphviz) output for LR(0) automata."""

    def __init__(self, config: Optional[VisualizationConfig] = None):
        self.config = config or VisualizationConfig()

    def generate_automaton_dot(self, automaton: SLRAutomaton,
                               title: str = "LR(0) Automaton") -> str:
        """
        Generate DOT format representation of an LR(0) automaton.

        Args:
            automaton: Canonical collection with its transitions
            title: Title for the graph

        Returns:
            DOT format string
        """
        lines = [f'digraph "{self._escape_dot_string(title)}" {{']
        lines.append('  rankdir=LR;')
        lines.append('  node [shape=box, fontname="Courier New", fontsize=9];')
        lines.append('  edge [fontname="Arial", fontsize=9];')

        for state in automaton.states:
            label = self._format_state_label(state)
            if state.state_id == automaton.start_state_id:
                lines.append(f'  state{state.state_id} [label="{label}", style=bold];')
            else:
                lines.append(f'  state{state.state_id} [label="{label}"];')

        for (from_state, symbol), to_state in sorted(automaton.transitions.items()):
            lines.append(f'  state{from_state} -> state{to_state} '
                         f'[label="{self._escape_dot_string(symbol)}"];')

        lines.append('}')
        return '\n'.join(lines)

    def _format_state_label(self, state) -> str:
        if self.config.compact_mode:
            return str(state.state_id)

        items_text = []
        limit = self.config.max_items_per_state
        for i, item in enumerate(sorted(state.items, key=str)):
            if limit and i >= limit:
                items_text.append("...")
                break
            items_text.append(str(item).replace(EPSILON, self.config.epsilon_display))

        label = f"I{state.state_id}\n" + "\n".join(items_text)
        return self._escape_dot_string(label)

    def _escape_dot_string(self, text: str) -> str:
        """Escape a string for use in DOT format."""
        if not text:
            return ""
        text = str(text)
        text = text.replace('\\', '\\\\')
        text = text.replace('"', '\\"')
        text = text.replace('\n', '\\l' if not self.config.compact_mode else '\\n')
        return text


class ErrorMessageFormatter:
    """Formats conflict reports and error messages as HTML."""

    def __init__(self, config: Optional[VisualizationConfig] = None):
        self.config = config or VisualizationConfig()

    def format_error_message(self, message: str) -> str:
        return (f'<div class="{self.config.error_css_classes}">'
                f'<p class="error-text">{html.escape(message)}</p></div>')

    def format_conflict_report(self, conflicts: List[Conflict]) -> str:
        """
        Format an SLR(1) conflict report as HTML.

        Args:
            conflicts: List of Conflict objects

        Returns:
            Formatted HTML conflict report
        """
        if not conflicts:
            return '<div class="no-conflicts">No conflicts detected in the grammar.</div>'

        lines = ['<div class="conflict-report">']
        lines.append(f'<h4>Grammar Conflicts ({len(conflicts)} found)</h4>')
        for i, conflict in enumerate(conflicts, 1):
            lines.append('<div class="conflict-item">')
            lines.append(f'<h5>Conflict {i}: {html.escape(conflict.conflict_type)}</h5>')
            lines.append(f'<p><strong>State:</strong> {conflict.state_id}</p>')
            lines.append(f'<p><strong>Symbol:</strong> {html.escape(conflict.symbol)}</p>')
            lines.append('<ul>')
            for action in conflict.actions:
                lines.append(f'<li>{html.escape(action)}</li>')
            lines.append('</ul>')
            lines.append('</div>')
        lines.append('</div>')
        return '\n'.join(lines)

    def format_ll1_conflict_report(self, conflicts: List[LL1Conflict]) -> str:
        if not conflicts:
            return '<div class="no-conflicts">The grammar is LL(1).</div>'

        lines = ['<div class="conflict-report">']
        lines.append(f'<h4>LL(1) Conflicts ({len(conflicts)} found)</h4>')
        for conflict in conflicts:
            lines.append('<div class="conflict-item">')
            lines.append(f'<h5>M[{html.escape(conflict.non_terminal)}, '
                         f'{html.escape(conflict.symbol)}]</h5>')
            lines.append('<ul>')
            for production in conflict.productions:
                text = _display_production(conflict.non_terminal, production, self.config)
                lines.append(f'<li>{html.escape(text)}</li>')
            lines.append('</ul>')
            lines.append('</div>')
        lines.append('</div>')
        return '\n'.join(lines)


class TextTableRenderer:
    """Plain-text tables for terminals and debug logs."""

    def __init__(self, config: Optional[VisualizationConfig] = None):
        self.config = config or VisualizationConfig()

    def first_follow_table(self, first_sets: Dict[str, Set[str]],
                           follow_sets: Dict[str, Set[str]]) -> str:
        rows = [[nt, _display_set(first, self.config),
                 _display_set(follow_sets.get(nt, set()), self.config)]
                for nt, first in first_sets.items()]
        return tabulate(rows, headers=["Non-terminal", "FIRST", "FOLLOW"],
                        tablefmt=self.config.text_table_format)

    def ll1_table(self, table: Dict[str, Dict[str, List[Production]]],
                  columns: Sequence[str]) -> str:
        rows = []
        for non_terminal, row in table.items():
            cells = [non_terminal]
            for column in columns:
                cells.append(" / ".join(format_production(p) for p in row.get(column, [])))
            rows.append(cells)
        return tabulate(rows, headers=[""] + list(columns), tablefmt=self.config.text_table_format)

    def states_table(self, automaton: SLRAutomaton) -> str:
        rows = []
        for state in automaton.states:
            items = "\n".join(str(item) for item in sorted(state.items, key=str))
            rows.append([state.state_id, items])
        return tabulate(rows, headers=["State", "Items"], tablefmt=self.config.text_table_format)

    def actions_table(self, action_table: Dict[Tuple[int, str], ParseAction],
                      goto_table: Dict[Tuple[int, str], int],
                      terminals: Sequence[str], non_terminals: Sequence[str],
                      state_ids: Iterable[int]) -> str:
        rows = []
        for state in sorted(state_ids):
            row = [state]
            for terminal in terminals:
                action = action_table.get((state, terminal))
                row.append(str(action) if action is not None else "")
            for non_terminal in non_terminals:
                row.append(goto_table.get((state, non_terminal), ""))
            rows.append(row)
        headers = ["State"] + list(terminals) + list(non_terminals)
        return tabulate(rows, headers=headers, tablefmt=self.config.text_table_format)
