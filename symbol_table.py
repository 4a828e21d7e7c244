"""
Symbol Table

Keeps track of which grammar symbols are terminals and which are
non-terminals, together with the two reserved symbols every grammar owns:
the end-of-input marker and the empty-string marker.
"""

from typing import Dict, FrozenSet, Optional

EPSILON = "EPSILON"
END_MARKER = "$"
RESERVED_SYMBOLS = (EPSILON, END_MARKER)


class SymbolClassificationError(ValueError):
    """Raised when a symbol is registered as both terminal and non-terminal."""

    def __init__(self, name: str, was_terminal: bool):
        self.name = name
        self.was_terminal = was_terminal
        kind = "terminal" if was_terminal else "non-terminal"
        super().__init__(f"Symbol '{name}' is already registered as a {kind}")


class SymbolTable:
    """Terminal / non-terminal classification of grammar symbols."""

    def __init__(self, symbols: Optional[Dict[str, bool]] = None):
        self._symbols: Dict[str, bool] = {EPSILON: True, END_MARKER: True}
        for name, is_terminal in (symbols or {}).items():
            self.put_symbol(name, is_terminal)

    def put_symbol(self, name: str, is_terminal: bool) -> None:
        """
        Register a symbol with its classification.

        Registering the same symbol again with the same classification is a
        no-op.

        Raises:
            SymbolClassificationError: if the symbol is already known with the
                opposite classification
        """
        known = self._symbols.get(name)
        if known is None:
            self._symbols[name] = is_terminal
        elif known != is_terminal:
            raise SymbolClassificationError(name, known)

    def remove_symbol(self, name: str) -> None:
        if name in RESERVED_SYMBOLS:
            raise ValueError(f"Reserved symbol '{name}' cannot be removed")
        self._symbols.pop(name, None)

    def is_terminal(self, name: str) -> bool:
        return self._symbols.get(name, False)

    def is_terminal_excluding_end_marker(self, name: str) -> bool:
        """True for terminals that are real input tokens (not '$' nor EPSILON)."""
        return name not in RESERVED_SYMBOLS and self.is_terminal(name)

    def is_non_terminal(self, name: str) -> bool:
        return self._symbols.get(name) is False

    def contains(self, name: str) -> bool:
        return name in self._symbols

    def __contains__(self, name: str) -> bool:
        return self.contains(name)

    @property
    def terminals(self) -> FrozenSet[str]:
        return frozenset(name for name, term in self._symbols.items() if term)

    @property
    def input_terminals(self) -> FrozenSet[str]:
        return frozenset(name for name in self._symbols
                         if self.is_terminal_excluding_end_marker(name))

    @property
    def non_terminals(self) -> FrozenSet[str]:
        return frozenset(name for name, term in self._symbols.items() if not term)

    def copy(self) -> 'SymbolTable':
        clone = SymbolTable()
        clone._symbols = dict(self._symbols)
        return clone

    def __repr__(self) -> str:
        return (f"SymbolTable(terminals={sorted(self.terminals)}, "
                f"non_terminals={sorted(self.non_terminals)})")
