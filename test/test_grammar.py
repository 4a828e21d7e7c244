import unittest

from grammar import EPSILON_PRODUCTION, Grammar, GrammarProcessor, GrammarSyntaxError
from symbol_table import END_MARKER, EPSILON, SymbolClassificationError, SymbolTable


class SymbolTableTest(unittest.TestCase):
  def test_reserved_symbols_are_terminals(self):
    st = SymbolTable()
    self.assertTrue(st.is_terminal(EPSILON))
    self.assertTrue(st.is_terminal(END_MARKER))
    self.assertFalse(st.is_terminal_excluding_end_marker(END_MARKER))
    self.assertFalse(st.is_terminal_excluding_end_marker(EPSILON))

  def test_put_symbol(self):
    st = SymbolTable()
    st.put_symbol("a", True)
    st.put_symbol("A", False)
    st.put_symbol("a", True)
    self.assertTrue(st.contains("a"))
    self.assertTrue(st.is_terminal("a"))
    self.assertTrue(st.is_terminal_excluding_end_marker("a"))
    self.assertFalse(st.is_terminal("A"))
    self.assertTrue(st.is_non_terminal("A"))
    self.assertFalse(st.contains("b"))
    self.assertEqual(st.input_terminals, frozenset({"a"}))
    self.assertEqual(st.non_terminals, frozenset({"A"}))

  def test_contradicting_classification(self):
    st = SymbolTable({"a": True})
    with self.assertRaises(SymbolClassificationError):
      st.put_symbol("a", False)

  def test_reserved_symbols_cannot_be_removed(self):
    st = SymbolTable({"a": True})
    st.remove_symbol("a")
    self.assertFalse(st.contains("a"))
    with self.assertRaises(ValueError):
      st.remove_symbol(END_MARKER)


class GrammarTest(unittest.TestCase):
  def expression_grammar(self):
    return Grammar({
      "E" : [["T", "E'"]],
      "E'": [["+", "T", "E'"], [EPSILON]],
      "T" : [["(", "E", ")"], ["n"]],
    })

  def test_classification(self):
    g = self.expression_grammar()
    self.assertEqual(g.axiom, "E")
    self.assertEqual(g.non_terminals, frozenset({"E", "E'", "T"}))
    self.assertEqual(g.st.input_terminals, frozenset({"+", "(", ")", "n"}))
    self.assertTrue(g.st.is_terminal(EPSILON))

  def test_lowercase_key_is_non_terminal(self):
    g = Grammar({"s": [["a"]]})
    self.assertTrue(g.st.is_non_terminal("s"))

  def test_explicit_axiom(self):
    g = Grammar({"A": [["a"]], "S": [["A", "$"]]}, axiom = "S")
    self.assertEqual(g.axiom, "S")
    with self.assertRaises(ValueError):
      g.set_axiom("Z")

  def test_rules_are_not_overwritten(self):
    g = Grammar({"S": [["a", "S"], ["b"]]})
    self.assertEqual(g.rules["S"], [("a", "S"), ("b",)])

  def test_add_production_registers_symbols(self):
    g = Grammar({"S": [["a"]]})
    stored = g.add_production("S", ["B", "c"])
    g.add_production("S", [])
    self.assertEqual(stored, ("B", "c"))
    self.assertTrue(g.st.is_non_terminal("B"))
    self.assertTrue(g.st.is_terminal("c"))
    self.assertEqual(g.rules["S"][-1], EPSILON_PRODUCTION)

  def test_has_empty_production(self):
    g = self.expression_grammar()
    self.assertTrue(g.has_empty_production("E'"))
    self.assertFalse(g.has_empty_production("E"))
    with self.assertRaises(KeyError):
      g.has_empty_production("Z")

  def test_filter_rules_by_consequent(self):
    g = self.expression_grammar()
    self.assertEqual(g.filter_rules_by_consequent("E"), [("T", ("(", "E", ")"))])
    self.assertEqual(g.filter_rules_by_consequent("T"),
                     [("E", ("T", "E'")), ("E'", ("+", "T", "E'"))])

  def test_has_left_recursion(self):
    self.assertTrue(Grammar.has_left_recursion("A", ("A", "a")))
    self.assertFalse(Grammar.has_left_recursion("A", ("a", "A")))

  def test_generate_new_non_terminal(self):
    g = self.expression_grammar()
    self.assertEqual(g.generate_new_non_terminal("T"), "T'")
    self.assertEqual(g.generate_new_non_terminal("E"), "E'1")

  def test_augmented_grammar(self):
    g = Grammar({"S": [["a", "S"], ["b"]]})
    new_axiom = g.transform_to_augmented_grammar()
    self.assertEqual(new_axiom, "S'")
    self.assertEqual(g.axiom, "S'")
    self.assertEqual(g.rules["S'"], [("S",)])
    self.assertEqual(list(g.rules)[0], "S'")
    self.assertTrue(g.is_augmented)
    self.assertEqual(g.transform_to_augmented_grammar(), "S''")

  def test_augmented_name_avoids_existing_symbols(self):
    g = self.expression_grammar()
    self.assertEqual(g.transform_to_augmented_grammar(), "E''")

  def test_copy_does_not_alias(self):
    g = self.expression_grammar()
    clone = g.copy()
    clone.add_production("T", ["id"])
    self.assertEqual(len(g.rules["T"]), 2)
    self.assertFalse(g.st.contains("id"))
    self.assertNotEqual(g, clone)

  def test_str(self):
    g = Grammar({"S": [["a", "S"], [EPSILON]]})
    self.assertEqual(str(g), "S -> a S | EPSILON")


class SplitTest(unittest.TestCase):
  def test_split(self):
    g = Grammar({"S": [["A", "a", "B"]], "A": [["a"]], "B": [["b"]]})
    self.assertEqual(g.split("AaB"), ["A", "a", "B"])
    self.assertEqual(g.split("aab"), ["a", "a", "b"])

  def test_split_longest_match(self):
    g = Grammar({
      "E" : [["T", "E'"]],
      "E'": [["+", "T", "E'"], [EPSILON]],
      "T" : [["n"]],
    })
    self.assertEqual(g.split("TE'"), ["T", "E'"])
    self.assertEqual(g.split("+TE'"), ["+", "T", "E'"])

  def test_split_epsilon(self):
    g = Grammar({"S": [["a"]]})
    self.assertEqual(g.split(EPSILON), [EPSILON])

  def test_split_failure(self):
    g = Grammar({"S": [["A", "a"]], "A": [["a"]]})
    self.assertEqual(g.split("Ax"), [])
    self.assertEqual(g.split("x"), [])

  def test_split_greedy_dead_end(self):
    # "a" + "bc" would work, but "ab" is taken first.
    g = Grammar({"S": [["ab", "a", "bc"]]})
    self.assertEqual(g.split("abc"), [])
    self.assertEqual(g.split("abbc"), ["ab", "bc"])

  def test_split_round_trip(self):
    g = Grammar({"S": [["A", "b", "C"]], "A": [["a"]], "C": [["c"]]})
    for symbols in (["A", "b", "C"], ["C", "C", "a"], ["b"]):
      self.assertEqual(g.split("".join(symbols)), symbols)


class GrammarProcessorTest(unittest.TestCase):
  def test_parse_grammar(self):
    g = GrammarProcessor().parse_grammar("""
      # expression grammar
      E  -> T E'
      E' -> + T E' | ε
      T  -> ( E )
          | n
    """)
    self.assertEqual(g.axiom, "E")
    self.assertEqual(g.rules["E'"], [("+", "T", "E'"), (EPSILON,)])
    self.assertEqual(g.rules["T"], [("(", "E", ")"), ("n",)])

  def test_parse_grammar_with_axiom_and_repeated_antecedent(self):
    g = GrammarProcessor().parse_grammar("A -> a\nS -> A $\nA -> EPSILON", axiom = "S")
    self.assertEqual(g.axiom, "S")
    self.assertEqual(g.rules["A"], [("a",), (EPSILON,)])

  def test_comment_markers_inside_symbols(self):
    g = GrammarProcessor().parse_grammar("S -> c# S | a//b   # trailing\n// whole line\n  | d // note")
    self.assertEqual(g.rules["S"], [("c#", "S"), ("a//b",), ("d",)])

  def test_empty_alternative_is_epsilon(self):
    g = GrammarProcessor().parse_grammar("S → a S |")
    self.assertEqual(g.rules["S"], [("a", "S"), (EPSILON,)])

  def test_syntax_errors(self):
    processor = GrammarProcessor()
    with self.assertRaises(GrammarSyntaxError) as ctx:
      processor.parse_grammar("S -> a\nthis is not a rule")
    self.assertEqual(ctx.exception.line_number, 2)
    with self.assertRaises(GrammarSyntaxError):
      processor.parse_grammar("   \n# nothing\n")
    with self.assertRaises(GrammarSyntaxError):
      processor.parse_grammar("S -> a", axiom = "A")
    with self.assertRaises(GrammarSyntaxError):
      processor.parse_grammar("| a")


if __name__ == '__main__': unittest.main()
