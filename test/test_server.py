import unittest

from server import ServerConfig, app
from workflow import GrammarWorkflowManager

EXPRESSION_GRAMMAR = """
E  -> T E'
E' -> + T E' | ε
T  -> ( E ) | n
"""


class WorkflowTest(unittest.TestCase):
  def test_parse_productions(self):
    result = GrammarWorkflowManager(EXPRESSION_GRAMMAR).parse_productions()
    self.assertTrue(result["success"])
    self.assertEqual(result["axiom"], "E")
    self.assertIn("E' -> EPSILON", result["productions"])
    self.assertEqual(result["start_symbols"], ["E", "E'", "T"])
    self.assertEqual(result["grammar_info"]["terminals"], ["(", ")", "+", "n"])
    self.assertEqual(result["grammar_info"]["production_count"], 5)

  def test_syntax_error(self):
    workflow = GrammarWorkflowManager("E -> T\nnot a rule")
    result = workflow.parse_productions()
    self.assertFalse(result["success"])
    self.assertIn("line 2", result["error"])
    self.assertFalse(workflow.build_ll1()["success"])

  def test_analyze(self):
    result = GrammarWorkflowManager("E -> E + n | n").analyze()
    self.assertTrue(result["success"])
    self.assertTrue(result["has_direct_left_recursion"])
    self.assertFalse(result["is_infinite"])

  def test_build_ll1(self):
    result = GrammarWorkflowManager(EXPRESSION_GRAMMAR).build_ll1()
    self.assertTrue(result["is_ll1"])
    self.assertEqual(result["follow_sets"]["E"], ["$", ")"])
    self.assertEqual(result["table"]["E'"]["$"], ["EPSILON"])
    self.assertEqual(result["columns"][-1], "$")
    self.assertEqual(result["conflicts"], [])

  def test_build_slr1(self):
    workflow = GrammarWorkflowManager(EXPRESSION_GRAMMAR)
    result = workflow.build_slr1()
    self.assertTrue(result["is_slr1"])
    self.assertEqual(result["augmented_axiom"], "E''")
    self.assertEqual(len(result["states"]), 11)
    self.assertEqual(result["action"]["2"]["$"], "accept")
    self.assertEqual(result["goto"]["0"]["E"], 2)
    self.assertTrue(result["automaton_dot"].startswith("digraph"))
    # the parsed grammar itself is not augmented
    self.assertEqual(workflow.grammar.axiom, "E")

  def test_transform(self):
    workflow = GrammarWorkflowManager("E -> E + T | T\nT -> n")
    result = workflow.transform(["remove_left_recursion"])
    self.assertTrue(result["success"])
    self.assertEqual(result["rules"]["E"], [["T", "E'"]])
    self.assertEqual(result["grammar"].splitlines()[1], "E' -> + T E' | EPSILON")
    self.assertFalse(workflow.transform(["shuffle"])["success"])
    self.assertEqual(workflow.grammar.rules["E"], [("E", "+", "T"), ("T",)])

  def test_transform_unit_cycle_fails(self):
    result = GrammarWorkflowManager("S -> A\nA -> S").transform(["remove_unit_rules"])
    self.assertFalse(result["success"])
    self.assertIn("cycle", result["error"])

  def test_split_rule(self):
    workflow = GrammarWorkflowManager(EXPRESSION_GRAMMAR)
    self.assertEqual(workflow.split_rule("+TE'")["symbols"], ["+", "T", "E'"])
    self.assertFalse(workflow.split_rule("+x")["success"])

  def test_workflow_state(self):
    workflow = GrammarWorkflowManager(EXPRESSION_GRAMMAR)
    self.assertEqual(workflow.get_workflow_state()["workflow_state"], "initial")
    workflow.build_ll1()
    self.assertEqual(workflow.get_workflow_state()["workflow_state"], "ll1_built")


class ServerTest(unittest.TestCase):
  def setUp(self):
    app.config["TESTING"] = True
    self.client = app.test_client()

  def test_parse_grammar(self):
    response = self.client.post("/parse-grammar", json = {"grammar": EXPRESSION_GRAMMAR})
    self.assertEqual(response.status_code, 200)
    self.assertEqual(response.get_json()["axiom"], "E")

  def test_missing_grammar(self):
    for endpoint in ("/parse-grammar", "/analyze-grammar", "/ll1-table", "/slr1-table",
                     "/transform-grammar", "/split-rule"):
      response = self.client.post(endpoint, json = {})
      self.assertEqual(response.status_code, 400, endpoint)
      self.assertEqual(response.get_json()["error"], "No grammar provided")

  def test_syntax_error_is_bad_request(self):
    response = self.client.post("/ll1-table", json = {"grammar": "-> a"})
    self.assertEqual(response.status_code, 400)
    self.assertFalse(response.get_json()["success"])

  def test_ll1_table(self):
    response = self.client.post("/ll1-table", json = {"grammar": "A -> a A | a"})
    self.assertEqual(response.status_code, 200)
    data = response.get_json()
    self.assertFalse(data["is_ll1"])
    self.assertEqual(len(data["conflicts"]), 1)

  def test_slr1_table_with_axiom(self):
    grammar = "A -> a A | b\nS -> A $"
    response = self.client.post("/slr1-table", json = {"grammar": grammar, "axiom": "S"})
    self.assertEqual(response.status_code, 200)
    data = response.get_json()
    self.assertTrue(data["is_slr1"])
    self.assertEqual(data["augmented_axiom"], "S'")

  def test_transform_grammar(self):
    response = self.client.post("/transform-grammar", json = {
      "grammar": "A -> a b B | a b c\nB -> d", "operations": ["left_factorize"]})
    self.assertEqual(response.status_code, 200)
    self.assertEqual(response.get_json()["rules"]["A"], [["a", "b", "A'"]])
    response = self.client.post("/transform-grammar", json = {"grammar": "A -> a"})
    self.assertEqual(response.status_code, 400)

  def test_split_rule(self):
    response = self.client.post("/split-rule", json = {"grammar": EXPRESSION_GRAMMAR, "rule": "(E)"})
    self.assertEqual(response.get_json()["symbols"], ["(", "E", ")"])
    response = self.client.post("/split-rule", json = {"grammar": EXPRESSION_GRAMMAR, "rule": "zz"})
    self.assertEqual(response.status_code, 400)

  def test_unknown_route(self):
    self.assertEqual(self.client.post("/nothing", json = {}).status_code, 404)


class ServerConfigTest(unittest.TestCase):
  def test_defaults(self):
    config = ServerConfig.from_env({})
    self.assertEqual((config.host, config.port, config.debug, config.log_level),
                     ("127.0.0.1", 5000, False, "INFO"))

  def test_from_env(self):
    config = ServerConfig.from_env({
      "GRAMMAR_SERVER_HOST": "0.0.0.0",
      "GRAMMAR_SERVER_PORT": "8080",
      "GRAMMAR_SERVER_DEBUG": "true",
      "GRAMMAR_SERVER_LOG_LEVEL": "debug",
    })
    self.assertEqual((config.host, config.port, config.debug, config.log_level),
                     ("0.0.0.0", 8080, True, "DEBUG"))


if __name__ == '__main__': unittest.main()
