import logging
import os
from dataclasses import dataclass
from typing import Optional

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException

from workflow import GrammarWorkflowManager

logger = logging.getLogger(__name__)

app = Flask(__name__)


# --- Configuration ---
@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 5000
    debug: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ=None) -> 'ServerConfig':
        """Read GRAMMAR_SERVER_* variables, falling back to the defaults."""
        environ = os.environ if environ is None else environ
        return cls(
            host=environ.get("GRAMMAR_SERVER_HOST", cls.host),
            port=int(environ.get("GRAMMAR_SERVER_PORT", cls.port)),
            debug=environ.get("GRAMMAR_SERVER_DEBUG", "").lower() in ("1", "true", "yes", "on"),
            log_level=environ.get("GRAMMAR_SERVER_LOG_LEVEL", cls.log_level).upper(),
        )


# --- Request Helpers ---
def _workflow_from_request() -> Optional[GrammarWorkflowManager]:
    data = request.get_json(silent=True) or {}
    grammar_text = data.get('grammar')
    if not grammar_text:
        return None
    return GrammarWorkflowManager(grammar_text, data.get('axiom') or None)


def _respond(step: str, result: dict):
    if result['success']:
        logger.info("--- %s SUCCEEDED ---", step)
        return jsonify(result)
    logger.info("--- %s FAILED: %s ---", step, result.get('error'))
    return jsonify(result), 400


# --- Flask Endpoints ---

@app.route('/parse-grammar', methods=['POST'])
def parse_grammar():
    """Parse grammar text and return its productions and symbols."""
    workflow = _workflow_from_request()
    if workflow is None:
        return jsonify({"error": "No grammar provided"}), 400
    logger.info("--- Parsing Grammar ---")
    return _respond("Grammar Parsing", workflow.parse_productions())


@app.route('/analyze-grammar', methods=['POST'])
def analyze_grammar():
    """Infinite language, unreachable symbols, left recursion, nullable symbols."""
    workflow = _workflow_from_request()
    if workflow is None:
        return jsonify({"error": "No grammar provided"}), 400
    logger.info("--- Analyzing Grammar ---")
    return _respond("Grammar Analysis", workflow.analyze())


@app.route('/ll1-table', methods=['POST'])
def ll1_table():
    workflow = _workflow_from_request()
    if workflow is None:
        return jsonify({"error": "No grammar provided"}), 400
    logger.info("--- Building LL(1) Table ---")
    return _respond("LL(1) Construction", workflow.build_ll1())


@app.route('/slr1-table', methods=['POST'])
def slr1_table():
    workflow = _workflow_from_request()
    if workflow is None:
        return jsonify({"error": "No grammar provided"}), 400
    logger.info("--- Building SLR(1) Tables ---")
    return _respond("SLR(1) Construction", workflow.build_slr1())


@app.route('/transform-grammar', methods=['POST'])
def transform_grammar():
    """
    Apply grammar transformations in the requested order.

    Expects {"grammar": ..., "operations": ["left_factorize", ...]}.
    """
    workflow = _workflow_from_request()
    if workflow is None:
        return jsonify({"error": "No grammar provided"}), 400
    operations = (request.get_json(silent=True) or {}).get('operations')
    if not operations or not isinstance(operations, list):
        return jsonify({"error": "No operations provided"}), 400
    logger.info("--- Transforming Grammar: %s ---", ", ".join(map(str, operations)))
    return _respond("Grammar Transformation", workflow.transform(operations))


@app.route('/split-rule', methods=['POST'])
def split_rule():
    """Split a separator-free rule body ({"rule": "AaB"}) into grammar symbols."""
    workflow = _workflow_from_request()
    if workflow is None:
        return jsonify({"error": "No grammar provided"}), 400
    rule = (request.get_json(silent=True) or {}).get('rule')
    if not rule:
        return jsonify({"error": "No rule provided"}), 400
    logger.info("--- Splitting Rule '%s' ---", rule)
    return _respond("Rule Splitting", workflow.split_rule(rule))


@app.errorhandler(Exception)
def handle_unexpected_error(error):
    if isinstance(error, HTTPException):
        return error
    logger.exception("--- Python Error: %s ---", error)
    return jsonify({"error": str(error)}), 500


if __name__ == '__main__':
    config = ServerConfig.from_env()
    logging.basicConfig(level=config.log_level,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logger.info("Starting grammar server on %s:%d", config.host, config.port)
    app.run(debug=config.debug, host=config.host, port=config.port, use_reloader=False)
