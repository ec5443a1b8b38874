import logging
import os

from flask import Flask, jsonify, request

from emi_calc.engine import compute
from emi_calc.exceptions import InvalidParameters, LoanCalculationError
from emi_calc.formatter import serialize_result
from emi_calc.utils import spec_from_payload

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONTENT_LENGTH = 1024 * 1024


def _error_response(exc: LoanCalculationError):
    return jsonify({"error": exc.code, "message": exc.message}), 400


def create_app(config=None) -> Flask:
    """Build the Flask application serving the EMI calculator.

    ``EMI_CALC_MAX_CONTENT_LENGTH`` caps the request body size in bytes.
    """
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = int(
        os.environ.get("EMI_CALC_MAX_CONTENT_LENGTH", DEFAULT_MAX_CONTENT_LENGTH)
    )
    if config:
        app.config.update(config)

    @app.errorhandler(LoanCalculationError)
    def handle_calculation_error(exc: LoanCalculationError):
        logger.warning("Loan calculation rejected (%s): %s", exc.code, exc.message)
        return _error_response(exc)

    @app.post("/emi-calculator")
    def calculate_loan():
        payload = request.get_json(silent=True)
        if payload is None:
            raise InvalidParameters("Request body must be a JSON object")
        spec = spec_from_payload(payload)
        result = compute(spec)
        return jsonify(serialize_result(result))

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})

    return app


app = create_app()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    host = os.environ.get("EMI_CALC_HOST", "0.0.0.0")
    port = int(os.environ.get("EMI_CALC_PORT", "8710"))
    print("Starting EMI calculator web app...")
    app.run(host=host, port=port)
