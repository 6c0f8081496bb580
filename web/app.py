"""
Quote Digest - Web Surface

A thin Flask layer over the engine: signup, unsubscribe, quote
submission, random quote, manual digest trigger, health, and the static
landing page.

Run with: python main.py --serve
Or: python -m web.app
"""

import logging
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from flask import Flask, jsonify, request, send_from_directory

from quotedigest.config import Settings
from quotedigest.engine import QuoteDigestEngine
from quotedigest.errors import (
    AlreadySubscribed,
    NoSubscribers,
    NotFound,
    NotSubscribed,
    QueueUnavailable,
    StorageError,
    ValidationError,
)
from quotedigest.subscriptions import SUBSCRIBED

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"


def _error(kind: str, message: str, status: int):
    return jsonify({"error": kind, "message": message}), status


def _json_body() -> dict:
    """Request body as a JSON object; a missing or unparseable body reads as empty."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    return data


def create_app(engine: QuoteDigestEngine = None) -> Flask:
    """
    Build the Flask app around an engine.

    Args:
        engine: Engine to serve. Defaults to one built from the environment.
    """
    app = Flask(__name__, static_folder=str(STATIC_DIR), static_url_path="")
    app.config["ENGINE"] = engine or QuoteDigestEngine(Settings.from_env())

    def get_engine() -> QuoteDigestEngine:
        return app.config["ENGINE"]

    @app.errorhandler(ValidationError)
    def handle_validation(e):
        return _error("ValidationError", str(e), 400)

    @app.errorhandler(StorageError)
    def handle_storage(e):
        logger.error("Storage error: %s", e)
        return _error("StorageError", "storage unavailable", 503)

    @app.route("/")
    def index():
        """Landing page."""
        return send_from_directory(STATIC_DIR, "index.html")

    @app.route("/health")
    def health():
        return jsonify(get_engine().health())

    @app.route("/signup", methods=["POST"])
    def signup():
        data = _json_body()
        try:
            status = get_engine().subscribe(data.get("email", ""))
        except AlreadySubscribed as e:
            return jsonify({"status": "already_subscribed", "message": str(e)}), 200

        return jsonify({"status": status}), 201 if status == SUBSCRIBED else 200

    @app.route("/unsubscribe", methods=["POST"])
    def unsubscribe():
        data = _json_body()
        try:
            get_engine().unsubscribe(data.get("email", ""))
        except NotSubscribed as e:
            return _error("NotSubscribed", str(e), 404)

        return jsonify({"status": "unsubscribed"})

    @app.route("/submit", methods=["POST"])
    def submit():
        data = _json_body()
        quote = get_engine().submit_quote(
            data.get("text", ""),
            data.get("author", ""),
            data.get("area", ""),
        )
        return jsonify({"status": "submitted", "index": quote.index}), 201

    @app.route("/quote/random")
    def random_quote():
        try:
            quote = get_engine().pick_random_approved()
        except NotFound as e:
            return _error(type(e).__name__, str(e), 404)

        return jsonify({
            "text": quote.text,
            "author": quote.author,
            "area": quote.area,
            "index": quote.index,
        })

    @app.route("/send-digest", methods=["POST"])
    def send_digest():
        """Manually trigger a digest run for all active subscribers."""
        try:
            count = get_engine().trigger_digest()
        except NoSubscribers:
            return jsonify({"enqueued": 0, "message": "no subscribers"}), 200
        except QueueUnavailable as e:
            return _error("QueueUnavailable", str(e), 503)

        return jsonify({"enqueued": count}), 202

    return app


if __name__ == "__main__":
    from quotedigest.logging_setup import configure_logging

    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.debug)
    engine = QuoteDigestEngine(settings)
    engine.start()
    try:
        create_app(engine).run(host="0.0.0.0", port=settings.port, debug=False)
    finally:
        engine.shutdown()
