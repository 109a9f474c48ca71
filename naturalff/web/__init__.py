"""Flask application factory for the naturalff JSON API."""

import logging
import tempfile
from pathlib import Path

from flask import Flask, jsonify

logger = logging.getLogger(__name__)

DEFAULT_MAX_UPLOAD_MB = 2048


def create_app(work_dir: Path | None = None, max_upload_mb: int = DEFAULT_MAX_UPLOAD_MB) -> Flask:
    app = Flask(__name__)
    app.config["WORK_DIR"] = work_dir or Path(tempfile.mkdtemp(prefix="naturalff_"))
    app.config["MAX_CONTENT_LENGTH"] = max_upload_mb * 1024 * 1024
    logger.debug("Probe uploads go to %s", app.config["WORK_DIR"])

    from naturalff.web.routes import bp
    app.register_blueprint(bp)

    # Every response is JSON, errors included.
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def request_entity_too_large(error):
        return jsonify({"error": f"Upload exceeds {max_upload_mb} MB"}), 413

    return app
