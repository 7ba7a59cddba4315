"""Flask application factory for the shell's HTTP API.

Each request runs on Flask's synchronous worker, so the async engine is
driven with ``asyncio.run`` per call.  One shell instance backs the
whole app: variables, functions, and files persist between requests.
"""

from __future__ import annotations

import asyncio

from flask import Flask, Response, jsonify, request

from py_vsh.logging import LogLevel
from py_vsh.shell import Shell

_HTTP_BAD_REQUEST = 400


def create_app(shell: Shell | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        shell: The session to expose (default: a fresh ``Shell``).

    Returns:
        A configured Flask application ready to serve.

    """
    session = shell if shell is not None else Shell()

    app = Flask(__name__)

    @app.route("/api/exec", methods=["POST"])
    def execute() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Execute a line of shell syntax and return JSON output.

        Expects JSON body: ``{"command": "..."}``

        Returns:
            JSON with ``stdout``, ``stderr`` and ``exit_code`` fields.

        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not isinstance(data.get("command"), str):  # pyright: ignore[reportUnknownMemberType]
            return jsonify({"error": "Missing 'command' field"}), _HTTP_BAD_REQUEST

        command: str = data["command"]
        result = asyncio.run(session.exec(command))
        return jsonify(
            {"stdout": result.stdout, "stderr": result.stderr, "exit_code": result.exit_code}
        )

    @app.route("/api/status")
    def status() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the session's working directory and counters."""
        return jsonify(
            {
                "cwd": session.cwd,
                "variables": len(session.env),
                "functions": len(session.function_names),
            }
        )

    @app.route("/api/log")
    def log() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return audit log entries, optionally filtered by ``?level=WARNING``."""
        level_name = request.args.get("level", "DEBUG").upper()
        min_level = LogLevel[level_name] if level_name in LogLevel.__members__ else LogLevel.DEBUG
        entries = session.logger.filter(min_level=min_level)
        return jsonify([str(entry) for entry in entries])

    return app


def main() -> None:
    """Run the development server.

    This is the ``py-vsh-web`` console entry point.
    """
    app = create_app()
    app.run(debug=True, port=8080)
