"""Browser-facing HTTP API for the virtual shell.

This package provides a Flask application that exposes one ``Shell``
session over JSON.  It is an **optional** extra — install with::

    pip install py-vsh[web]

The ``create_app`` factory in ``app.py`` creates (or adopts) a shell
and serves three endpoints:

- ``POST /api/exec`` — run a line of shell syntax and return its result.
- ``GET /api/status`` — working directory and session counters.
- ``GET /api/log`` — the session audit log.
"""
