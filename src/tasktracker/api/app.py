# src/tasktracker/api/app.py

"""
HTTP adapter (Flask).

Maps requests onto store operations; every store call runs under state.lock.

    GET    /tasks | /epics | /subtasks            list
    POST   /tasks | /epics | /subtasks            create (no id) or update (id)
    DELETE /tasks | /epics | /subtasks            delete all of that kind
    GET    /<kind>/<id>                            get (records a view) / 404
    DELETE /<kind>/<id>                            delete (idempotent)
    GET    /epics/<id>/subtasks                    subtasks of an epic / 404
    GET    /history, GET /prioritized

Conflicts answer 406, unknown epics 404, bad payloads 400.
"""

from __future__ import annotations

import logging
import threading

from flask import Blueprint, Flask, jsonify, request
from werkzeug.exceptions import HTTPException
from werkzeug.serving import BaseWSGIServer, make_server

from ..core.state import AppState
from ..tasks.errors import SchedulingConflictError, TaskReferenceError
from ..tasks.task_models import TaskKind
from .serializers import PayloadError, item_from_json, item_to_json

logger = logging.getLogger(__name__)

_KIND_BY_SEGMENT = {
    "tasks": TaskKind.TASK,
    "epics": TaskKind.EPIC,
    "subtasks": TaskKind.SUBTASK,
}


def _kind_blueprint(state: AppState, segment: str, kind: TaskKind) -> Blueprint:
    bp = Blueprint(segment, __name__)

    @bp.get("")
    def list_items():
        with state.lock:
            items = state.store.list_all(kind)
        return jsonify([item_to_json(i) for i in items]), 200

    @bp.get("/<int:item_id>")
    def get_item(item_id: int):
        with state.lock:
            item = state.store.get_by_id(item_id, kind)
        if item is None:
            return jsonify(error="Requested resource not found"), 404
        return jsonify(item_to_json(item)), 200

    @bp.post("")
    def create_or_update():
        payload = request.get_json(silent=True)
        try:
            item = item_from_json(kind, payload)
        except (PayloadError, ValueError) as e:
            return jsonify(error=str(e)), 400

        try:
            with state.lock:
                if item.id == 0:
                    stored = state.store.create(item)
                    return jsonify(item_to_json(stored)), 201
                applied = state.store.update(item)
        except SchedulingConflictError as e:
            logger.info("Rejected %s: %s", segment, e)
            return jsonify(error="Task overlaps with existing tasks"), 406
        except TaskReferenceError as e:
            return jsonify(error=str(e)), 404

        if not applied:
            return jsonify(error="Requested resource not found"), 404
        return jsonify(message="updated", id=item.id), 201

    @bp.delete("/<int:item_id>")
    def delete_item(item_id: int):
        with state.lock:
            removed = state.store.delete_by_id(item_id, kind)
        return jsonify(deleted=removed, id=item_id), 200

    @bp.delete("")
    def delete_all():
        with state.lock:
            state.store.delete_all(kind)
        return jsonify(deleted="all"), 200

    return bp


def create_app(state: AppState) -> Flask:
    app = Flask(__name__)
    app.json.sort_keys = False  # type: ignore[attr-defined]

    for segment, kind in _KIND_BY_SEGMENT.items():
        app.register_blueprint(_kind_blueprint(state, segment, kind), url_prefix=f"/{segment}")

    @app.get("/epics/<int:epic_id>/subtasks")
    def epic_subtasks(epic_id: int):
        with state.lock:
            if not state.store.has_epic(epic_id):
                return jsonify(error="Requested resource not found"), 404
            subs = state.store.list_subtasks_of_epic(epic_id)
        return jsonify([item_to_json(s) for s in subs]), 200

    @app.get("/history")
    def history():
        with state.lock:
            items = state.store.history_snapshot()
        return jsonify([item_to_json(i) for i in items]), 200

    @app.get("/prioritized")
    def prioritized():
        with state.lock:
            items = state.store.prioritized_snapshot()
        return jsonify([item_to_json(i) for i in items]), 200

    @app.errorhandler(Exception)
    def internal_error(exc: Exception):
        if isinstance(exc, HTTPException):
            return jsonify(error=exc.description), exc.code
        logger.exception("Unhandled error in HTTP handler")
        return jsonify(error="Internal server error"), 500

    return app


class HttpBackgroundRunner:
    """Serves the Flask app from a daemon thread (werkzeug dev server)."""

    def __init__(self, state: AppState, host: str, port: int) -> None:
        self._server: BaseWSGIServer = make_server(host, port, create_app(state), threaded=True)
        self._thread = threading.Thread(
            target=self._server.serve_forever, name="http-adapter", daemon=True
        )

    @property
    def port(self) -> int:
        return self._server.server_port

    def start(self) -> None:
        self._thread.start()
        logger.info("HTTP adapter listening on %s:%s", self._server.host, self.port)

    def stop(self) -> None:
        self._server.shutdown()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout=timeout)


def start_http_in_background(state: AppState) -> HttpBackgroundRunner:
    settings = state.settings
    runner = HttpBackgroundRunner(
        state,
        host=str(getattr(settings, "http_host", "localhost")),
        port=int(getattr(settings, "http_port", 8080)),
    )
    runner.start()
    return runner
