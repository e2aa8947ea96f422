#!/usr/bin/env python3
"""SiteBuilder - HTTP API for the website generation pipeline."""

import io
import logging
import os
import threading
import time

from flask import Flask, jsonify, request, send_file

from agents.analyzer import render_order
from core.orchestrator import Orchestrator
from core.state import ComponentArtifact, GenerationRequest
from core.store import PersistenceStore, StorageError
from utils.llm import LLMClient

log = logging.getLogger(__name__)

app = Flask(__name__)
store = PersistenceStore()
orchestrator = None  # built on first use so the server starts without an API key

# Generation jobs keyed by session id: {id: {"status": ..., "summary": ..., "created": timestamp}}
_jobs = {}
_jobs_lock = threading.Lock()
_MAX_JOBS = 50  # prevent unbounded memory growth
_JOB_TTL = 3600  # expire jobs after 1 hour

_NO_CACHE = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def get_orchestrator():
    global orchestrator
    if orchestrator is None:
        orchestrator = Orchestrator(LLMClient(), store=store)
    return orchestrator


def _cleanup_jobs():
    """Remove expired jobs. Called under _jobs_lock."""
    now = time.time()
    expired = [sid for sid, job in _jobs.items() if now - job["created"] > _JOB_TTL]
    for sid in expired:
        del _jobs[sid]
    # If still over limit, remove oldest
    if len(_jobs) > _MAX_JOBS:
        by_age = sorted(_jobs.items(), key=lambda x: x[1]["created"])
        for sid, _ in by_age[:len(_jobs) - _MAX_JOBS]:
            del _jobs[sid]


def _set_job(session_id, **fields):
    with _jobs_lock:
        if session_id not in _jobs:
            _cleanup_jobs()
            _jobs[session_id] = {"status": "running", "summary": None, "created": time.time()}
        _jobs[session_id].update(fields)


def _get_job(session_id):
    with _jobs_lock:
        job = _jobs.get(session_id)
        return dict(job) if job else None


def _run_generation(orch, session_id, plan, gen_request):
    """Background thread body: the serial generation loop for one session."""
    try:
        summary = orch.generate(session_id, plan, gen_request)
    except Exception as e:  # keep the job registry truthful; the thread has no caller
        log.exception("Generation failed for session %s", session_id)
        _set_job(session_id, status="failed", error=str(e))
        return
    _set_job(session_id, status=summary.status, summary=summary.to_dict())


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def _error(message, status):
    return jsonify({"success": False, "error": message}), status


@app.route("/api/analyze-components", methods=["POST"])
def api_analyze_components():
    data = _json_body()
    if not data or not isinstance(data.get("userInput"), dict):
        return _error("Missing userInput", 400)

    gen_request = GenerationRequest.from_payload(data["userInput"])
    try:
        orch = get_orchestrator()
    except RuntimeError as e:
        return _error(str(e), 503)
    plan = orch.plan(gen_request)
    return jsonify({"success": True, "data": plan.to_dict()})


@app.route("/api/generate-website", methods=["POST"])
def api_generate_website():
    """Plan, then run generation in the background; poll manage-files for results."""
    data = _json_body()
    if not data or not isinstance(data.get("userInput"), dict):
        return _error("Missing userInput", 400)

    gen_request = GenerationRequest.from_payload(data["userInput"])
    try:
        orch = get_orchestrator()
    except RuntimeError as e:
        return _error(str(e), 503)
    plan = orch.plan(gen_request)
    try:
        session_id = orch.start_session()
    except StorageError as e:
        return _error(str(e), 500)

    _set_job(session_id, status="running", components=list(plan.components))
    thread = threading.Thread(
        target=_run_generation,
        args=(orch, session_id, plan, gen_request),
        name=f"generate-{session_id}",
        daemon=True,
    )
    thread.start()

    return jsonify({
        "success": True,
        "data": {
            "userId": session_id,
            "expectedCount": plan.expected_count,
            "components": list(plan.components),
            "filesLocation": f"/generated/{session_id}/",
        },
    })


@app.route("/api/manage-files", methods=["POST"])
def api_manage_files():
    data = _json_body()
    if not data:
        return _error("Missing request body", 400)
    action = data.get("action")
    session_id = data.get("userId")
    if not session_id:
        return _error("Missing userId", 400)

    try:
        if action == "createFolder":
            store.create(session_id)
            body = {"success": True, "message": "Folder created", "userId": session_id}

        elif action == "saveComponent":
            component_id = data.get("componentName")
            files = data.get("files")
            if not component_id or not isinstance(files, dict):
                return _error("Missing componentName or files", 400)
            artifact = ComponentArtifact.from_files(component_id, files)
            written = store.write(session_id, component_id, artifact)
            body = {"success": True, "message": f"Component {component_id} saved", "files": written}

        elif action == "getFiles":
            components = store.read_all(session_id)
            body = {
                "success": True,
                "files": {cid: artifact.files() for cid, artifact in components.items()},
                "components": render_order(list(components)),
            }

        else:
            return _error(f"Unknown action: {action}", 400)
    except ValueError as e:
        return _error(str(e), 400)
    except StorageError as e:
        log.error("manage-files %s failed for %s: %s", action, session_id, e)
        return _error(str(e), 500)

    return jsonify(body), 200, _NO_CACHE


@app.route("/api/process-chat-message", methods=["POST"])
def api_process_chat_message():
    data = _json_body()
    if not data or not str(data.get("message") or "").strip():
        return _error("Missing message", 400)

    message = data["message"]
    known = [c for c in data.get("completedComponents") or [] if isinstance(c, str)]
    user_input = data.get("userInput")
    gen_request = GenerationRequest.from_payload(user_input if isinstance(user_input, dict) else None)
    session_id = data.get("userId") or None
    current_files = data.get("currentFiles")
    if not isinstance(current_files, dict):
        current_files = {}

    try:
        current = {
            cid: ComponentArtifact.from_files(cid, files)
            for cid, files in current_files.items()
            if isinstance(files, dict)
        }
    except ValueError as e:
        return _error(str(e), 400)

    try:
        reply = get_orchestrator().patch(
            message, gen_request,
            session_id=session_id,
            known_components=known or None,
            current_files=current or None,
        )
    except ValueError as e:
        return _error(str(e), 400)
    except Exception:  # the chat panel always gets a usable answer
        log.exception("Chat processing failed")
        listed = ", ".join(known) or "none yet"
        return jsonify({
            "content": (
                "Sorry, I ran into a problem processing that request. "
                f"Available components: {listed}. "
                "You can also switch to Edit Mode to change the code directly."
            ),
            "componentTarget": None,
            "changeType": None,
            "updatedCode": None,
        })

    return jsonify(reply.to_dict())


@app.route("/api/download-website")
def api_download_website():
    session_id = request.args.get("userId")
    if not session_id:
        return _error("Missing userId", 400)
    try:
        data = store.archive(session_id)
    except ValueError as e:
        return _error(str(e), 400)
    except FileNotFoundError:
        return _error("Website not found", 404)

    return send_file(
        io.BytesIO(data),
        mimetype="application/zip",
        as_attachment=True,
        download_name=f"website-{session_id}.zip",
    )


@app.route("/api/status/<session_id>")
def api_status(session_id):
    """Generation status for a session plus what has been persisted so far."""
    try:
        persisted = render_order(list(store.read_all(session_id)))
    except ValueError as e:
        return _error(str(e), 400)

    job = _get_job(session_id)
    if job is None and not store.exists(session_id):
        return _error("Session not found", 404)

    result = {
        "success": True,
        "userId": session_id,
        "status": job["status"] if job else "unknown",
        "persisted": persisted,
    }
    if job:
        result["components"] = job.get("components", [])
        if job.get("summary"):
            result["summary"] = job["summary"]
        if job.get("error"):
            result["error"] = job["error"]
    return jsonify(result), 200, _NO_CACHE


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    port = int(os.environ.get("PORT", 5001))
    print(f"SiteBuilder running at http://localhost:{port}")
    app.run(debug=False, port=port, threaded=True)
