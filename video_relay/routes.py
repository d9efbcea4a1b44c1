from pathlib import Path

from flask import Blueprint, abort, current_app, jsonify, request, send_from_directory

from .extensions import limiter

api = Blueprint("api", __name__)


def _relay():
    return current_app.extensions["video_relay"]


def _body():
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else {}


@api.route("/api/meta", methods=["GET"])
def api_meta():
    return jsonify(_relay().meta())


@api.route("/api/generate", methods=["POST"])
@limiter.limit(lambda: current_app.config["GENERATE_RATE_LIMIT"])
def api_generate():
    """
    POST { engineId, prompt, aspectRatio?, seed?, lengthSeconds|duration?,
           promptImage?, promptImageName?, model?, size|resolution? }
    Returns: { "jobId": "..." }
    """
    job = _relay().generate(_body())
    return jsonify({"jobId": job.id})


@api.route("/api/status/<job_id>", methods=["GET"])
@limiter.limit(lambda: current_app.config["STATUS_RATE_LIMIT"])
def api_status(job_id: str):
    job = _relay().refresh(job_id)
    return jsonify(job.to_dict())


@api.route("/api/jobs", methods=["GET"])
def api_jobs():
    return jsonify([job.to_dict() for job in _relay().jobs()])


@api.route("/api/image-to-text", methods=["POST"])
@limiter.limit(lambda: current_app.config["GENERATE_RATE_LIMIT"])
def api_image_to_text():
    """
    POST { image: "data:image/...;base64,...", provider?: "fal-ai"|"openai", model? }
    Returns: { text, provider, model }
    """
    return jsonify(_relay().describe_image(_body()))


@api.route("/downloads/<path:filename>")
@limiter.exempt
def serve_download(filename):
    base = Path(current_app.config["DOWNLOAD_DIR"]).resolve()
    fp = (base / filename).resolve()
    # Prevent path traversal
    if base not in fp.parents or not fp.is_file():
        abort(404)
    return send_from_directory(str(fp.parent), fp.name, as_attachment=False)


@api.route("/")
@limiter.exempt
def health():
    return jsonify({"ok": True})


# Additional health endpoints commonly used by cloud platforms
@api.route("/healthz")
@api.route("/api/health")
@limiter.exempt
def healthz():
    return jsonify({"status": "healthy"})
