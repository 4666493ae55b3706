# app.py: Flask backend
import traceback

from flask import Flask, jsonify, request

import config
from health_service import load_history, run_full_pipeline
from llm_wrapper import ocr_survey_image
from pydantic_models import ProcessStep

app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = config.MAX_UPLOAD_MB * 1024 * 1024
app.config["ALLOWED_EXTENSIONS"] = {"png", "jpg", "jpeg", "webp"}


def allowed_file(filename):
    return "." in filename and filename.rsplit(".", 1)[1].lower() in app.config["ALLOWED_EXTENSIONS"]


@app.route("/", methods=["GET"])
def index():
    return "Health Risk Profiler: POST /api/health-report with {'input': <survey JSON or text>}"


@app.route("/api/health-report", methods=["POST"])
def health_report():
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict) or data.get("input") is None:
        return jsonify({"error": "Please POST JSON with 'input' field."}), 400

    steps = []
    try:
        report = run_full_pipeline(data["input"], on_step_change=lambda s: steps.append(s.value))
    except Exception as e:
        steps.append(ProcessStep.ERROR.value)
        app.logger.error("pipeline failed: %s\n%s", e, traceback.format_exc())
        return jsonify({"error": f"Processing error: {e}", "steps": steps}), 500

    return jsonify({"report": report.model_dump(mode="json"), "steps": steps})


@app.route("/api/ocr", methods=["POST"])
def ocr():
    file = request.files.get("file")
    if file is None or not file.filename:
        return jsonify({"error": "Please upload an image in the 'file' field."}), 400
    if not allowed_file(file.filename):
        return jsonify({"error": "Unsupported file type."}), 400

    mime_type = file.mimetype or "image/png"
    try:
        text = ocr_survey_image(file.read(), mime_type)
    except ValueError as e:
        return jsonify({"error": f"Error parsing image: {e}"}), 502
    return jsonify({"input": text})


@app.route("/api/history", methods=["GET"])
def history():
    limit = request.args.get("limit", default=config.HISTORY_LIMIT, type=int)
    if limit < 1:
        return jsonify({"error": "'limit' must be a positive integer."}), 400
    return jsonify(load_history(limit))


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000)
