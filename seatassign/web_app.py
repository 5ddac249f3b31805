"""
Flask JSON API over the seat allocation engine.
Run: flask --app seatassign.web_app run
Visit: http://localhost:5000

Every request carries its own classrooms and students; nothing is kept
between requests.
"""

import io
import os
import random
import secrets
import logging
from typing import Any, Dict, List, Tuple
from flask import Flask, jsonify, request, send_file
from .models import Allocation, Assignment, Classroom, Student
from .errors import DataFormatError
from .allocator import STRATEGIES, allocate
from .validator import check_feasibility, validate
from .report import generate_print_data
from .excel_exporter import SeatChartExporter
from . import utils

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = os.environ.get("SESSION_SECRET") or secrets.token_hex(16)
app.config["MAX_CONTENT_LENGTH"] = 16 * 1024 * 1024

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _payload() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise DataFormatError("Request body must be a JSON object")
    return data


def _parse_inputs(data: Dict[str, Any]) -> Tuple[List[Classroom], List[Student]]:
    try:
        classrooms = [Classroom.from_dict(c) for c in data.get("classrooms", [])]
        students = [Student.from_dict(s) for s in data.get("students", [])]
    except (KeyError, TypeError) as e:
        raise DataFormatError(f"Malformed classroom or student record: {e}") from e
    return classrooms, students


def _parse_assignments(data: Dict[str, Any]) -> List[Assignment]:
    try:
        if "allocation" in data:
            return Allocation.from_dict(data["allocation"]).assignments
        return [Assignment.from_dict(a) for a in data.get("assignments", [])]
    except (KeyError, TypeError) as e:
        raise DataFormatError(f"Malformed assignment record: {e}") from e


@app.errorhandler(ValueError)
def handle_bad_input(error):
    # InvalidConfiguration and DataFormatError are ValueErrors too
    logger.warning("Rejected request: %s", error)
    return jsonify({"success": False, "error": str(error)}), 400


@app.route("/")
def index():
    return jsonify({
        "success": True,
        "message": "SeatAssign API is running",
        "strategies": list(STRATEGIES),
    })


@app.route("/api/allocate", methods=["POST"])
def api_allocate():
    data = _payload()
    classrooms, students = _parse_inputs(data)
    strategy = data.get("strategy", utils.DEFAULT_STRATEGY)
    if not isinstance(strategy, str):
        raise DataFormatError(f"'strategy' must be a string, got {strategy!r}")
    seed = data.get("seed")
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, (int, str))):
        raise DataFormatError(f"'seed' must be an integer or a string, got {seed!r}")
    rng = random.Random(seed) if seed is not None else None

    allocation = allocate(classrooms, students, strategy=strategy, rng=rng, strict=bool(data.get("strict")))
    report = validate(allocation, students)
    return jsonify({
        "success": True,
        "allocation": allocation.to_dict(),
        "validation": report.to_dict(),
        "feasibility": check_feasibility(classrooms, students).to_dict(),
    })


@app.route("/api/validate", methods=["POST"])
def api_validate():
    data = _payload()
    _, students = _parse_inputs(data)
    if "allocation" not in data:
        raise DataFormatError("Request needs an 'allocation'")
    try:
        allocation = Allocation.from_dict(data["allocation"])
    except (KeyError, TypeError) as e:
        raise DataFormatError(f"Malformed allocation: {e}") from e
    return jsonify({"success": True, "validation": validate(allocation, students).to_dict()})


@app.route("/api/print-layout", methods=["POST"])
def api_print_layout():
    data = _payload()
    classrooms, _ = _parse_inputs(data)
    layouts = generate_print_data(classrooms, _parse_assignments(data))
    return jsonify({"success": True, "layouts": [layout.to_dict() for layout in layouts]})


@app.route("/api/export", methods=["POST"])
def api_export():
    data = _payload()
    classrooms, _ = _parse_inputs(data)
    layouts = generate_print_data(classrooms, _parse_assignments(data))
    if not layouts:
        raise DataFormatError("No seated students to export")

    header = data.get("header")
    buffer = io.BytesIO()
    SeatChartExporter(layouts, header=header if isinstance(header, dict) else None).export(buffer)
    buffer.seek(0)
    return send_file(buffer, mimetype=XLSX_MIMETYPE, as_attachment=True,
                     download_name="master_seating_chart.xlsx")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app.run(debug=True)
