"""
Solution routes — list and install endpoints.

Blueprint: solutions_bp
Prefix: /api

Thin HTTP wrappers over ``solinstall.core.use_cases.install``.

Endpoints:
    GET  /solutions          — registered solutions
    POST /solutions/install  — install one ({"solutionType": "<id>"})
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from solinstall.core.use_cases.install import install_solution

solutions_bp = Blueprint("solutions", __name__)

_STATUS_BY_KIND = {
    "unknown-solution": 400,
    "in-progress": 409,
    "failed": 500,
    "config": 500,
}


@solutions_bp.route("/solutions")
def list_solutions():  # type: ignore[no-untyped-def]
    """Registered solutions with their ports and install kinds."""
    registry = current_app.config["REGISTRY"]
    return jsonify([
        {
            "solutionType": s.identifier,
            "installKind": s.install_kind.value,
            "port": s.port,
            "repoUrl": s.repo_url,
            "branch": s.branch,
        }
        for s in (registry.get(i) for i in registry.identifiers())
    ])


@solutions_bp.route("/solutions/install", methods=["POST"])
def install():  # type: ignore[no-untyped-def]
    """Install a solution; blocks until the pipeline finishes."""
    data = request.get_json(silent=True) or {}
    solution_id = data.get("solutionType")

    result = install_solution(
        solution_id,
        installer=current_app.config["INSTALLER"],
    )
    if result.ok:
        return jsonify(result.to_dict())
    return jsonify(result.to_dict()), _STATUS_BY_KIND.get(result.error_kind or "", 500)
