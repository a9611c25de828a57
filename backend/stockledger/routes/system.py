# Overview: Flask API routes for service health.

from flask import Blueprint, jsonify
from sqlalchemy import text

from ..extensions import db

system_bp = Blueprint("system", __name__, url_prefix="/api")


@system_bp.get("/health")
def health():
    """Liveness plus a trivial database round-trip."""
    db.session.execute(text("SELECT 1"))
    return jsonify({"status": "ok"})
