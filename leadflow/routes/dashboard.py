"""
Dashboard routes — health check and pipeline stats API.
"""
import logging
from flask import Blueprint, jsonify

from leadflow.services import leads as lead_service

logger = logging.getLogger('routes.dashboard')

bp = Blueprint('dashboard', __name__)


@bp.route('/health')
def health_check():
    """Health check endpoint."""
    return jsonify({"status": "healthy"}), 200


@bp.route('/api/stats')
def get_stats():
    """Lead counts per segment, archived count, open task count."""
    try:
        return jsonify(lead_service.pipeline_stats())
    except Exception as e:
        logger.error("Failed to compute pipeline stats", exc_info=True)
        return jsonify({'error': str(e)}), 500
