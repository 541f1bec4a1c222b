from datetime import datetime

from flask import Blueprint, current_app, jsonify, request

from codeprobe.engine.facade import get_service
from codeprobe.schemas import Language
from codeprobe.utils.logger import setup_logger
from codeprobe.utils.metrics import get_metrics_collector

logger = setup_logger(__name__)

system_bp = Blueprint("system_bp", __name__, url_prefix="/api")


def check_engine_health():
    """Report which languages run for real and which are simulated"""
    service = current_app.extensions.get('codeprobe') or get_service()
    strategies = {language.value: service.strategy_for(language).name for language in Language}
    executable = [lang for lang, name in strategies.items() if name.startswith('executable')]

    return {
        'status': 'healthy' if executable else 'degraded',
        'executable_languages': executable,
        'strategies': strategies
    }


@system_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint; ?detailed=true adds metrics"""
    detailed = request.args.get('detailed', 'false').lower() == 'true'

    engine_health = check_engine_health()
    response = {
        'status': engine_health['status'],
        'timestamp': datetime.now().isoformat(),
        'engine': engine_health
    }

    if detailed:
        response['metrics'] = get_metrics_collector().get_all_stats()

    return jsonify(response), 200
