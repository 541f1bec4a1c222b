"""
Test Execution Routes

Handles:
- Running the test execution engine over submitted code
- Listing the supported languages and the strategy each one uses
"""

from flask import Blueprint, current_app, request
from pydantic import ValidationError

from codeprobe.engine.facade import get_service
from codeprobe.schemas import ExecuteTestsRequest, Language
from codeprobe.utils.api_response import APIResponse, ErrorCodes
from codeprobe.utils.logger import setup_logger

logger = setup_logger(__name__)

execution_bp = Blueprint("execution_bp", __name__, url_prefix="/api")


def _service():
    return current_app.extensions.get('codeprobe') or get_service()


@execution_bp.route('/execute-tests', methods=['POST'])
def execute_tests():
    """
    Run the test strategy for the submitted code.

    Body: {"code": "...", "language": "python", "role": "developer"}
    Returns the camelCase TestReport under "data".
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return APIResponse.error(
            message='Request body must be a JSON object',
            error_code=ErrorCodes.BAD_REQUEST,
            status_code=400
        )

    try:
        data = ExecuteTestsRequest(**payload)
    except ValidationError as ve:
        return APIResponse.error(
            message='Invalid request body',
            error_code=ErrorCodes.VALIDATION_ERROR,
            details=ve.errors(include_url=False, include_context=False),
            status_code=400
        )

    report = _service().execute_tests(data.code, data.language, data.role or 'developer')
    return APIResponse.success(data=report.to_dict())


@execution_bp.route('/execute-tests/languages', methods=['GET'])
def list_languages():
    """Supported languages and the strategy registered for each."""
    service = _service()
    languages = [
        {'language': language.value, 'strategy': service.strategy_for(language).name}
        for language in Language
    ]
    return APIResponse.success(data={'languages': languages})
