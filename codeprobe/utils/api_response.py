"""
Standardized API response format for the HTTP adapter.

Every response carries the same envelope:
{
    "success": true/false,
    "timestamp": "...Z",
    "data": {...},      # success responses
    "error": {...}      # error responses
}
"""

from datetime import datetime, timezone
from typing import Any

from flask import jsonify


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%f') + 'Z'


class APIResponse:
    """Standardized API response builder."""

    @staticmethod
    def success(data: Any = None, message: str = None, status_code: int = 200):
        """
        Create a success response.

        Example:
            return APIResponse.success(data=report.to_dict())
        """
        response = {
            'success': True,
            'timestamp': _timestamp()
        }

        if message:
            response['message'] = message

        if data is not None:
            response['data'] = data

        return jsonify(response), status_code

    @staticmethod
    def error(message: str, error_code: str = None, details: Any = None, status_code: int = 400):
        """
        Create an error response.

        Example:
            return APIResponse.error(
                message='Invalid request body',
                error_code=ErrorCodes.VALIDATION_ERROR,
                status_code=400
            )
        """
        response = {
            'success': False,
            'timestamp': _timestamp(),
            'error': {
                'message': message
            }
        }

        if error_code:
            response['error']['code'] = error_code

        if details:
            response['error']['details'] = details

        return jsonify(response), status_code


class ErrorCodes:
    """Machine-readable error codes used by the adapter."""

    BAD_REQUEST = 'BAD_REQUEST'
    VALIDATION_ERROR = 'VALIDATION_ERROR'
    NOT_FOUND = 'NOT_FOUND'
    METHOD_NOT_ALLOWED = 'METHOD_NOT_ALLOWED'
    INTERNAL_SERVER_ERROR = 'INTERNAL_SERVER_ERROR'
