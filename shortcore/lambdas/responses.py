"""API Gateway (Lambda proxy) response builders

Every body carries a `message`; error bodies also carry the `errorCode` of
the exception behind them.
"""

import json
from typing import Any, Optional

from shortcore.types import LambdaResponse


RETRY_AFTER_SECONDS = 1


def _response(status_code: int, body: dict[str, Any], headers: Optional[dict[str, str]] = None) -> LambdaResponse:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json', **(headers or {})},
        'body': json.dumps(body),
    }


def _error(status_code: int, base: str, message: Optional[str], error_code: Optional[str], headers: Optional[dict[str, str]] = None) -> LambdaResponse:
    body = {'message': base if not message else f'{base} ({message})'}
    if error_code:
        body['errorCode'] = error_code
    return _response(status_code, body, headers)


def response_201(**body: Any) -> LambdaResponse:
    return _response(201, body)


def response_302(*, location: str) -> LambdaResponse:
    return {
        'statusCode': 302,
        'headers': {'Location': location},
        'body': json.dumps({}),  # no body needed for redirects
    }


def response_400(message: Optional[str] = None, error_code: Optional[str] = None) -> LambdaResponse:
    return _error(400, 'Bad Request', message, error_code)


def response_404(message: Optional[str] = None, error_code: Optional[str] = None) -> LambdaResponse:
    return _error(404, 'Not Found', message, error_code)


def response_409(message: Optional[str] = None, error_code: Optional[str] = None) -> LambdaResponse:
    return _error(409, 'Conflict', message, error_code)


def response_500(message: Optional[str] = None, error_code: Optional[str] = None) -> LambdaResponse:
    return _error(500, 'Internal Server Error', message, error_code)


def response_503(message: Optional[str] = None, error_code: Optional[str] = None, retry_after: int = RETRY_AFTER_SECONDS) -> LambdaResponse:
    return _error(503, 'Service Unavailable', message, error_code, headers={'Retry-After': str(retry_after)})
