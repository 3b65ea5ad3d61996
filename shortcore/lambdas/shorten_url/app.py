import json
import logging
from typing import Any

from shortcore.dao.exceptions import DataStoreError
from shortcore.exceptions import (
    AliasTakenError,
    ConfigurationError,
    InfrastructureError,
    InvalidUrlError,
    InvariantViolationError,
    MalformedKeyError,
)
from shortcore.lambdas.responses import response_201, response_400, response_409, response_500, response_503
from shortcore.lambdas.shorten_url.constants import INVALID_JSON_BODY, INVALID_TTL, SHORTEN_SUCCESS
from shortcore.types import LambdaContext, LambdaEvent, LambdaResponse
from shortcore.utils.helpers import get_short_url, guarantee_500_response, to_seconds
from shortcore.wiring import get_service


logger = logging.getLogger(__name__)

FUNCTION_NAME = 'shorten_url'


@guarantee_500_response
def lambda_handler(event: LambdaEvent, context: LambdaContext) -> LambdaResponse:
    """Handle incoming API Gateway requests to shorten URLs

    This Lambda handler follows this procedure to shorten URLs:
    - Step 1: Parse {url, customAlias?, ttl?} from the JSON request body, validate ttl
    - Step 2: Get the (warm) shortener service
    - Step 3: Shorten the URL with a generated key or the custom alias
    - Step 4: Respond with 201 and the new short URL

    HTTP responses:
        201: Mapping created
            key, short_url, target_url, expires_at
        400: Bad client request
            invalid JSON body, invalid URL, malformed alias or invalid ttl
        409: Custom alias already taken
        500: Internal server error
            configuration errors and broken uniqueness invariants
        503: Data store unavailable (retryable)

    Example:
        >>> event = {'body': '{"url": "https://example.com/spring-sale", "customAlias": "promo"}'}
        >>> response = lambda_handler(event, None)
        >>> response['statusCode']
        201
        >>> json.loads(response['body'])['short_url']
        'http://localhost:3000/promo'
    """
    # 1- Parse and validate request body
    try:
        request_body = json.loads(event.get('body') or '{}')
    except json.JSONDecodeError:
        logger.info('Invalid JSON body. Responding with 400.', extra={'event': INVALID_JSON_BODY})
        return response_400(message='invalid JSON body', error_code=INVALID_JSON_BODY)
    if not isinstance(request_body, dict):
        logger.info('JSON body is not an object. Responding with 400.', extra={'event': INVALID_JSON_BODY})
        return response_400(message='JSON body must be an object', error_code=INVALID_JSON_BODY)

    url = request_body.get('url')
    custom_alias = request_body.get('customAlias')
    ttl = request_body.get('ttl')
    try:
        ttl_seconds = to_seconds(ttl)
    except (ValueError, TypeError) as e:
        logger.info('Invalid ttl. Responding with 400.', extra={'event': INVALID_TTL, 'ttl': ttl})
        return response_400(message=str(e), error_code=INVALID_TTL)

    # 2- Get the shortener service of this warm process
    try:
        service = get_service(FUNCTION_NAME)
    except (ConfigurationError, FileNotFoundError) as e:
        logger.exception('Failed to configure the shortener service. Responding with 500.')
        return response_500(error_code=getattr(e, 'error_code', None))
    except DataStoreError as e:
        logger.warning('Data store unavailable while starting up. Responding with 503.', extra={'reason': str(e)})
        return response_503(error_code=e.error_code)

    # 3- Shorten the URL
    try:
        mapping = service.shorten(url, custom_alias=custom_alias, ttl=ttl_seconds)
    except (InvalidUrlError, MalformedKeyError) as e:
        logger.info('Rejected shorten request. Responding with 400.', extra={'event': e.error_code})
        return response_400(message=str(e), error_code=e.error_code)
    except AliasTakenError as e:
        logger.info('Custom alias already taken. Responding with 409.', extra={'key': custom_alias, 'event': e.error_code})
        return response_409(message=str(e), error_code=e.error_code)
    except (InvariantViolationError, InfrastructureError) as e:
        # Already logged at CRITICAL where detected
        return response_500(error_code=e.error_code)
    except DataStoreError as e:
        logger.warning('Data store unavailable. Responding with 503.', extra={'event': e.error_code, 'reason': str(e)})
        return response_503(error_code=e.error_code)

    # 4- Respond with the new short URL
    short_url = get_short_url(mapping.key, event)
    logger.info('Shortened URL. Responding with 201.', extra={'key': mapping.key, 'event': SHORTEN_SUCCESS})
    return response_201(
        message=f'Successfully shortened {mapping.target} to {short_url}',
        key=mapping.key,
        short_url=short_url,
        target_url=mapping.target,
        expires_at=mapping.expires_at.isoformat() if mapping.expires_at else None,
    )
