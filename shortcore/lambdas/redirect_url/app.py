import logging

from shortcore.dao.exceptions import DataStoreError
from shortcore.exceptions import ConfigurationError, KeyNotFoundError, MalformedKeyError
from shortcore.lambdas.redirect_url.constants import MISSING_KEY, REDIRECT_SUCCESS
from shortcore.lambdas.responses import response_302, response_400, response_404, response_500, response_503
from shortcore.types import LambdaContext, LambdaEvent, LambdaResponse
from shortcore.utils.helpers import get_short_url, guarantee_500_response
from shortcore.wiring import get_service


logger = logging.getLogger(__name__)

FUNCTION_NAME = 'redirect_url'


@guarantee_500_response
def lambda_handler(event: LambdaEvent, context: LambdaContext) -> LambdaResponse:
    """Handle incoming API Gateway requests to redirect URLs

    This Lambda handler follows this procedure to redirect URLs:
    - Step 1: Extract the key from the request path
    - Step 2: Get the (warm) shortener service
    - Step 3: Resolve the key (cache, then store)
    - Step 4: Redirect client to target URL

    HTTP responses:
        302: Successful redirect
            headers:
                Location: target URL destination
        400: Missing or malformed key in path parameters
        404: No live mapping for the key
        500: Internal server error
        503: Data store unavailable (retryable)

    Example:
        >>> event = {'pathParameters': {'key': 'aaaaacb'}}
        >>> response = lambda_handler(event, None)
        >>> response['statusCode']
        302
        >>> response['headers']['Location']
        'https://example.com/my-page'
    """
    # 1- Extract key from request's path
    key = (event.get('pathParameters') or {}).get('key')
    if key is None:
        logger.info('Missing "key" in path. Responding with 400.', extra={'event': MISSING_KEY})
        return response_400(message="missing 'key' in path", error_code=MalformedKeyError.error_code)

    # 2- Get the shortener service of this warm process
    try:
        service = get_service(FUNCTION_NAME)
    except (ConfigurationError, FileNotFoundError) as e:
        logger.exception('Failed to configure the shortener service. Responding with 500.')
        return response_500(error_code=getattr(e, 'error_code', None))
    except DataStoreError as e:
        logger.warning('Data store unavailable while starting up. Responding with 503.', extra={'reason': str(e)})
        return response_503(error_code=e.error_code)

    # 3- Resolve the key
    try:
        target_url = service.resolve(key)
    except MalformedKeyError as e:
        logger.info('Malformed key. Responding with 400.', extra={'key': key, 'event': e.error_code})
        return response_400(message=str(e), error_code=e.error_code)
    except KeyNotFoundError as e:
        logger.info('Key not found. Responding with 404.', extra={'key': key, 'event': e.error_code})
        return response_404(message=f"short url {get_short_url(key, event)} doesn't exist", error_code=e.error_code)
    except DataStoreError as e:
        logger.warning('Data store unavailable. Responding with 503.', extra={'key': key, 'event': e.error_code, 'reason': str(e)})
        return response_503(error_code=e.error_code)

    # 4- Redirect client to target URL
    logger.info('Redirecting client to target URL. Responding with 302.', extra={'key': key, 'event': REDIRECT_SUCCESS})
    return response_302(location=target_url)
