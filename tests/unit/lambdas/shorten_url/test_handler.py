import json
from datetime import datetime, UTC
from typing import cast
from unittest.mock import MagicMock

import pytest
from pytest import MonkeyPatch

from shortcore.types import LambdaContext, LambdaEvent
from shortcore.lambdas.shorten_url import app
from shortcore.models import UrlMapping
from shortcore.service import ShortenerService
from shortcore.dao.exceptions import DataStoreError, DataStoreTimeoutError
from shortcore.exceptions import (
    AliasTakenError,
    AllocatorInvariantViolatedError,
    BadConfigurationError,
    InvalidUrlError,
    MalformedKeyError,
)


def _event(body) -> LambdaEvent:
    return cast(LambdaEvent, {
        'resource': '/v1/shorten',
        'httpMethod': 'POST',
        'path': '/v1/shorten',
        'body': body if body is None or isinstance(body, str) else json.dumps(body),
        'requestContext': {'domainName': 'testhost:1000', 'stage': 'test'},
    })


class TestShortenUrlHandler:

    @pytest.fixture
    def context(self) -> LambdaContext:
        return cast(LambdaContext, {'function_name': 'shorten_url'})

    @pytest.fixture
    def service(self) -> ShortenerService:
        service = MagicMock(spec=ShortenerService)
        service.shorten.return_value = UrlMapping(
            key='aaaaacb',
            target='https://example.com/blog/chuck-norris-is-awesome',
            expires_at=datetime(2026, 11, 18, 12, 0, tzinfo=UTC),
        )
        return service

    @pytest.fixture(autouse=True)
    def setup(self, monkeypatch: MonkeyPatch, context: LambdaContext, service: ShortenerService) -> None:
        self.get_service = MagicMock(return_value=service)
        monkeypatch.setattr(app, 'get_service', self.get_service)

        self.context = context
        self.service = service

    def test_lambda_handler(self) -> None:
        event = _event({'url': 'https://example.com/blog/chuck-norris-is-awesome'})

        response = app.lambda_handler(event, self.context)
        body = json.loads(response['body'])

        assert response['statusCode'] == 201
        assert response['headers']['Content-Type'] == 'application/json'
        assert body == {
            'message': 'Successfully shortened https://example.com/blog/chuck-norris-is-awesome to https://testhost:1000/aaaaacb',
            'key': 'aaaaacb',
            'short_url': 'https://testhost:1000/aaaaacb',
            'target_url': 'https://example.com/blog/chuck-norris-is-awesome',
            'expires_at': '2026-11-18T12:00:00+00:00',
        }
        self.get_service.assert_called_once_with('shorten_url')
        self.service.shorten.assert_called_once_with(
            'https://example.com/blog/chuck-norris-is-awesome', custom_alias=None, ttl=None
        )

    def test_lambda_handler_with_alias_and_ttl(self) -> None:
        self.service.shorten.return_value = UrlMapping(key='promo', target='https://example.com/sale', alias=True)
        event = _event({'url': 'https://example.com/sale', 'customAlias': 'promo', 'ttl': 3600})

        response = app.lambda_handler(event, self.context)
        body = json.loads(response['body'])

        assert response['statusCode'] == 201
        assert body['short_url'] == 'https://testhost:1000/promo'
        assert body['expires_at'] is None
        self.service.shorten.assert_called_once_with('https://example.com/sale', custom_alias='promo', ttl=3600.0)

    @pytest.mark.parametrize('body', ['{"url": ', '["https://example.com"]'])
    def test_lambda_handler_with_invalid_json(self, body) -> None:
        response = app.lambda_handler(_event(body), self.context)
        body = json.loads(response['body'])

        assert response['statusCode'] == 400
        assert body['errorCode'] == 'client:invalid_json_body'
        self.service.shorten.assert_not_called()

    @pytest.mark.parametrize('ttl', [0, -60, '3600', True, [1]])
    def test_lambda_handler_with_invalid_ttl(self, ttl) -> None:
        response = app.lambda_handler(_event({'url': 'https://example.com', 'ttl': ttl}), self.context)
        body = json.loads(response['body'])

        assert response['statusCode'] == 400
        assert body['errorCode'] == 'client:invalid_ttl'
        self.get_service.assert_not_called()
        self.service.shorten.assert_not_called()

    def test_lambda_handler_with_unparseable_url(self) -> None:
        self.service.shorten.side_effect = InvalidUrlError("URL cannot be parsed (given value: 'http://[::1').")

        response = app.lambda_handler(_event({'url': 'http://[::1'}), self.context)
        body = json.loads(response['body'])

        assert response['statusCode'] == 400
        assert body['errorCode'] == 'client:invalid_url'

    @pytest.mark.parametrize('error', [ValueError('Identifier must be in [0, 2**64 - 1].'), TypeError('unexpected type')])
    def test_lambda_handler_with_internal_value_error(self, error) -> None:
        self.service.shorten.side_effect = error

        response = app.lambda_handler(_event({'url': 'https://example.com', 'ttl': 60}), self.context)
        body = json.loads(response['body'])

        assert response['statusCode'] == 500
        assert body['errorCode'] == 'UNKNOWN_INTERNAL_SERVER_ERROR'

    @pytest.mark.parametrize(
        'error, status_code, error_code',
        [
            (InvalidUrlError('Target URL must be an absolute http(s) URL.'), 400, 'client:invalid_url'),
            (MalformedKeyError('Key contains characters outside the key alphabet.'), 400, 'client:malformed_key'),
            (AliasTakenError("Alias 'promo' is already taken."), 409, 'client:alias_taken'),
            (AllocatorInvariantViolatedError("Generated key 'aaaaacb' is already held."), 500, 'invariant:allocator_invariant_violated'),
            (DataStoreError('connection refused'), 503, 'infra:data_store_error'),
            (DataStoreTimeoutError('timed out'), 503, 'infra:data_store_timeout'),
        ],
    )
    def test_lambda_handler_with_service_errors(self, error, status_code, error_code) -> None:
        self.service.shorten.side_effect = error

        response = app.lambda_handler(_event({'url': 'https://example.com'}), self.context)
        body = json.loads(response['body'])

        assert response['statusCode'] == status_code
        assert body['errorCode'] == error_code

    def test_lambda_handler_with_taken_alias(self) -> None:
        self.service.shorten.side_effect = AliasTakenError("Alias 'promo' is already taken.")

        response = app.lambda_handler(_event({'url': 'https://example.com', 'customAlias': 'promo'}), self.context)
        body = json.loads(response['body'])

        assert response['statusCode'] == 409
        assert body['message'] == "Conflict (Alias 'promo' is already taken.)"

    def test_lambda_handler_with_unavailable_store(self) -> None:
        self.service.shorten.side_effect = DataStoreError('connection refused')

        response = app.lambda_handler(_event({'url': 'https://example.com'}), self.context)

        assert response['statusCode'] == 503
        assert response['headers']['Retry-After'] == '1'

    def test_lambda_handler_with_bad_configuration(self) -> None:
        self.get_service.side_effect = BadConfigurationError("Unsupported backend 'dynamodb'.")

        response = app.lambda_handler(_event({'url': 'https://example.com'}), self.context)
        body = json.loads(response['body'])

        assert response['statusCode'] == 500
        assert body == {'message': 'Internal Server Error', 'errorCode': 'config:bad_configuration_error'}

    def test_lambda_handler_with_unexpected_error(self) -> None:
        self.service.shorten.side_effect = RuntimeError('boom')

        response = app.lambda_handler(_event({'url': 'https://example.com'}), self.context)
        body = json.loads(response['body'])

        assert response['statusCode'] == 500
        assert body['errorCode'] == 'UNKNOWN_INTERNAL_SERVER_ERROR'
