"""
Flask test-client adapter.

Performs requests through app.test_client(), keeps the exact request bytes
(the app consumes its input stream), derives the path template from the
app's URL map, and records the exchange.

Usage:
    documenter = FlaskDocumenter(app, ContractRecorder(registry))

    exchange = documenter.perform("POST", "/carts")
    assert exchange.response.status_code == 201
    documenter.document("carts-create", exchange, "Create a cart")
"""

import io
import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple, Union

from flask import Flask
from flask.testing import EnvironBuilder
from werkzeug.datastructures import EnvironHeaders
from werkzeug.exceptions import HTTPException
from werkzeug.test import TestResponse

from ..recording.exchange import Example, RecordedOperation, RecordedRequest, RecordedResponse
from ..recording.recorder import ContractRecorder


logger = logging.getLogger('contract_recorder.harness.flask')

# Werkzeug rule variables: <id>, <int:id>, <any(a,b):kind>
_RULE_VAR = re.compile(r"<(?:[^<>:]+:)?([^<>:]+)>")

# Headers that vary with the tooling rather than the API
_VOLATILE_REQUEST_HEADERS = {'user-agent'}


@dataclass
class FlaskExchange:
    """A performed request: the test response plus what was actually sent."""
    response: TestResponse
    request: RecordedRequest
    path_template: str


def rule_to_template(rule: str) -> str:
    """'/carts/<int:id>/products' -> '/carts/{id}/products'"""
    return _RULE_VAR.sub(r"{\1}", rule)


def resolve_route(app: Flask, method: str, path: str) -> Tuple[str, Dict[str, str]]:
    """
    Find the URL rule serving method + path.

    Returns:
        (path template, path values); the literal path and no values when
        nothing matches
    """
    adapter = app.url_map.bind(app.config.get('SERVER_NAME') or 'localhost')
    try:
        rule, values = adapter.match(path, method=method, return_rule=True)
    except HTTPException:
        logger.debug(f"no URL rule for {method} {path}, using the literal path as template")
        return path, {}
    return rule_to_template(rule.rule), {name: str(value) for name, value in values.items()}


def _request_headers(headers) -> Dict[str, str]:
    return {
        name: value
        for name, value in headers.items()
        if name.lower() not in _VOLATILE_REQUEST_HEADERS
    }


def _uri(path: str, query_string: Union[bytes, str]) -> str:
    if isinstance(query_string, bytes):
        query_string = query_string.decode('latin-1')
    return f"{path}?{query_string}" if query_string else path


def recorded_response(response: TestResponse) -> RecordedResponse:
    return RecordedResponse(
        status=response.status_code,
        headers=dict(response.headers.items()),
        body=response.get_data(),
        content_type=response.content_type,
    )


class FlaskDocumenter:
    """Drives a Flask app through its test client and records exchanges."""

    def __init__(self, app: Flask, recorder: ContractRecorder):
        self.app = app
        self.recorder = recorder
        self.client = app.test_client()

    def perform(self, method: str, path: str, **kwargs: Any) -> FlaskExchange:
        """
        Send one request. kwargs are EnvironBuilder options
        (json=, data=, headers=, query_string=, content_type=, ...).
        """
        builder = EnvironBuilder(self.app, path=path, method=method.upper(), **kwargs)
        try:
            environ = builder.get_environ()
            body = environ['wsgi.input'].read()
        finally:
            builder.close()
        environ['wsgi.input'] = io.BytesIO(body)

        request = RecordedRequest(
            method=environ['REQUEST_METHOD'],
            uri=_uri(environ['PATH_INFO'], environ.get('QUERY_STRING', '')),
            headers=_request_headers(EnvironHeaders(environ)),
            body=body,
            content_type=environ.get('CONTENT_TYPE') or None,
        )

        template, values = resolve_route(self.app, request.method, request.path)
        if values:
            request = replace(request, path_values=values)

        response = self.client.open(environ)
        return FlaskExchange(response=response, request=request, path_template=template)

    def document(
        self,
        operation_id: str,
        exchange: Union[FlaskExchange, TestResponse],
        contract: Any,
        path_template: Optional[str] = None,
    ) -> RecordedOperation:
        """
        Record an exchange under operation_id.

        A bare TestResponse is accepted too; its request body is only
        available if the request object still holds it.
        """
        if isinstance(exchange, FlaskExchange):
            request = exchange.request
            response = exchange.response
            template = path_template or exchange.path_template
        else:
            response = exchange
            request = self._request_from_response(response)
            template = path_template or resolve_route(self.app, request.method, request.path)[0]

        example = Example(request=request, response=recorded_response(response))
        return self.recorder.record(operation_id, request.method, template, contract, example)

    def _request_from_response(self, response: TestResponse) -> RecordedRequest:
        source = response.request
        return RecordedRequest(
            method=source.method,
            uri=_uri(source.path, source.query_string),
            headers=_request_headers(source.headers),
            body=source.get_data(),
            content_type=source.content_type or None,
        )
