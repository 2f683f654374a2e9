"""
Shared pytest configuration for recorder tests.

Provides:
- Fresh registry / recorder fixtures per test
- Example builders for JSON and HAL exchanges
"""

import json
from typing import Any, Dict, Optional

import pytest

from contract_recorder.recording.exchange import Example, RecordedRequest, RecordedResponse
from contract_recorder.recording.recorder import ContractRecorder
from contract_recorder.recording.registry import OperationRegistry


def json_example(
    status: int = 200,
    body: Any = None,
    *,
    method: Optional[str] = None,
    uri: str = "/",
    request_body: Any = None,
    request_headers: Optional[Dict[str, str]] = None,
    response_headers: Optional[Dict[str, str]] = None,
    content_type: str = "application/json",
    path_values: Optional[Dict[str, str]] = None,
) -> Example:
    """Build an Example whose bodies are JSON-encoded from Python values."""
    request = RecordedRequest(
        method=method,
        uri=uri,
        headers=dict(request_headers or {}),
        body=json.dumps(request_body).encode() if request_body is not None else b"",
        content_type="application/json" if request_body is not None else None,
        path_values=dict(path_values or {}),
    )
    response = RecordedResponse(
        status=status,
        headers=dict(response_headers or {}),
        body=json.dumps(body).encode() if body is not None else b"",
        content_type=content_type if body is not None else None,
    )
    return Example(request=request, response=response)


def hal_example(body: Any, status: int = 200, **kwargs) -> Example:
    return json_example(status, body, content_type="application/hal+json", **kwargs)


CART_BODY = {
    "total": 49.99,
    "products": [
        {
            "quantity": 1,
            "product": {"name": "Fancy pants", "price": 49.99},
            "_links": {"product": {"href": "http://localhost/products/7"}},
        }
    ],
    "_links": {
        "self": {"href": "http://localhost/carts/42"},
        "order": {"href": "http://localhost/carts/42/order"},
    },
}


@pytest.fixture
def registry():
    """A fresh registry per test."""
    return OperationRegistry()


@pytest.fixture
def recorder(registry):
    return ContractRecorder(registry)


@pytest.fixture
def cart_body():
    return json.loads(json.dumps(CART_BODY))
