"""
Observed HTTP exchanges and the records built from them.

- RecordedRequest / RecordedResponse: raw bytes plus headers as observed
- Coverage: which declared descriptors an exchange exercised
- Example: one request/response pair (owned by its RecordedOperation)
- RecordedOperation: one documented operation and its examples
"""

import json
import logging
import re
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Dict, FrozenSet, List, Optional
from urllib.parse import parse_qs, urlsplit

from ..contracts.models import ContractModel


logger = logging.getLogger('contract_recorder.exchange')

HTTP_METHODS = ("GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE")

_TEMPLATE_VAR = re.compile(r"\{([^{}/]+)\}")


def media_type(content_type: Optional[str]) -> Optional[str]:
    """Strip parameters from a Content-Type: 'application/json; charset=utf-8' -> 'application/json'."""
    if not content_type:
        return None
    return content_type.split(';', 1)[0].strip().lower() or None


def is_json_media_type(mt: Optional[str]) -> bool:
    """application/json and any structured-syntax +json type."""
    return bool(mt) and (mt == 'application/json' or mt.endswith('+json'))


def decode_json(raw: bytes, mt: Optional[str]) -> Any:
    """
    Decode a JSON payload, or return None when it has no JSON structure.

    Non-JSON media types and undecodable bytes both yield None.
    """
    if not raw or not is_json_media_type(mt):
        return None
    try:
        return json.loads(raw.decode('utf-8'))
    except (UnicodeDecodeError, ValueError) as e:
        logger.debug(f"payload declared as {mt} is not valid JSON: {e}")
        return None


def template_variables(path_template: str) -> List[str]:
    """Names of the {variables} in a path template, in order."""
    return _TEMPLATE_VAR.findall(path_template)


def match_path_template(path_template: str, path: str) -> Optional[Dict[str, str]]:
    """
    Extract path values by matching a concrete path against a template.

    Example:
        match_path_template('/carts/{id}/products', '/carts/42/products')
        -> {'id': '42'}
    """
    names = template_variables(path_template)
    pattern = ''
    last = 0
    for m in _TEMPLATE_VAR.finditer(path_template):
        pattern += re.escape(path_template[last:m.start()]) + '([^/]+)'
        last = m.end()
    pattern += re.escape(path_template[last:])
    m = re.fullmatch(pattern, path.rstrip('/') or '/') or re.fullmatch(pattern, path)
    if not m:
        return None
    return dict(zip(names, m.groups()))


def _lookup_header(headers: Dict[str, Any], name: str) -> Optional[Any]:
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


@dataclass(frozen=True)
class RecordedRequest:
    """The request side of an exchange."""
    method: Optional[str] = None
    uri: str = "/"
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    content_type: Optional[str] = None
    path_values: Dict[str, str] = field(default_factory=dict)
    query_values: Dict[str, Any] = field(default_factory=dict)

    def header(self, name: str) -> Optional[str]:
        return _lookup_header(self.headers, name)

    @property
    def path(self) -> str:
        return urlsplit(self.uri).path or '/'

    @property
    def media_type(self) -> Optional[str]:
        return media_type(self.content_type or self.header('Content-Type'))

    @cached_property
    def payload(self) -> Any:
        return decode_json(self.body, self.media_type)

    def query(self) -> Dict[str, Any]:
        """Supplied query values merged over those parsed from the URI."""
        parsed = {
            name: values[0] if len(values) == 1 else values
            for name, values in parse_qs(urlsplit(self.uri).query, keep_blank_values=True).items()
        }
        parsed.update(self.query_values)
        return parsed


@dataclass(frozen=True)
class RecordedResponse:
    """The response side of an exchange."""
    status: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    content_type: Optional[str] = None

    def header(self, name: str) -> Optional[str]:
        return _lookup_header(self.headers, name)

    @property
    def media_type(self) -> Optional[str]:
        return media_type(self.content_type or self.header('Content-Type'))

    @cached_property
    def payload(self) -> Any:
        return decode_json(self.body, self.media_type)


@dataclass(frozen=True)
class Coverage:
    """Declared descriptors an example actually exercised."""
    path_parameters: FrozenSet[str] = frozenset()
    query_parameters: FrozenSet[str] = frozenset()
    request_headers: FrozenSet[str] = frozenset()
    response_headers: FrozenSet[str] = frozenset()
    request_fields: FrozenSet[str] = frozenset()
    response_fields: FrozenSet[str] = frozenset()
    links: FrozenSet[str] = frozenset()
    # Top-level response keys no declared field accounts for
    undocumented_fields: FrozenSet[str] = frozenset()

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            'pathParameters': sorted(self.path_parameters),
            'queryParameters': sorted(self.query_parameters),
            'requestHeaders': sorted(self.request_headers),
            'responseHeaders': sorted(self.response_headers),
            'requestFields': sorted(self.request_fields),
            'responseFields': sorted(self.response_fields),
            'links': sorted(self.links),
            'undocumentedFields': sorted(self.undocumented_fields),
        }


@dataclass(frozen=True)
class Example:
    """One concrete request/response exchange."""
    request: RecordedRequest
    response: RecordedResponse
    coverage: Optional[Coverage] = None


@dataclass
class RecordedOperation:
    """
    A documented operation and the examples backing it.

    Mutated only by OperationRegistry.merge (examples appended in call order).
    """
    operation_id: str
    method: str
    path_template: str
    contract: ContractModel
    examples: List[Example] = field(default_factory=list)

    def copy(self) -> "RecordedOperation":
        """Shallow copy with its own example list (examples are immutable)."""
        return RecordedOperation(
            operation_id=self.operation_id,
            method=self.method,
            path_template=self.path_template,
            contract=self.contract,
            examples=list(self.examples),
        )
