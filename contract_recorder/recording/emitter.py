"""
Spec Emitter - serializes a registry into the interchange document.

Output shape (one entry per operation id, ids in lexicographic order):

    {
      "carts-create": {
        "method": "POST",
        "path": "/carts",
        "description": "Create a cart",
        "parameters": [...],
        "requestFields": [...],
        "responseFields": [...],
        "links": [...],
        "coverage": {...},
        "examples": [{"request": {...}, "response": {...}}]
      }
    }

Descriptor entries merge the declared text with what the examples showed:
whether the descriptor was observed, and the JSON type of the first non-null
value seen. Examples are deduplicated by status + bodies and capped.
"""

import base64
import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ..config import DEFAULT_MAX_EXAMPLES, RecorderConfig, SchemaMode
from ..contracts.errors import EmptyRegistryError
from ..contracts.models import FieldDescriptor, ParameterDescriptor
from ..contracts.paths import json_type, resolve
from .exchange import Example, RecordedOperation
from .registry import OperationRegistry


logger = logging.getLogger('contract_recorder.emitter')


class SpecDocument:
    """Emitted interchange document: operation id -> operation metadata."""

    def __init__(self, operations: Optional[Dict[str, Dict[str, Any]]] = None):
        self.operations: Dict[str, Dict[str, Any]] = operations or {}

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return self.operations

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.operations, indent=indent, ensure_ascii=False)

    def write(self, path: Union[str, Path]) -> Path:
        """Write the document as JSON (the on-disk interchange cache)."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json() + "\n", encoding='utf-8')
        return path

    @classmethod
    def load(cls, path: Union[str, Path]) -> "SpecDocument":
        with open(path, encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path}: interchange document must be a JSON object")
        return cls(data)

    def __len__(self) -> int:
        return len(self.operations)

    def __contains__(self, operation_id: object) -> bool:
        return operation_id in self.operations

    def __getitem__(self, operation_id: str) -> Dict[str, Any]:
        return self.operations[operation_id]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SpecDocument):
            return NotImplemented
        return self.operations == other.operations


class SpecEmitter:
    """
    Builds a SpecDocument from a registry snapshot.

    Args:
        max_examples: examples kept per operation after deduplication
        mode: STRICT raises EmptyRegistryError on an empty registry,
            WARN logs and returns an empty document
    """

    def __init__(self, max_examples: int = DEFAULT_MAX_EXAMPLES, mode: SchemaMode = SchemaMode.WARN):
        if max_examples < 0:
            raise ValueError("max_examples must be >= 0")
        self.max_examples = max_examples
        self.mode = mode

    @classmethod
    def from_config(cls, config: RecorderConfig) -> "SpecEmitter":
        return cls(max_examples=config.max_examples, mode=config.mode)

    def emit(self, registry: OperationRegistry) -> SpecDocument:
        """
        Serialize every recorded operation.

        Raises:
            EmptyRegistryError: If nothing was recorded and mode is STRICT
        """
        operations = registry.snapshot()
        if not operations:
            error = EmptyRegistryError(message="No operations were recorded during this run")
            if self.mode == SchemaMode.STRICT:
                raise error
            logger.warning(str(error), extra={"event": "empty_registry"})
            return SpecDocument()

        document = {op.operation_id: self._section(op) for op in operations}
        logger.info(f"emitted {len(document)} operation(s)")
        return SpecDocument(document)

    def _section(self, op: RecordedOperation) -> Dict[str, Any]:
        contract = op.contract
        examples = op.examples

        observed = _observed(examples)
        section: Dict[str, Any] = {
            'method': op.method,
            'path': op.path_template,
            'description': contract.description,
        }
        if contract.summary:
            section['summary'] = contract.summary
        if contract.tags:
            section['tags'] = list(contract.tags)
        if contract.deprecated:
            section['deprecated'] = True
        if contract.scopes:
            section['scopes'] = list(contract.scopes)

        section['parameters'] = [
            _parameter(p, p.name in observed[f"{p.location.value}Parameters"])
            for p in contract.parameters
        ]
        section['responseHeaders'] = [
            _parameter(p, p.name in observed['responseHeaders'])
            for p in contract.response_headers
        ]
        section['requestFields'] = [
            _field(f, f.path in observed['requestFields'], [e.request.payload for e in examples])
            for f in contract.request_fields if not f.ignored
        ]
        section['responseFields'] = [
            _field(f, f.path in observed['responseFields'], [e.response.payload for e in examples])
            for f in contract.response_fields if not f.ignored
        ]
        section['links'] = [
            {
                'rel': link.rel,
                'description': link.description,
                'optional': link.optional,
                'observed': link.rel in observed['links'],
            }
            for link in contract.links if not link.ignored
        ]
        section['coverage'] = {
            'exampleCount': len(examples),
            'undocumentedFields': sorted(observed['undocumentedFields']),
        }
        section['examples'] = self._examples(examples)
        return section

    def _examples(self, examples: Iterable[Example]) -> List[Dict[str, Any]]:
        rendered = []
        seen = set()
        for example in examples:
            if len(rendered) >= self.max_examples:
                break
            entry = render_example(example)
            key = json.dumps(
                [entry['response']['status'], entry['request']['body'], entry['response']['body']],
                sort_keys=True,
            )
            if key in seen:
                continue
            seen.add(key)
            rendered.append(entry)
        return rendered


def _observed(examples: Iterable[Example]) -> Dict[str, set]:
    """Union of coverage across examples, keyed like Coverage.to_dict()."""
    merged: Dict[str, set] = {
        'pathParameters': set(),
        'queryParameters': set(),
        'headerParameters': set(),
        'responseHeaders': set(),
        'requestFields': set(),
        'responseFields': set(),
        'links': set(),
        'undocumentedFields': set(),
    }
    for example in examples:
        if example.coverage is None:
            continue
        for key, values in example.coverage.to_dict().items():
            # request headers are parameters located in the header
            merged['headerParameters' if key == 'requestHeaders' else key].update(values)
    return merged


def _parameter(descriptor: ParameterDescriptor, observed: bool) -> Dict[str, Any]:
    return {
        'name': descriptor.name,
        'in': descriptor.location.value,
        'description': descriptor.description,
        'type': descriptor.type,
        'optional': descriptor.optional,
        'observed': observed,
    }


def _field(descriptor: FieldDescriptor, observed: bool, payloads: List[Any]) -> Dict[str, Any]:
    return {
        'path': descriptor.path,
        'description': descriptor.description,
        'type': descriptor.type or infer_field_type(descriptor.path, payloads),
        'optional': descriptor.optional,
        'subsection': descriptor.subsection,
        'observed': observed,
    }


def infer_field_type(path: str, payloads: Iterable[Any]) -> Optional[str]:
    """
    JSON type of the first non-null value the path reaches, in example order.

    Returns "null" if only nulls were seen and None if nothing was.
    """
    saw_null = False
    for payload in payloads:
        for value in resolve(payload, path):
            if value is None:
                saw_null = True
                continue
            return json_type(value)
    return "null" if saw_null else None


def render_body(raw: bytes, payload: Any) -> Any:
    """Parsed JSON (a private copy), UTF-8 text, or base64 for binary payloads."""
    if not raw:
        return None
    if payload is not None:
        return copy.deepcopy(payload)
    try:
        return raw.decode('utf-8')
    except UnicodeDecodeError:
        return {'encoding': 'base64', 'data': base64.b64encode(raw).decode('ascii')}


def render_example(example: Example) -> Dict[str, Any]:
    request, response = example.request, example.response
    return {
        'request': {
            'method': request.method,
            'uri': request.uri,
            'headers': dict(sorted(request.headers.items())),
            'contentType': request.media_type,
            'body': render_body(request.body, request.payload),
        },
        'response': {
            'status': response.status,
            'headers': dict(sorted(response.headers.items())),
            'contentType': response.media_type,
            'body': render_body(response.body, response.payload),
        },
    }


def emit(
    registry: OperationRegistry,
    max_examples: int = DEFAULT_MAX_EXAMPLES,
    mode: SchemaMode = SchemaMode.WARN,
) -> SpecDocument:
    """Emit with an ad-hoc SpecEmitter."""
    return SpecEmitter(max_examples=max_examples, mode=mode).emit(registry)
