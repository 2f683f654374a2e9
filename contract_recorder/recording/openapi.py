"""
OpenAPI 3 conversion of an emitted interchange document.

Operations are grouped by path template; request and response schemas are
inferred from the recorded example bodies and then annotated with the
declared field descriptions (and required flags).

Usage:
    spec = to_openapi(document, OpenApiSettings(title="Cart API"))
    text = render_openapi(spec, "yaml")
"""

import json
from http import HTTPStatus
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import yaml

from ..config import OAuth2Settings, OpenApiSettings
from ..contracts.paths import EACH, KEY, json_type, parse_path
from .emitter import SpecDocument


OPENAPI_VERSION = "3.0.1"
OAUTH2_SCHEME = "oauth2"


def to_openapi(
    document: Union[SpecDocument, Dict[str, Any]],
    settings: Optional[OpenApiSettings] = None,
) -> Dict[str, Any]:
    """Build an OpenAPI 3 document from emitted operations."""
    settings = settings or OpenApiSettings()
    operations = document.to_dict() if isinstance(document, SpecDocument) else document

    info: Dict[str, Any] = {'title': settings.title, 'version': settings.version}
    if settings.description:
        info['description'] = settings.description

    paths: Dict[str, Dict[str, Any]] = {}
    for operation_id in sorted(operations):
        op = operations[operation_id]
        path_item = paths.setdefault(op['path'], {})
        operation = path_item[op['method'].lower()] = _operation(operation_id, op)
        if settings.oauth2 and op.get('scopes'):
            operation['security'] = [{OAUTH2_SCHEME: list(op['scopes'])}]

    spec: Dict[str, Any] = {
        'openapi': OPENAPI_VERSION,
        'info': info,
        'servers': [{'url': url} for url in settings.servers],
        'paths': {path: paths[path] for path in sorted(paths)},
    }
    if settings.oauth2:
        spec['components'] = {
            'securitySchemes': {OAUTH2_SCHEME: _oauth2_scheme(settings.oauth2, operations.values())},
        }
    return spec


def render_openapi(spec: Dict[str, Any], fmt: str = "json") -> str:
    """Serialize an OpenAPI document as JSON or YAML."""
    fmt = fmt.lower()
    if fmt == 'json':
        return json.dumps(spec, indent=2, ensure_ascii=False) + "\n"
    if fmt == 'yaml':
        return yaml.safe_dump(spec, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unsupported OpenAPI format {fmt!r}")


def write_openapi(spec: Dict[str, Any], path: Union[str, Path], fmt: str = "json") -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_openapi(spec, fmt), encoding='utf-8')
    return path


# =============================================================================
# SECURITY
# =============================================================================

def _oauth2_scheme(oauth2: OAuth2Settings, operations: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """OAuth2 scheme listing configured scope descriptions plus every scope an operation requires."""
    used = sorted({scope for op in operations for scope in op.get('scopes', [])})
    flows: Dict[str, Any] = {}
    for flow in oauth2.flows:
        entry: Dict[str, Any] = {}
        if flow in ('authorizationCode', 'implicit'):
            entry['authorizationUrl'] = oauth2.authorization_url
        if flow != 'implicit':
            entry['tokenUrl'] = oauth2.token_url
        # a fresh scopes dict per flow so YAML output carries no anchors
        scopes = dict(oauth2.scopes)
        for scope in used:
            scopes.setdefault(scope, '')
        entry['scopes'] = scopes
        flows[flow] = entry
    return {'type': 'oauth2', 'flows': flows}


# =============================================================================
# OPERATIONS
# =============================================================================

def _operation(operation_id: str, op: Dict[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = {
        'operationId': operation_id,
        'summary': op.get('summary') or op['description'],
        'description': op['description'],
    }
    if op.get('tags'):
        result['tags'] = list(op['tags'])
    if op.get('deprecated'):
        result['deprecated'] = True

    parameters = [_parameter(p) for p in op.get('parameters', [])]
    if parameters:
        result['parameters'] = parameters

    examples = op.get('examples', [])
    request_body = _request_body(operation_id, examples, op.get('requestFields', []))
    if request_body:
        result['requestBody'] = request_body

    result['responses'] = _responses(operation_id, op, examples)

    links = op.get('links', [])
    if links:
        result['x-links'] = [{'rel': link['rel'], 'description': link['description']} for link in links]
    return result


def _parameter(p: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'name': p['name'],
        'in': p['in'],
        'description': p['description'],
        # path parameters are always required in OpenAPI
        'required': p['in'] == 'path' or not p['optional'],
        'schema': {'type': p.get('type') or 'string'},
    }


def _request_body(operation_id: str, examples: List[Dict[str, Any]], fields: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    content: Dict[str, Any] = {}
    for index, example in enumerate(examples):
        request = example['request']
        if request.get('body') is None:
            continue
        media = request.get('contentType') or 'application/octet-stream'
        _add_content(content, media, request['body'], f"{operation_id}-{index}", fields)
    if not content:
        return None
    return {'content': content}


def _responses(operation_id: str, op: Dict[str, Any], examples: List[Dict[str, Any]]) -> Dict[str, Any]:
    responses: Dict[str, Any] = {}
    declared_headers = op.get('responseHeaders', [])

    for index, example in enumerate(examples):
        response = example['response']
        status = str(response['status'])
        entry = responses.get(status)
        if entry is None:
            entry = responses[status] = {'description': _reason(response['status'])}
            if declared_headers:
                # built per response so YAML output carries no anchors
                entry['headers'] = {
                    h['name']: {'description': h['description'], 'schema': {'type': h.get('type') or 'string'}}
                    for h in declared_headers
                }
        if response.get('body') is not None:
            media = response.get('contentType') or 'application/octet-stream'
            content = entry.setdefault('content', {})
            _add_content(content, media, response['body'], f"{operation_id}-{index}", op.get('responseFields', []))

    if not responses:
        responses['default'] = {'description': op['description']}
    return responses


def _reason(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return str(status)


def _add_content(content: Dict[str, Any], media: str, body: Any, example_name: str, fields: List[Dict[str, Any]]) -> None:
    entry = content.get(media)
    if entry is None:
        entry = content[media] = {'schema': _body_schema(body, fields)}
    if not _is_binary(body):
        entry.setdefault('examples', {})[example_name] = {'value': body}


# =============================================================================
# SCHEMAS
# =============================================================================

def _is_binary(body: Any) -> bool:
    return isinstance(body, dict) and body.get('encoding') == 'base64' and set(body) == {'encoding', 'data'}


def _body_schema(body: Any, fields: List[Dict[str, Any]]) -> Dict[str, Any]:
    if _is_binary(body):
        return {'type': 'string', 'format': 'binary'}
    schema = schema_for(body)
    for f in fields:
        _annotate(schema, f)
    return schema


def schema_for(value: Any) -> Dict[str, Any]:
    """Infer a JSON schema fragment from a decoded example value."""
    kind = json_type(value)
    if kind == 'object':
        return {
            'type': 'object',
            'properties': {key: schema_for(item) for key, item in value.items()},
        }
    if kind == 'array':
        return {'type': 'array', 'items': schema_for(value[0]) if value else {}}
    if kind == 'null':
        return {'nullable': True}
    return {'type': kind}


def _annotate(schema: Dict[str, Any], f: Dict[str, Any]) -> None:
    """Attach a field descriptor's description (and required flag) to the schema node its path names."""
    segments = parse_path(f['path'])
    node = schema
    parent = None
    key = None
    for position, (kind, arg) in enumerate(segments):
        if kind == KEY:
            if node.setdefault('type', 'object') != 'object':
                return
            parent, key = node, arg
            node = node.setdefault('properties', {}).setdefault(arg, {})
        else:
            if node.setdefault('type', 'array') != 'array':
                return
            if kind == EACH and position == len(segments) - 1:
                # a trailing [] names the array node itself
                break
            parent, key = None, None
            node = node.setdefault('items', {})

    if f.get('description'):
        node['description'] = f['description']
    if f.get('type') and f['type'] != 'null' and 'type' not in node:
        node['type'] = f['type']
    if parent is not None and not f.get('optional'):
        required = parent.setdefault('required', [])
        if key not in required:
            required.append(key)
