"""
Recorder configuration.

Values come from the environment (a local .env file is loaded first):

    CONTRACT_RECORDER_MODE            warn | strict   (default: warn)
    CONTRACT_RECORDER_MAX_EXAMPLES    examples kept per operation (default: 3)
    CONTRACT_RECORDER_VALIDATE_TYPES  check declared field types (default: true)
    OPENAPI_TITLE                     (default: "API documentation")
    OPENAPI_VERSION                   (default: "1.0.0")
    OPENAPI_DESCRIPTION               (default: unset)
    OPENAPI_SERVERS                   comma-separated URLs (default: http://localhost)
    OPENAPI_FORMAT                    json | yaml (default: json)
    OPENAPI_OAUTH2_FLOWS              comma-separated OAuth2 flows (default: unset, no security scheme)
    OPENAPI_OAUTH2_TOKEN_URL          token endpoint for authorizationCode, clientCredentials, password
    OPENAPI_OAUTH2_AUTHORIZATION_URL  authorization endpoint for authorizationCode, implicit
    OPENAPI_OAUTH2_SCOPES_FILE        YAML or JSON mapping of scope -> description
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import yaml
from dotenv import load_dotenv

load_dotenv()


class SchemaMode(Enum):
    """Enforcement mode for soft failures."""
    WARN = "warn"      # Log and continue (default)
    STRICT = "strict"  # Raise


DEFAULT_MAX_EXAMPLES = 3
DEFAULT_TITLE = "API documentation"
DEFAULT_VERSION = "1.0.0"
DEFAULT_SERVER = "http://localhost"
OUTPUT_FORMATS = ("json", "yaml")
OAUTH2_FLOWS = ("authorizationCode", "clientCredentials", "password", "implicit")


def _get_mode() -> SchemaMode:
    mode = os.environ.get('CONTRACT_RECORDER_MODE', 'warn').lower()
    return SchemaMode.STRICT if mode == 'strict' else SchemaMode.WARN


def _get_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == '':
        return default
    return raw.lower() in ('true', '1', 'yes', 'on')


def _parse_list(raw: str) -> List[str]:
    return [item.strip() for item in raw.split(',') if item.strip()]


def load_scope_descriptions(path: str) -> Dict[str, str]:
    """
    Read a scope -> description mapping from a YAML (or JSON) file.

    Raises:
        ValueError: If the file does not hold a mapping
    """
    with open(path, encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: scope descriptions must be a mapping of scope to description")
    return {str(scope): '' if text is None else str(text) for scope, text in data.items()}


@dataclass
class OAuth2Settings:
    """
    OAuth2 security scheme declared in the OpenAPI document.

    Flows that redeem a token need token_url; flows that redirect the user
    need authorization_url.
    """
    flows: List[str]
    token_url: Optional[str] = None
    authorization_url: Optional[str] = None
    scopes: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not self.flows:
            raise ValueError("OAuth2 settings need at least one flow")
        unknown = [flow for flow in self.flows if flow not in OAUTH2_FLOWS]
        if unknown:
            raise ValueError(f"Unsupported OAuth2 flow(s) {unknown}, expected any of {OAUTH2_FLOWS}")
        if not self.token_url and any(flow != 'implicit' for flow in self.flows):
            raise ValueError("token_url is required for the authorizationCode, clientCredentials and password flows")
        if not self.authorization_url and any(flow in ('authorizationCode', 'implicit') for flow in self.flows):
            raise ValueError("authorization_url is required for the authorizationCode and implicit flows")

    @classmethod
    def from_env(cls) -> Optional["OAuth2Settings"]:
        """None unless OPENAPI_OAUTH2_FLOWS names at least one flow."""
        flows = _parse_list(os.environ.get('OPENAPI_OAUTH2_FLOWS', ''))
        if not flows:
            return None
        scopes_file = os.environ.get('OPENAPI_OAUTH2_SCOPES_FILE')
        return cls(
            flows=flows,
            token_url=os.environ.get('OPENAPI_OAUTH2_TOKEN_URL') or None,
            authorization_url=os.environ.get('OPENAPI_OAUTH2_AUTHORIZATION_URL') or None,
            scopes=load_scope_descriptions(scopes_file) if scopes_file else {},
        )


@dataclass
class OpenApiSettings:
    """Document-level OpenAPI settings (title, version, servers, format, security)."""
    title: str = DEFAULT_TITLE
    version: str = DEFAULT_VERSION
    description: Optional[str] = None
    servers: List[str] = field(default_factory=lambda: [DEFAULT_SERVER])
    format: str = "json"
    oauth2: Optional[OAuth2Settings] = None

    def __post_init__(self):
        self.format = self.format.lower()
        if self.format not in OUTPUT_FORMATS:
            raise ValueError(f"Unsupported OpenAPI format {self.format!r}, expected one of {OUTPUT_FORMATS}")


@dataclass
class RecorderConfig:
    """Runtime settings for one documentation run."""
    mode: SchemaMode = SchemaMode.WARN
    max_examples: int = DEFAULT_MAX_EXAMPLES
    validate_types: bool = True
    openapi: OpenApiSettings = field(default_factory=OpenApiSettings)

    @classmethod
    def from_env(cls) -> "RecorderConfig":
        """Read settings from the current environment."""
        servers = _parse_list(os.environ.get('OPENAPI_SERVERS', '')) or [DEFAULT_SERVER]
        return cls(
            mode=_get_mode(),
            max_examples=max(_get_int('CONTRACT_RECORDER_MAX_EXAMPLES', DEFAULT_MAX_EXAMPLES), 0),
            validate_types=_get_bool('CONTRACT_RECORDER_VALIDATE_TYPES', True),
            openapi=OpenApiSettings(
                title=os.environ.get('OPENAPI_TITLE', DEFAULT_TITLE),
                version=os.environ.get('OPENAPI_VERSION', DEFAULT_VERSION),
                description=os.environ.get('OPENAPI_DESCRIPTION') or None,
                servers=servers,
                format=os.environ.get('OPENAPI_FORMAT', 'json'),
                oauth2=OAuth2Settings.from_env(),
            ),
        )
