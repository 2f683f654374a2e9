"""
Contract Model - declared description of one API operation.

Key features:
- frozen=True: immutable after construction (a variant is a new model)
- populate_by_name=True: accept both builder-style camelCase options and field names
- extra='forbid': only recognized options are accepted
- build(), from_config() and describe() report failures as InvalidContractError

Usage:
    contract = ContractModel.from_config({
        "description": "Get a cart by id",
        "pathParameters": [{"name": "id", "description": "the cart id"}],
        "responseFields": [
            {"path": "total", "description": "Total amount of the cart."},
            {"path": "products", "description": "The product line items."},
        ],
        "links": [
            {"rel": "self", "ignored": True},
            {"rel": "order", "description": "Link to order the cart."},
        ],
    })
"""

from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import InvalidContractError
from .paths import JSON_TYPES, parse_path


class ParameterLocation(str, Enum):
    """Where a parameter travels in the request."""
    PATH = "path"
    QUERY = "query"
    HEADER = "header"


class _Declaration(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        populate_by_name=True,
        extra='forbid',
    )

    @classmethod
    def build(cls, **data: Any):
        """Construct the declaration, reporting failures as InvalidContractError."""
        try:
            return cls(**data)
        except ValidationError as e:
            raise InvalidContractError(
                message=f"Invalid {cls.__name__}: {_summarize(e)}",
                details={"errors": _error_list(e)},
            ) from e


class ParameterDescriptor(_Declaration):
    """A path, query or header parameter."""
    name: str = Field(min_length=1)
    description: str = ""
    location: ParameterLocation = ParameterLocation.QUERY
    optional: bool = False
    type: str = "string"

    @field_validator('type')
    @classmethod
    def known_type(cls, v):
        if v not in JSON_TYPES:
            raise ValueError(f"unknown parameter type {v!r}")
        return v


class FieldDescriptor(_Declaration):
    """
    A field inside a request or response payload.

    subsection=True marks the path as the root of a documented subtree. The
    flag is carried into the emitted document and changes no validation:
    undocumented-field detection only looks at top-level keys, so nested
    keys never need descriptors of their own.
    """
    path: str
    description: str = ""
    optional: bool = False
    ignored: bool = False
    subsection: bool = False
    type: Optional[str] = None

    @field_validator('path')
    @classmethod
    def well_formed_path(cls, v):
        parse_path(v)
        return v

    @field_validator('type')
    @classmethod
    def known_type(cls, v):
        if v is not None and v not in JSON_TYPES:
            raise ValueError(f"unknown field type {v!r}")
        return v


class LinkDescriptor(_Declaration):
    """A hypermedia link relation expected in the response."""
    rel: str = Field(min_length=1)
    description: str = ""
    ignored: bool = False
    optional: bool = False


def _locate(descriptors, location: ParameterLocation, option: str):
    """Pin every descriptor in a list to the location the list implies."""
    located = []
    for descriptor in descriptors:
        if 'location' in descriptor.model_fields_set and descriptor.location != location:
            raise ValueError(
                f"{option} entry '{descriptor.name}' declares location "
                f"'{descriptor.location.value}', expected '{location.value}'"
            )
        located.append(descriptor.model_copy(update={'location': location}))
    return tuple(located)


def _require_unique(values, option: str) -> None:
    seen = set()
    for value in values:
        key = value.lower() if option.endswith('Headers') else value
        if key in seen:
            raise ValueError(f"duplicate entry '{value}' in {option}")
        seen.add(key)


class ContractModel(_Declaration):
    """
    Declared contract for one operation.

    Invariant: description is non-blank and every descriptor list is
    internally unique. No mutation after construction.

    scopes names the OAuth2 scopes the operation requires; they become the
    operation's security requirement in OpenAPI output.
    """

    description: str
    summary: Optional[str] = None
    tags: Tuple[str, ...] = ()
    deprecated: bool = False
    scopes: Tuple[str, ...] = ()
    path_parameters: Tuple[ParameterDescriptor, ...] = Field(default=(), alias='pathParameters')
    query_parameters: Tuple[ParameterDescriptor, ...] = Field(default=(), alias='queryParameters')
    request_headers: Tuple[ParameterDescriptor, ...] = Field(default=(), alias='requestHeaders')
    response_headers: Tuple[ParameterDescriptor, ...] = Field(default=(), alias='responseHeaders')
    request_fields: Tuple[FieldDescriptor, ...] = Field(default=(), alias='requestFields')
    response_fields: Tuple[FieldDescriptor, ...] = Field(default=(), alias='responseFields')
    links: Tuple[LinkDescriptor, ...] = ()

    @field_validator('description')
    @classmethod
    def description_not_blank(cls, v):
        if not v:
            raise ValueError("description must not be empty")
        return v

    @field_validator('path_parameters')
    @classmethod
    def pin_path(cls, v):
        return _locate(v, ParameterLocation.PATH, 'pathParameters')

    @field_validator('query_parameters')
    @classmethod
    def pin_query(cls, v):
        return _locate(v, ParameterLocation.QUERY, 'queryParameters')

    @field_validator('request_headers')
    @classmethod
    def pin_request_headers(cls, v):
        return _locate(v, ParameterLocation.HEADER, 'requestHeaders')

    @field_validator('response_headers')
    @classmethod
    def pin_response_headers(cls, v):
        return _locate(v, ParameterLocation.HEADER, 'responseHeaders')

    @model_validator(mode='after')
    def unique_entries(self):
        _require_unique([p.name for p in self.path_parameters], 'pathParameters')
        _require_unique([p.name for p in self.query_parameters], 'queryParameters')
        _require_unique([p.name for p in self.request_headers], 'requestHeaders')
        _require_unique([p.name for p in self.response_headers], 'responseHeaders')
        _require_unique([f.path for f in self.request_fields], 'requestFields')
        _require_unique([f.path for f in self.response_fields], 'responseFields')
        _require_unique([link.rel for link in self.links], 'links')
        _require_unique(list(self.scopes), 'scopes')
        return self

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ContractModel":
        """Build a contract from a builder-style configuration mapping."""
        if isinstance(config, ContractModel):
            return config
        if not isinstance(config, Mapping):
            raise InvalidContractError(
                message=f"Contract configuration must be a mapping, got {type(config).__name__}",
            )
        return cls.build(**dict(config))

    @classmethod
    def describe(cls, description: str, **options: Any) -> "ContractModel":
        """Shorthand for a contract that only needs a description."""
        return cls.build(description=description, **options)

    @property
    def parameters(self) -> Tuple[ParameterDescriptor, ...]:
        """Request-side parameters: path, then query, then headers."""
        return self.path_parameters + self.query_parameters + self.request_headers


def _error_list(e: ValidationError):
    return [
        {"loc": ".".join(str(part) for part in err["loc"]) or "contract", "msg": err["msg"]}
        for err in e.errors()
    ]


def _summarize(e: ValidationError) -> str:
    return "; ".join(f"{err['loc']}: {err['msg']}" for err in _error_list(e))


def contract_from(declaration: Any) -> ContractModel:
    """Accept a ContractModel, a config mapping, or a bare description string."""
    if isinstance(declaration, ContractModel):
        return declaration
    if isinstance(declaration, str):
        return ContractModel.describe(declaration)
    return ContractModel.from_config(declaration)

