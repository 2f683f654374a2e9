"""
contract-recorder: record HTTP exchanges against declared API contracts and
emit a normalized description of every operation.
"""

from .config import RecorderConfig, OpenApiSettings, OAuth2Settings, SchemaMode
from .contracts import (
    ContractRecorderError,
    InvalidContractError,
    NormalizationError,
    InvalidOperationError,
    MissingParameterError,
    MissingFieldError,
    FieldTypeMismatchError,
    MissingLinkError,
    ConflictingOperationError,
    EmptyRegistryError,
    ParameterLocation,
    ParameterDescriptor,
    FieldDescriptor,
    LinkDescriptor,
    ContractModel,
)
from .recording import (
    RecordedRequest,
    RecordedResponse,
    Example,
    RecordedOperation,
    ExchangeNormalizer,
    OperationRegistry,
    SpecDocument,
    SpecEmitter,
    ContractRecorder,
    to_openapi,
    render_openapi,
)

__version__ = "0.1.0"

__all__ = [
    'RecorderConfig',
    'OpenApiSettings',
    'OAuth2Settings',
    'SchemaMode',
    'ContractRecorderError',
    'InvalidContractError',
    'NormalizationError',
    'InvalidOperationError',
    'MissingParameterError',
    'MissingFieldError',
    'FieldTypeMismatchError',
    'MissingLinkError',
    'ConflictingOperationError',
    'EmptyRegistryError',
    'ParameterLocation',
    'ParameterDescriptor',
    'FieldDescriptor',
    'LinkDescriptor',
    'ContractModel',
    'RecordedRequest',
    'RecordedResponse',
    'Example',
    'RecordedOperation',
    'ExchangeNormalizer',
    'OperationRegistry',
    'SpecDocument',
    'SpecEmitter',
    'ContractRecorder',
    'to_openapi',
    'render_openapi',
]
