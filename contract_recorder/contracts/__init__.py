"""
Contract declarations.

Provides the immutable ContractModel with its descriptors, field path
resolution, and the recorder error taxonomy.
"""

from .errors import (
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
)
from .models import (
    ParameterLocation,
    ParameterDescriptor,
    FieldDescriptor,
    LinkDescriptor,
    ContractModel,
    contract_from,
)

__all__ = [
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
    'contract_from',
]
