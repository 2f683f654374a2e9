"""
Recording pipeline: normalize exchanges, merge them per operation, emit.
"""

from .exchange import (
    RecordedRequest,
    RecordedResponse,
    Coverage,
    Example,
    RecordedOperation,
)
from .links import Link, LinkExtractor, HalLinkExtractor, AtomLinkExtractor, NoLinkExtractor
from .normalize import ExchangeNormalizer, normalize
from .registry import OperationRegistry
from .emitter import SpecDocument, SpecEmitter, emit
from .openapi import to_openapi, render_openapi, write_openapi
from .recorder import ContractRecorder

__all__ = [
    'RecordedRequest',
    'RecordedResponse',
    'Coverage',
    'Example',
    'RecordedOperation',
    'Link',
    'LinkExtractor',
    'HalLinkExtractor',
    'AtomLinkExtractor',
    'NoLinkExtractor',
    'ExchangeNormalizer',
    'normalize',
    'OperationRegistry',
    'SpecDocument',
    'SpecEmitter',
    'emit',
    'to_openapi',
    'render_openapi',
    'write_openapi',
    'ContractRecorder',
]
