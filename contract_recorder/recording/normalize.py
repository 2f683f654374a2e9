"""
Exchange normalization - validates one observed exchange against its contract.

Steps:
1. Check the operation itself (known HTTP method, well-formed path template)
2. Every non-optional parameter is present (path values, query, headers)
3. Every non-optional, non-ignored field resolves in its payload
   (response fields only when the response has a body)
4. Every non-ignored link relation is present, when the response media type
   supports hypermedia at all
5. Produce a RecordedOperation with one Example annotated with coverage

Deterministic for identical inputs; nothing outside the returned record is
touched.
"""

import logging
from dataclasses import replace
from typing import Any, Iterable, Mapping, Optional, Set

from ..contracts.errors import (
    FieldTypeMismatchError,
    InvalidOperationError,
    MissingFieldError,
    MissingLinkError,
    MissingParameterError,
)
from ..contracts.models import ContractModel, FieldDescriptor, ParameterDescriptor
from ..contracts.paths import has_path, json_type, matches_type, resolve, top_level_key
from .exchange import (
    HTTP_METHODS,
    Coverage,
    Example,
    RecordedOperation,
    match_path_template,
    template_variables,
)
from .links import LinkExtractor, extractor_for


logger = logging.getLogger('contract_recorder.normalize')

# Payload keys that hold hypermedia rather than documented data
_LINK_SECTIONS = ('_links', 'links')


class ExchangeNormalizer:
    """
    Turns (contract, observed example) into a validated RecordedOperation.

    Args:
        link_extractors: media type -> LinkExtractor (defaults to HAL types)
        validate_types: check declared field types against observed values
    """

    def __init__(
        self,
        link_extractors: Optional[Mapping[str, LinkExtractor]] = None,
        validate_types: bool = True,
    ):
        self.link_extractors = link_extractors
        self.validate_types = validate_types

    def normalize(
        self,
        operation_id: str,
        method: str,
        path_template: str,
        contract: ContractModel,
        example: Example,
    ) -> RecordedOperation:
        """
        Validate example against contract.

        Raises:
            InvalidOperationError: Unknown method or malformed path template
            MissingParameterError: A required parameter was not sent
            MissingFieldError: A required field did not resolve
            FieldTypeMismatchError: A typed field held a value of another type
            MissingLinkError: A required link relation was absent
        """
        method = _check_operation(operation_id, method, path_template)

        request = example.request
        if request.method is None:
            request = replace(request, method=method)
        response = example.response

        path_values = dict(match_path_template(path_template, request.path) or {})
        path_values.update(request.path_values)
        query = request.query()

        # 1. Parameters
        covered_path = _check_parameters(
            operation_id, contract.path_parameters, lambda name: name in path_values
        )
        covered_query = _check_parameters(
            operation_id, contract.query_parameters, lambda name: name in query
        )
        covered_request_headers = _check_parameters(
            operation_id, contract.request_headers, lambda name: request.header(name) is not None
        )
        covered_response_headers = _check_parameters(
            operation_id, contract.response_headers, lambda name: response.header(name) is not None
        )

        # 2. Fields
        covered_request_fields = self._check_fields(
            operation_id, contract.request_fields, request.payload, 'request'
        )
        if response.body:
            covered_response_fields = self._check_fields(
                operation_id, contract.response_fields, response.payload, 'response'
            )
        else:
            covered_response_fields = set()

        # 3. Links
        covered_links = self._check_links(operation_id, contract, response)

        coverage = Coverage(
            path_parameters=frozenset(covered_path),
            query_parameters=frozenset(covered_query),
            request_headers=frozenset(covered_request_headers),
            response_headers=frozenset(covered_response_headers),
            request_fields=frozenset(covered_request_fields),
            response_fields=frozenset(covered_response_fields),
            links=frozenset(covered_links),
            undocumented_fields=frozenset(_undocumented_keys(contract, response.payload)),
        )

        if path_values != request.path_values:
            request = replace(request, path_values=path_values)

        logger.debug(
            f"normalized {operation_id}: {method} {path_template} -> "
            f"status={response.status} coverage={coverage.to_dict()}"
        )

        return RecordedOperation(
            operation_id=operation_id,
            method=method,
            path_template=path_template,
            contract=contract,
            examples=[Example(request=request, response=response, coverage=coverage)],
        )

    def _check_fields(
        self,
        operation_id: str,
        descriptors: Iterable[FieldDescriptor],
        payload: Any,
        section: str,
    ) -> Set[str]:
        covered = set()
        for descriptor in descriptors:
            if descriptor.ignored:
                continue

            if not has_path(payload, descriptor.path):
                if descriptor.optional:
                    continue
                raise MissingFieldError(
                    message=(
                        f"{operation_id}: {section} field '{descriptor.path}' "
                        f"is declared but missing from the payload"
                    ),
                    details={"section": section, "path": descriptor.path},
                    operation_id=operation_id,
                    path=descriptor.path,
                    section=section,
                )
            covered.add(descriptor.path)

            if self.validate_types and descriptor.type:
                for value in resolve(payload, descriptor.path):
                    if value is not None and not matches_type(value, descriptor.type):
                        raise FieldTypeMismatchError(
                            message=(
                                f"{operation_id}: {section} field '{descriptor.path}' "
                                f"expected {descriptor.type}, got {json_type(value)}"
                            ),
                            details={"section": section, "path": descriptor.path},
                            operation_id=operation_id,
                            path=descriptor.path,
                            expected=descriptor.type,
                            received=json_type(value),
                        )
        return covered

    def _check_links(self, operation_id: str, contract: ContractModel, response) -> Set[str]:
        extractor = extractor_for(response.media_type, self.link_extractors)
        if not extractor.hypermedia:
            if contract.links:
                logger.debug(
                    f"{operation_id}: {response.media_type} carries no hypermedia, "
                    f"skipping {len(contract.links)} link check(s)"
                )
            return set()

        present = {link.rel for link in extractor.extract_links(response.payload)}
        covered = set()
        for descriptor in contract.links:
            if descriptor.ignored:
                continue
            if descriptor.rel in present:
                covered.add(descriptor.rel)
            elif not descriptor.optional:
                raise MissingLinkError(
                    message=f"{operation_id}: link '{descriptor.rel}' is declared but missing",
                    details={"rel": descriptor.rel, "present": sorted(present)},
                    operation_id=operation_id,
                    rel=descriptor.rel,
                )
        return covered


def _check_operation(operation_id: str, method: str, path_template: str) -> str:
    if not operation_id or not isinstance(operation_id, str):
        raise InvalidOperationError(
            message="Operation id must be a non-empty string",
            operation_id=operation_id,
        )

    normalized = (method or '').upper()
    if normalized not in HTTP_METHODS:
        raise InvalidOperationError(
            message=f"{operation_id}: unknown HTTP method {method!r}",
            details={"method": method},
            operation_id=operation_id,
        )

    if not path_template or not path_template.startswith('/'):
        raise InvalidOperationError(
            message=f"{operation_id}: path template {path_template!r} must start with '/'",
            details={"path": path_template},
            operation_id=operation_id,
        )
    if path_template.count('{') != len(template_variables(path_template)):
        raise InvalidOperationError(
            message=f"{operation_id}: malformed variables in path template {path_template!r}",
            details={"path": path_template},
            operation_id=operation_id,
        )

    return normalized


def _check_parameters(operation_id: str, descriptors: Iterable[ParameterDescriptor], present) -> Set[str]:
    covered = set()
    for descriptor in descriptors:
        if present(descriptor.name):
            covered.add(descriptor.name)
        elif not descriptor.optional:
            location = descriptor.location.value
            raise MissingParameterError(
                message=f"{operation_id}: {location} parameter '{descriptor.name}' is declared but missing",
                details={"location": location, "name": descriptor.name},
                operation_id=operation_id,
                name=descriptor.name,
                location=location,
            )
    return covered


def _undocumented_keys(contract: ContractModel, payload: Any) -> Set[str]:
    """Top-level response keys that no declared response field starts with."""
    if not contract.response_fields or not isinstance(payload, dict):
        return set()
    documented = {top_level_key(f.path) for f in contract.response_fields}
    if contract.links:
        documented.update(_LINK_SECTIONS)
    return {key for key in payload if key not in documented}


_default = ExchangeNormalizer()


def normalize(
    operation_id: str,
    method: str,
    path_template: str,
    contract: ContractModel,
    example: Example,
) -> RecordedOperation:
    """Normalize with the default normalizer (HAL links, type checks on)."""
    return _default.normalize(operation_id, method, path_template, contract, example)
