"""
ContractRecorder - normalize + merge for one observed exchange.

The harness passes its registry explicitly:

    registry = OperationRegistry()
    recorder = ContractRecorder(registry)
    recorder.record("carts-create", "POST", "/carts", "Create a cart", example)
    document = SpecEmitter().emit(registry)
"""

import logging
from typing import Any, Optional

from ..config import RecorderConfig
from ..contracts.errors import InvalidContractError, NormalizationError
from ..contracts.models import contract_from
from .exchange import Example, RecordedOperation
from .normalize import ExchangeNormalizer
from .registry import OperationRegistry


logger = logging.getLogger('contract_recorder.recorder')


class ContractRecorder:
    """Records exchanges into one registry."""

    def __init__(self, registry: OperationRegistry, normalizer: Optional[ExchangeNormalizer] = None):
        self.registry = registry
        self.normalizer = normalizer or ExchangeNormalizer()

    @classmethod
    def from_config(cls, registry: OperationRegistry, config: RecorderConfig) -> "ContractRecorder":
        return cls(registry, ExchangeNormalizer(validate_types=config.validate_types))

    def record(
        self,
        operation_id: str,
        method: str,
        path_template: str,
        contract: Any,
        example: Example,
    ) -> RecordedOperation:
        """
        Validate one exchange and merge it into the registry.

        Args:
            contract: ContractModel, builder-style config mapping, or a bare
                description string

        Raises:
            InvalidContractError: The declaration itself is malformed
            NormalizationError: The exchange violated the contract
                (example_index is the position it would have taken)
            ConflictingOperationError: Method/path disagree with an earlier
                recording under the same id
        """
        try:
            model = contract_from(contract)
        except InvalidContractError as e:
            logger.warning(
                f"Skipping {operation_id}: {e.message}",
                extra={"event": "invalid_contract", "operation_id": operation_id, "details": e.details},
            )
            raise

        try:
            op = self.normalizer.normalize(operation_id, method, path_template, model, example)
        except NormalizationError as e:
            e.operation_id = operation_id
            e.example_index = self.registry.example_count(operation_id)
            logger.warning(
                f"Contract violation: operation={operation_id} "
                f"example={e.example_index} message={e.message}",
                extra={"event": "contract_violation", "operation_id": operation_id, "details": e.details},
            )
            raise

        return self.registry.merge(op)
