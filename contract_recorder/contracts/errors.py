"""
Error taxonomy for contract recording.

Hierarchy:
- ContractRecorderError
  - InvalidContractError       malformed declaration (skip that operation)
  - NormalizationError         one exchange violated its contract
    - InvalidOperationError
    - MissingParameterError
    - MissingFieldError
    - FieldTypeMismatchError
    - MissingLinkError
  - ConflictingOperationError  same id, different method/path (fatal for the run)
  - EmptyRegistryError         nothing recorded (warning unless strict)

Every error carries a human message plus a details dict so the harness can
print or serialize it without knowing the concrete type.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional


@dataclass
class ContractRecorderError(Exception):
    """Base class for every recorder failure."""
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self):
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        payload = {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }
        for f in fields(self):
            if f.name not in ("message", "details"):
                payload[f.name] = getattr(self, f.name)
        return payload


@dataclass
class InvalidContractError(ContractRecorderError):
    """Raised when a contract declaration is malformed."""


@dataclass
class NormalizationError(ContractRecorderError):
    """Raised when an observed exchange does not satisfy its contract."""
    operation_id: Optional[str] = None
    example_index: Optional[int] = None


@dataclass
class InvalidOperationError(NormalizationError):
    """Unknown HTTP method or malformed path template."""


@dataclass
class MissingParameterError(NormalizationError):
    name: str = ""
    location: str = ""


@dataclass
class MissingFieldError(NormalizationError):
    path: str = ""
    section: str = ""


@dataclass
class FieldTypeMismatchError(NormalizationError):
    path: str = ""
    expected: str = ""
    received: str = ""


@dataclass
class MissingLinkError(NormalizationError):
    rel: str = ""


@dataclass
class ConflictingOperationError(ContractRecorderError):
    """Two recordings disagree on method or path template for one id."""
    operation_id: str = ""


@dataclass
class EmptyRegistryError(ContractRecorderError):
    """Emission was requested for a run that recorded nothing."""
