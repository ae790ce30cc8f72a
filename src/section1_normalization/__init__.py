"""
Section 1: Result Normalization

Turns raw, schema-drifting analysis payloads into one canonical Finding.

Accepted payload shapes:
- Single: one result's fields at the top level
- Legacy batch: a wrapper with a per-file "results" list, merged here
- Unified batch: one result plus "filenames" and batch metadata

Example:
    >>> from src.section1_normalization import normalize
    >>>
    >>> finding = normalize(payload, uploaded_file_names=["invoice.pdf"])
    >>> finding.score, finding.risk_level
"""

from .exceptions import MalformedPayloadError
from .schemas import (
    CategoryKey,
    CategoryScores,
    Finding,
    InvariantBackfillWarning,
    NormalizationMetadata,
    PayloadShape,
    PLACEHOLDER_STRINGS,
    RiskLevel,
    UNKNOWN_FILENAME,
    VerificationStatus,
)
from .shapes import classify_payload, coerce_payload
from .normalizer import Normalizer, normalize, normalize_with_metadata, to_raw_payload

__all__ = [
    # Schemas
    "CategoryKey",
    "CategoryScores",
    "Finding",
    "InvariantBackfillWarning",
    "NormalizationMetadata",
    "PayloadShape",
    "PLACEHOLDER_STRINGS",
    "RiskLevel",
    "UNKNOWN_FILENAME",
    "VerificationStatus",
    # Errors
    "MalformedPayloadError",
    # Shape detection
    "classify_payload",
    "coerce_payload",
    # Normalizer
    "Normalizer",
    "normalize",
    "normalize_with_metadata",
    "to_raw_payload",
]
