"""
Pydantic schemas for Section 1: Result Normalization

These models define the canonical Finding record produced from any of the
historical analysis response shapes, plus the tagged payload variants used
internally while normalizing.
"""

from datetime import datetime
from enum import Enum
from typing import Iterator, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# Default strings upstream senders use when they had nothing meaningful to say.
# A field holding one of these is treated as "not supplied".
MULTIMODAL_PLACEHOLDER = "Multimodal analysis completed across all files."
CROSS_FILE_PLACEHOLDER = "Cross-file analysis performed."
VERDICT_PLACEHOLDER = "Analysis completed. Review details for specific findings."

PLACEHOLDER_STRINGS = frozenset({
    MULTIMODAL_PLACEHOLDER,
    CROSS_FILE_PLACEHOLDER,
    VERDICT_PLACEHOLDER,
})

UNKNOWN_FILENAME = "Unknown"

# Hard cap applied when several per-file results are merged into one Finding
MERGED_LIST_CAP = 7


class RiskLevel(str, Enum):
    """Risk level derived from the authenticity score."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def from_score(cls, score: int) -> "RiskLevel":
        """Map a 0-100 authenticity score onto its risk level."""
        if score >= 70:
            return cls.LOW
        if score >= 40:
            return cls.MEDIUM
        return cls.HIGH


class VerificationStatus(str, Enum):
    """Headline status shown next to the risk level."""
    AUTHENTIC = "AUTHENTIC"
    SUSPICIOUS = "SUSPICIOUS"
    TAMPERED = "TAMPERED"

    @classmethod
    def from_score(cls, score: int) -> "VerificationStatus":
        if score >= 80:
            return cls.AUTHENTIC
        if score >= 50:
            return cls.SUSPICIOUS
        return cls.TAMPERED

    @property
    def description(self) -> str:
        return STATUS_DESCRIPTIONS[self]


STATUS_DESCRIPTIONS = {
    VerificationStatus.AUTHENTIC: (
        "No significant anomalies detected. Visual and textual evidence align "
        "with known authentic patterns."
    ),
    VerificationStatus.SUSPICIOUS: (
        "Minor structural or metadata inconsistencies detected. Exercise "
        "caution before proceeding."
    ),
    VerificationStatus.TAMPERED: (
        "High-probability of synthetic manipulation or manual tampering "
        "detected in artifacts."
    ),
}


class CategoryKey(str, Enum):
    """The six analysis dimensions every Finding is scored on."""
    MULTIMODAL_MATCH = "multimodal_match"
    DOCUMENT_FORENSICS = "document_forensics"
    VISUAL_ARTIFACTS = "visual_artifacts"
    LOGICAL_CONSISTENCY = "logical_consistency"
    SYNTHETIC_SIGNS = "synthetic_signs"
    SHADOW_PERSPECTIVE = "shadow_perspective"

    @property
    def label(self) -> str:
        """Human readable name, e.g. 'Shadow Perspective'."""
        return self.value.replace("_", " ").title()


class CategoryScores(BaseModel):
    """Per-dimension sub-scores. Exactly the six CategoryKey fields."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    multimodal_match: int = Field(..., ge=0, le=100)
    document_forensics: int = Field(..., ge=0, le=100)
    visual_artifacts: int = Field(..., ge=0, le=100)
    logical_consistency: int = Field(..., ge=0, le=100)
    synthetic_signs: int = Field(..., ge=0, le=100)
    shadow_perspective: int = Field(..., ge=0, le=100)

    @classmethod
    def broadcast(cls, score: int) -> "CategoryScores":
        """Every dimension set to the same value."""
        return cls(**{key.value: score for key in CategoryKey})

    def get(self, key: CategoryKey) -> int:
        return getattr(self, key.value)

    def items(self) -> Iterator[tuple[CategoryKey, int]]:
        """Iterate (key, score) pairs in the fixed CategoryKey order."""
        for key in CategoryKey:
            yield key, self.get(key)


class Finding(BaseModel):
    """
    The canonical, invariant-satisfying analysis record.

    Built once per normalization call and never mutated afterwards. The
    Normalizer guarantees score/risk_level/verdict/category_scores agree
    with each other; this model only enforces the structural bounds.
    """
    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=100, description="Authenticity score (100 = claim fully accurate)")
    risk_level: RiskLevel = Field(..., description="Risk level derived from score")
    verdict: str = Field(..., min_length=1, description="One sentence professional verdict")
    reasons: tuple[str, ...] = Field(..., min_length=1, description="Ordered explanations for the verdict")
    signals: tuple[str, ...] = Field(default=(), description="Technical forensic signals detected")
    category_scores: CategoryScores = Field(..., description="Scores for the six analysis dimensions")

    filenames: tuple[str, ...] = Field(..., min_length=1, description="Analyzed file names in upload order")
    filename: Optional[str] = Field(None, description="Set only for single-file findings")

    # None = never supplied; "" = supplied but empty
    claim: Optional[str] = Field(None, description="User claim the evidence was checked against")

    # Unified batch metadata
    batch_size: Optional[int] = Field(None, ge=0, description="Number of files analyzed together")
    analysis_type: Optional[str] = Field(None, description="e.g. 'multimodal_batch'")

    @property
    def status(self) -> VerificationStatus:
        return VerificationStatus.from_score(self.score)

    @property
    def is_batch(self) -> bool:
        return len(self.filenames) > 1


class PayloadShape(str, Enum):
    """Which historical response shape a raw payload was sent in."""
    SINGLE = "single"
    LEGACY_BATCH = "legacy_batch"
    UNIFIED_BATCH = "unified_batch"


class SinglePayload(BaseModel):
    """One finding's fields at the top level."""
    shape: Literal[PayloadShape.SINGLE] = PayloadShape.SINGLE
    body: dict


class LegacyBatchPayload(BaseModel):
    """Wrapper holding one result per file that still need merging."""
    shape: Literal[PayloadShape.LEGACY_BATCH] = PayloadShape.LEGACY_BATCH
    body: dict
    entries: list[dict] = Field(..., min_length=1)


class UnifiedBatchPayload(BaseModel):
    """One already-unified finding plus the list of files it covers."""
    shape: Literal[PayloadShape.UNIFIED_BATCH] = PayloadShape.UNIFIED_BATCH
    body: dict


ClassifiedPayload = Union[SinglePayload, LegacyBatchPayload, UnifiedBatchPayload]


class InvariantBackfillWarning(BaseModel):
    """
    Record of a field that was synthesized or corrected instead of trusted.

    Non-fatal: collected on NormalizationMetadata and logged, never raised.
    """
    field: str = Field(..., description="Finding field that was repaired")
    detail: str = Field(..., description="What was wrong and what replaced it")

    def __str__(self) -> str:
        return f"{self.field}: {self.detail}"


class NormalizationMetadata(BaseModel):
    """Metadata about one normalization call."""
    shape: PayloadShape = Field(..., description="Detected payload shape")
    entry_count: int = Field(default=1, description="Per-file results merged (legacy batches)")
    processed_at: datetime = Field(..., description="When normalization ran")
    processing_time_ms: Optional[int] = Field(None, description="Time taken in milliseconds")
    warnings: list[InvariantBackfillWarning] = Field(default_factory=list, description="Fields repaired by backfill")

    @property
    def backfilled_fields(self) -> list[str]:
        return [warning.field for warning in self.warnings]
