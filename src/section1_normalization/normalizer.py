"""
Normalizer: Turns raw analysis payloads into canonical Finding records.

Whatever shape the analysis service answered in (single result, legacy
per-file list, unified batch), the output is one Finding whose score,
risk level, verdict and category scores agree with each other. Missing or
placeholder fields are repaired locally and reported as
InvariantBackfillWarning records; only input that is not a key/value object
at all is rejected.
"""

import logging
import math
import time
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .schemas import (
    CategoryKey,
    CategoryScores,
    ClassifiedPayload,
    Finding,
    InvariantBackfillWarning,
    LegacyBatchPayload,
    MERGED_LIST_CAP,
    NormalizationMetadata,
    PLACEHOLDER_STRINGS,
    PayloadShape,
    RiskLevel,
    SinglePayload,
    UNKNOWN_FILENAME,
    UnifiedBatchPayload,
    VerificationStatus,
)
from .shapes import SCORE_KEYS, classify_payload, coerce_payload

logger = logging.getLogger(__name__)


class _BackfillLog:
    """Collects the repairs made during one normalization call."""

    def __init__(self):
        self.warnings: list[InvariantBackfillWarning] = []

    def record(self, field: str, detail: str) -> None:
        warning = InvariantBackfillWarning(field=field, detail=detail)
        self.warnings.append(warning)
        logger.warning("Backfilled %s", warning)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def mean_half_up(values: list[int]) -> int:
    """Integer mean of ints, ties rounded up, without float error."""
    total, count = sum(values), len(values)
    return (2 * total + count) // (2 * count)


def coerce_score(value: Any) -> Optional[int]:
    """
    Read a 0-100 score from a number or numeric string ("85", "85%").

    Returns None when the value is not numeric. Out-of-range values are
    clamped and fractions rounded half up.
    """
    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().rstrip("%").strip()
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None

    if math.isnan(number) or math.isinf(number):
        return None
    return min(100, max(0, round_half_up(number)))


def string_items(value: Any) -> list[str]:
    """Non-empty, stripped strings from a list; anything else yields []."""
    if not isinstance(value, (list, tuple)):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _resolve_score(body: Mapping, log: _BackfillLog) -> int:
    for key in SCORE_KEYS:
        raw = body.get(key)
        if raw is None:
            continue
        score = coerce_score(raw)
        if score is None:
            log.record("score", f"unreadable {key}={raw!r}, defaulting to 0")
            return 0
        if not (isinstance(raw, int) and not isinstance(raw, bool) and raw == score):
            log.record("score", f"{key}={raw!r} coerced to {score}")
        return score

    log.record("score", "missing, defaulting to 0")
    return 0


def _resolve_risk_level(raw: Any, score: int, log: _BackfillLog) -> RiskLevel:
    # Always recomputed; a supplied level is only compared for reporting.
    expected = RiskLevel.from_score(score)
    if raw is None:
        log.record("risk_level", f"missing, derived {expected.value} from score {score}")
    elif not isinstance(raw, str) or raw.strip().lower() != expected.value.lower():
        log.record("risk_level", f"supplied {raw!r} contradicts score {score}, recomputed as {expected.value}")
    return expected


def _resolve_category_scores(
    raw: Any,
    score: int,
    log: _BackfillLog,
    field: str = "category_scores",
) -> CategoryScores:
    if not isinstance(raw, Mapping):
        reason = "missing" if raw is None else f"ill-typed ({type(raw).__name__})"
        log.record(field, f"{reason}, broadcast score {score}")
        return CategoryScores.broadcast(score)

    supplied = {}
    for key in CategoryKey:
        value = coerce_score(raw.get(key.value))
        if value is not None:
            supplied[key] = value

    if not supplied or all(value == 0 for value in supplied.values()):
        log.record(field, f"no non-zero scores supplied, broadcast score {score}")
        return CategoryScores.broadcast(score)

    missing = [key.value for key in CategoryKey if key not in supplied]
    if missing:
        log.record(field, f"filled {', '.join(missing)} with score {score}")

    return CategoryScores(**{key.value: supplied.get(key, score) for key in CategoryKey})


def _synthesize_verdict(score: int, risk_level: RiskLevel) -> str:
    status = VerificationStatus.from_score(score)
    return (
        f"Authenticity score of {score}/100 indicates {risk_level.value.lower()} risk; "
        f"the evidence is assessed as {status.value.lower()}."
    )


def _resolve_verdict(raw: Any, score: int, risk_level: RiskLevel, log: _BackfillLog) -> str:
    if isinstance(raw, str):
        verdict = raw.strip()
        if verdict and verdict not in PLACEHOLDER_STRINGS:
            return verdict

    verdict = _synthesize_verdict(score, risk_level)
    reason = "placeholder" if isinstance(raw, str) and raw.strip() else "missing"
    log.record("verdict", f"{reason}, synthesized from score {score}")
    return verdict


def _without_placeholders(raw: Any, field: str, log: _BackfillLog) -> list[str]:
    if raw is not None and not isinstance(raw, (list, tuple)):
        log.record(field, f"ill-typed ({type(raw).__name__}), ignored")
        return []

    items = string_items(raw)
    kept = [item for item in items if item not in PLACEHOLDER_STRINGS]
    dropped = len(items) - len(kept)
    if dropped and kept:
        log.record(field, f"dropped {dropped} placeholder entr{'y' if dropped == 1 else 'ies'}")
    return kept


def _resolve_reasons(raw: Any, score: int, risk_level: RiskLevel, log: _BackfillLog) -> tuple[str, ...]:
    reasons = _without_placeholders(raw, "reasons", log)
    if reasons:
        return tuple(reasons)

    log.record("reasons", "empty or placeholder, synthesized from score")
    return (f"Overall authenticity score of {score}/100 corresponds to {risk_level.value} risk.",)


def _resolve_signals(raw: Any, categories: CategoryScores, log: _BackfillLog) -> tuple[str, ...]:
    signals = _without_placeholders(raw, "signals", log)
    if signals:
        return tuple(signals)

    log.record("signals", "empty or placeholder, synthesized from category scores")
    weak = [f"Weak {key.label} ({value}/100)" for key, value in categories.items() if value < 40]
    return tuple(weak) or ("No analysis dimension scored below 40/100",)


def _resolve_filenames(body: Mapping, uploaded: list[str], log: _BackfillLog) -> tuple[str, ...]:
    for key in ("filenames", "analyzed_files"):
        names = string_items(body.get(key))
        if names:
            return tuple(names)

    filename = body.get("filename")
    if isinstance(filename, str) and filename.strip():
        return (filename.strip(),)

    if uploaded:
        log.record("filenames", f"taken from {len(uploaded)} uploaded file name(s)")
        return tuple(uploaded)

    log.record("filenames", f"none supplied, using {UNKNOWN_FILENAME!r}")
    return (UNKNOWN_FILENAME,)


def _resolve_claim(raw: Any, log: _BackfillLog) -> Optional[str]:
    if raw is None or isinstance(raw, str):
        return raw
    log.record("claim", f"ill-typed ({type(raw).__name__}), dropped")
    return None


def _resolve_batch_size(raw: Any, shape: PayloadShape, filenames: tuple[str, ...]) -> Optional[int]:
    if isinstance(raw, int) and not isinstance(raw, bool) and raw >= 0:
        return raw
    if shape is PayloadShape.SINGLE and len(filenames) == 1:
        return None
    return len(filenames)


def build_finding(
    body: Mapping,
    uploaded: list[str],
    log: _BackfillLog,
    shape: PayloadShape = PayloadShape.SINGLE,
) -> Finding:
    """Take well-typed fields as-is, then backfill every invariant."""
    score = _resolve_score(body, log)
    risk_level = _resolve_risk_level(body.get("risk_level"), score, log)
    categories = _resolve_category_scores(body.get("category_scores"), score, log)
    filenames = _resolve_filenames(body, uploaded, log)
    analysis_type = body.get("analysis_type")

    return Finding(
        score=score,
        risk_level=risk_level,
        verdict=_resolve_verdict(body.get("verdict"), score, risk_level, log),
        reasons=_resolve_reasons(body.get("reasons"), score, risk_level, log),
        signals=_resolve_signals(body.get("signals"), categories, log),
        category_scores=categories,
        filenames=filenames,
        filename=filenames[0] if len(filenames) == 1 else None,
        claim=_resolve_claim(body.get("claim"), log),
        batch_size=_resolve_batch_size(body.get("batch_size"), shape, filenames),
        analysis_type=analysis_type if isinstance(analysis_type, str) else None,
    )


def merge_legacy_entries(
    body: Mapping,
    entries: list[dict],
    uploaded: list[str],
    log: _BackfillLog,
) -> dict:
    """
    Fold a legacy list of per-file results into one raw result.

    Scores (overall and per category) are averaged with ties rounded up,
    reasons are concatenated in file order and signals de-duplicated, both
    capped at MERGED_LIST_CAP. Per-file risk levels are ignored; the merged
    level comes from the merged score.
    """
    count = len(entries)

    scores = []
    for index, entry in enumerate(entries):
        score = next(
            (coerce_score(entry[key]) for key in SCORE_KEYS if entry.get(key) is not None),
            None,
        )
        if score is None:
            log.record(f"results[{index}].score", "unreadable, counted as 0")
            score = 0
        scores.append(score)
    merged_score = mean_half_up(scores)

    per_entry_categories = [
        _resolve_category_scores(entry.get("category_scores"), score, log, field=f"results[{index}].category_scores")
        for index, (entry, score) in enumerate(zip(entries, scores))
    ]
    merged_categories = {
        key.value: mean_half_up([categories.get(key) for categories in per_entry_categories])
        for key in CategoryKey
    }

    reasons = [
        reason
        for entry in entries
        for reason in string_items(entry.get("reasons"))
        if reason not in PLACEHOLDER_STRINGS
    ]
    signals = [
        signal
        for entry in entries
        for signal in string_items(entry.get("signals"))
        if signal not in PLACEHOLDER_STRINGS
    ]

    # Empty per-file verdicts stay as empty segments
    verdicts = [
        entry["verdict"].strip() if isinstance(entry.get("verdict"), str) else ""
        for entry in entries
    ]

    filenames = []
    for index, entry in enumerate(entries):
        name = entry.get("filename")
        if isinstance(name, str) and name.strip():
            filenames.append(name.strip())
        elif index < len(uploaded):
            filenames.append(uploaded[index])

    claim = body.get("claim")
    if claim is None:
        claim = next((entry["claim"] for entry in entries if isinstance(entry.get("claim"), str)), None)

    return {
        "authenticity_score": merged_score,
        "risk_level": RiskLevel.from_score(merged_score).value,
        "category_scores": merged_categories,
        "reasons": reasons[:MERGED_LIST_CAP],
        "signals": list(dict.fromkeys(signals))[:MERGED_LIST_CAP],
        "verdict": f"Merged analysis of {count} {'file' if count == 1 else 'files'}: " + " | ".join(verdicts),
        "filenames": filenames,
        "claim": claim,
        "batch_size": count,
        "analysis_type": body.get("analysis_type"),
    }


class Normalizer:
    """
    Main entry point for result normalization.

    Stateless: every call classifies its own payload and returns a fresh
    Finding, so one instance can be shared freely.

    Example:
        >>> normalizer = Normalizer()
        >>> finding = normalizer.normalize({"authenticity_score": 62}, ["invoice.pdf"])
        >>> finding.risk_level
        <RiskLevel.MEDIUM: 'Medium'>
    """

    def normalize(self, raw_payload: Any, uploaded_file_names: Iterable[str] = ()) -> Finding:
        """
        Normalize a raw payload into a Finding.

        Args:
            raw_payload: Mapping, pydantic model, or JSON text
            uploaded_file_names: Names of the uploaded files, used when the
                payload does not name them itself

        Raises:
            MalformedPayloadError: If the payload is not a key/value object
        """
        finding, _ = self.normalize_with_metadata(raw_payload, uploaded_file_names)
        return finding

    def normalize_with_metadata(
        self,
        raw_payload: Any,
        uploaded_file_names: Iterable[str] = (),
    ) -> tuple[Finding, NormalizationMetadata]:
        """Normalize and also report the detected shape and every backfill."""
        started = time.perf_counter()
        processed_at = datetime.now(timezone.utc)

        body = coerce_payload(raw_payload)
        classified = classify_payload(body)
        uploaded = self._uploaded_names(uploaded_file_names)
        log = _BackfillLog()

        finding, entry_count = self._dispatch(classified, uploaded, log)

        metadata = NormalizationMetadata(
            shape=classified.shape,
            entry_count=entry_count,
            processed_at=processed_at,
            processing_time_ms=int((time.perf_counter() - started) * 1000),
            warnings=log.warnings,
        )
        logger.debug(
            "Normalized %s payload: score=%d risk=%s backfilled=%d",
            classified.shape.value, finding.score, finding.risk_level.value, len(log.warnings),
        )
        return finding, metadata

    def normalize_file(self, file_path: str | Path, uploaded_file_names: Iterable[str] = ()) -> Finding:
        """
        Normalize a payload stored as a JSON file.

        Raises:
            FileNotFoundError: If the file does not exist
            MalformedPayloadError: If its content is not a JSON object
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")
        return self.normalize(file_path.read_text(encoding="utf-8"), uploaded_file_names)

    def _dispatch(
        self,
        classified: ClassifiedPayload,
        uploaded: list[str],
        log: _BackfillLog,
    ) -> tuple[Finding, int]:
        if isinstance(classified, LegacyBatchPayload):
            merged = merge_legacy_entries(classified.body, classified.entries, uploaded, log)
            return build_finding(merged, uploaded, log, classified.shape), len(classified.entries)

        if isinstance(classified, (UnifiedBatchPayload, SinglePayload)):
            return build_finding(classified.body, uploaded, log, classified.shape), 1

        raise TypeError(f"Unhandled payload variant: {type(classified).__name__}")

    @staticmethod
    def _uploaded_names(uploaded_file_names: Optional[Iterable[str] | str]) -> list[str]:
        if uploaded_file_names is None:
            return []
        if isinstance(uploaded_file_names, str):
            uploaded_file_names = [uploaded_file_names]
        return string_items(list(uploaded_file_names))


def normalize(raw_payload: Any, uploaded_file_names: Iterable[str] = ()) -> Finding:
    """
    Convenience function to normalize a single payload.

    Example:
        >>> finding = normalize('{"authenticity_score": 95, "risk_level": "High"}')
        >>> finding.risk_level.value
        'Low'
    """
    return Normalizer().normalize(raw_payload, uploaded_file_names)


def normalize_with_metadata(
    raw_payload: Any,
    uploaded_file_names: Iterable[str] = (),
) -> tuple[Finding, NormalizationMetadata]:
    return Normalizer().normalize_with_metadata(raw_payload, uploaded_file_names)


def to_raw_payload(finding: Finding) -> dict:
    """
    Serialize a Finding back into the raw key layout senders use.

    Single-file findings come out in the Single shape, so normalizing the
    result yields an equal Finding.
    """
    raw = {
        "authenticity_score": finding.score,
        "risk_level": finding.risk_level.value,
        "category_scores": {key.value: value for key, value in finding.category_scores.items()},
        "reasons": list(finding.reasons),
        "signals": list(finding.signals),
        "verdict": finding.verdict,
        "filenames": list(finding.filenames),
    }
    if finding.filename is not None:
        raw["filename"] = finding.filename
    if finding.claim is not None:
        raw["claim"] = finding.claim
    if finding.batch_size is not None:
        raw["batch_size"] = finding.batch_size
    if finding.analysis_type is not None:
        raw["analysis_type"] = finding.analysis_type
    return raw
