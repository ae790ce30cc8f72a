"""
Payload coercion and shape classification.

Raw analysis payloads arrive in one of three untagged shapes. This module
turns whatever the caller handed over into a plain dict and then tags it
with an explicit PayloadShape so the normalizer can dispatch on the variant
instead of probing fields repeatedly.
"""

import json
import logging
import re
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel

from .exceptions import MalformedPayloadError
from .schemas import (
    ClassifiedPayload,
    LegacyBatchPayload,
    SinglePayload,
    UnifiedBatchPayload,
)

logger = logging.getLogger(__name__)

# Keys that may hold the overall score, in lookup order
SCORE_KEYS = ("authenticity_score", "score")

# Keys a legacy wrapper used for its per-file result list
RESULT_LIST_KEYS = ("results", "file_results", "individual_results")

BATCH_MARKER_KEYS = ("batch_size", "analyzed_files")

# Model responses sometimes wrap the JSON object in prose or code fences
JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


def coerce_payload(raw_payload: Any) -> dict:
    """
    Turn a raw payload into a key/value dict.

    Accepts mappings, pydantic models and JSON text (str or bytes). Text
    that is not pure JSON is searched for its outermost {...} span.

    Raises:
        MalformedPayloadError: If no key/value object can be recovered
    """
    payload_type = type(raw_payload).__name__

    if isinstance(raw_payload, Mapping):
        return dict(raw_payload)

    if isinstance(raw_payload, BaseModel):
        return raw_payload.model_dump()

    if isinstance(raw_payload, (bytes, bytearray)):
        try:
            raw_payload = raw_payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedPayloadError(f"Payload bytes are not UTF-8: {exc}", payload_type) from exc

    if isinstance(raw_payload, str):
        parsed = _parse_json_text(raw_payload, payload_type)
        if isinstance(parsed, dict):
            return parsed
        raise MalformedPayloadError(
            f"Payload JSON is a {type(parsed).__name__}, expected an object",
            payload_type,
        )

    raise MalformedPayloadError(
        f"Payload of type {payload_type} is not a structured object",
        payload_type,
    )


def _parse_json_text(text: str, payload_type: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    match = JSON_OBJECT_PATTERN.search(text)
    if not match:
        raise MalformedPayloadError(
            f"No JSON object found in payload text: {text[:200]!r}",
            payload_type,
        )

    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise MalformedPayloadError(f"Failed to parse embedded JSON object: {exc}", payload_type) from exc


def has_score(entry: Any) -> bool:
    """Whether a mapping carries a score-like field."""
    return isinstance(entry, Mapping) and any(key in entry for key in SCORE_KEYS)


def find_result_entries(body: dict) -> Optional[list[dict]]:
    """Return the per-file results list of a legacy wrapper, if there is one."""
    for key in RESULT_LIST_KEYS:
        entries = body.get(key)
        if isinstance(entries, list) and entries and all(has_score(entry) for entry in entries):
            return [dict(entry) for entry in entries]
    return None


def is_unified_batch(body: dict) -> bool:
    filenames = body.get("filenames")
    if isinstance(filenames, list) and len(filenames) != 1:
        return True

    if any(body.get(key) is not None for key in BATCH_MARKER_KEYS):
        return True

    analysis_type = body.get("analysis_type")
    return isinstance(analysis_type, str) and "batch" in analysis_type.lower()


def classify_payload(body: dict) -> ClassifiedPayload:
    """
    Tag a coerced payload with its shape.

    Legacy wrappers win over unified markers: a dict with a per-file results
    list is always merged, even if it also carries batch metadata.
    """
    entries = find_result_entries(body)
    if entries is not None:
        classified = LegacyBatchPayload(body=body, entries=entries)
    elif is_unified_batch(body):
        classified = UnifiedBatchPayload(body=body)
    else:
        classified = SinglePayload(body=body)

    logger.debug("Classified payload as %s", classified.shape.value)
    return classified
