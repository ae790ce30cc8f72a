"""
Text utilities shared by the layout engine and file naming.

- sanitize_text: make any string representable in the base-14 fonts
- split_preserving_whitespace: tokenize without losing interior spacing
- is_risk_term: decide whether a word gets bold emphasis
"""

import re
import string
from enum import Enum


# Applied before the generic non-ASCII fallback
SUBSTITUTIONS = {
    "\u2018": "'",    # left single quote
    "\u2019": "'",    # right single quote
    "\u201a": "'",
    "\u201c": '"',    # left double quote
    "\u201d": '"',    # right double quote
    "\u201e": '"',
    "\u2013": "-",    # en dash
    "\u2014": "-",    # em dash
    "\u2212": "-",    # minus sign
    "\u2026": "...",  # ellipsis
    "\u2022": "*",    # bullet
    "\u00b7": "*",
    "\u00a0": " ",    # no-break space
    "\u20ac": "EUR",
    "\u00a3": "GBP",
    "\u00a5": "JPY",
    "\u20b9": "INR",
    "\u20bd": "RUB",
    "\u20a9": "KRW",
    "\u00a9": "(c)",
    "\u00ae": "(R)",
    "\u2122": "(TM)",
    "\u00b0": " deg",
    "\u00d7": "x",
    "\u00b1": "+/-",
    "\u2192": "->",
    "\u2190": "<-",
    "\u2264": "<=",
    "\u2265": ">=",
    "\u2260": "!=",
}

_SUBSTITUTION_PATTERN = re.compile("|".join(re.escape(char) for char in SUBSTITUTIONS))
_NON_ASCII_PATTERN = re.compile(r"[^\x00-\x7f]")
_WHITESPACE_SPLIT = re.compile(r"(\s+)")
_FILENAME_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")

# Opening punctuation stripped before a vocabulary lookup
_LEADING_PUNCTUATION = "\"'([{<"


def sanitize_text(text: str) -> str:
    """Replace known glyphs with ASCII equivalents, anything else non-ASCII with '?'."""
    if not text:
        return ""
    text = _SUBSTITUTION_PATTERN.sub(lambda match: SUBSTITUTIONS[match.group(0)], text)
    return _NON_ASCII_PATTERN.sub("?", text)


def split_preserving_whitespace(text: str) -> list[str]:
    """
    Split into alternating word and whitespace tokens.

    "a  b" -> ["a", "  ", "b"]; joining the tokens gives back the input.
    """
    return [token for token in _WHITESPACE_SPLIT.split(text) if token]


def sanitize_filename_part(name: str, max_length: int = 50) -> str:
    """File stem reduced to [A-Za-z0-9._-], e.g. 'Invoice #42.pdf' -> 'Invoice_42'."""
    stem = sanitize_text(name).rsplit("/", 1)[-1].rsplit("\\", 1)[-1]
    if "." in stem.strip("."):
        stem = stem.rsplit(".", 1)[0]
    cleaned = _FILENAME_UNSAFE.sub("_", stem).strip("._-")
    return cleaned[:max_length]


class RiskTerm(str, Enum):
    """Vocabulary that marks a word as risk-bearing in reasons and signals."""
    FRAUD = "fraud"
    FRAUDULENT = "fraudulent"
    TAMPERED = "tampered"
    TAMPERING = "tampering"
    MISMATCH = "mismatch"
    MISMATCHED = "mismatched"
    FORGED = "forged"
    FORGERY = "forgery"
    SUSPICIOUS = "suspicious"
    MANIPULATED = "manipulated"
    MANIPULATION = "manipulation"
    FAKE = "fake"
    FABRICATED = "fabricated"
    ALTERED = "altered"
    EDITED = "edited"
    SYNTHETIC = "synthetic"
    DEEPFAKE = "deepfake"
    INCONSISTENT = "inconsistent"
    INCONSISTENCY = "inconsistency"
    INCONSISTENCIES = "inconsistencies"
    ANOMALY = "anomaly"
    ANOMALIES = "anomalies"
    ANOMALOUS = "anomalous"
    SPLICED = "spliced"
    CLONED = "cloned"
    MISLEADING = "misleading"
    FALSE = "false"
    COUNTERFEIT = "counterfeit"
    DOCTORED = "doctored"
    DISCREPANCY = "discrepancy"
    DISCREPANCIES = "discrepancies"
    WARPED = "warped"
    MISALIGNED = "misaligned"
    MISALIGNMENT = "misalignment"
    DECEPTIVE = "deceptive"


RISK_VOCABULARY = frozenset(term.value for term in RiskTerm)


def normalize_word(word: str) -> str:
    return word.rstrip(string.punctuation).lstrip(_LEADING_PUNCTUATION).lower()


def is_risk_term(word: str) -> bool:
    """
    Whether a word is in the risk vocabulary.

    Trailing punctuation and case are ignored: "Tampered." matches,
    "authentic" does not.
    """
    return normalize_word(word) in RISK_VOCABULARY
