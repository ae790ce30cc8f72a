"""
Errors raised by the normalization stage.
"""

from typing import Optional


class MalformedPayloadError(ValueError):
    """
    The raw payload cannot be read as a key/value object.

    This is the only condition normalization refuses; every other
    inconsistency is repaired by backfill.
    """

    def __init__(self, message: str, payload_type: Optional[str] = None):
        super().__init__(message)
        self.payload_type = payload_type
