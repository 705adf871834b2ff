"""
Opaque pagination cursors.

A cursor is standard base64 over the compact JSON object ``{"id": <id>}``.
It carries only the last-seen backup id, so every search ordering must end
with an id tie-break for the cursor to be unambiguous.
"""

import base64
import binascii
import json
import logging
from typing import Optional

from roster_backup.exceptions import InvalidCursor

logger = logging.getLogger(__name__)

# Ids are positive 64-bit integers in every supported store
MAX_CURSOR_ID = 2**63 - 1


def encode_cursor(last_id: Optional[int]) -> Optional[str]:
    """Encode ``last_id`` as a cursor. ``None`` encodes to ``None``."""
    if last_id is None:
        return None
    payload = json.dumps({"id": int(last_id)}, separators=(",", ":"))
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> int:
    """
    Decode a cursor back to the id it carries.

    Raises:
        InvalidCursor: not base64, not a JSON object, or no usable integer "id"
    """
    try:
        raw = base64.b64decode(cursor, validate=True)
        node = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError, TypeError) as e:
        logger.warning(f"Invalid cursor: {cursor!r}")
        raise InvalidCursor(f"Invalid cursor format: {cursor!r}") from e

    last_id = node.get("id") if isinstance(node, dict) else None
    if isinstance(last_id, bool) or not isinstance(last_id, int):
        logger.warning(f"Cursor without an integer id: {cursor!r}")
        raise InvalidCursor(f"Invalid cursor format: {cursor!r}")
    return check_cursor_id(last_id)


def check_cursor_id(last_id: int) -> int:
    """
    Return ``last_id`` if it can name a stored backup.

    Raises:
        InvalidCursor: not an integer in 1..MAX_CURSOR_ID
    """
    if isinstance(last_id, bool) or not isinstance(last_id, int) or not 1 <= last_id <= MAX_CURSOR_ID:
        logger.warning(f"Cursor id out of range: {last_id!r}")
        raise InvalidCursor(f"Cursor id must be an integer between 1 and {MAX_CURSOR_ID}, got {last_id!r}")
    return last_id
