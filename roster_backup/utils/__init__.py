"""Utility helpers."""

from .cursor import MAX_CURSOR_ID, check_cursor_id, decode_cursor, encode_cursor

__all__ = ["MAX_CURSOR_ID", "check_cursor_id", "decode_cursor", "encode_cursor"]
