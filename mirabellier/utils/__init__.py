"""Utility modules for the Mirabellier API."""

from mirabellier.utils.magic_bytes import detect_content_type, validate_content_type


__all__ = ["detect_content_type", "validate_content_type"]
