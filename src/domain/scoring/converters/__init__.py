"""Converters from source payloads to dry scores, one per import type."""
