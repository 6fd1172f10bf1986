"""Errors raised while interpreting ledger records."""

from __future__ import annotations


class MalformedRecordError(ValueError):
    """A field expected to parse as an integer, identifier or type tag did not."""


__all__ = ["MalformedRecordError"]
