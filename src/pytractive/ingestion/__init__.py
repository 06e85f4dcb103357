"""Ingestion layer.

This package contains adapters that turn vendor payloads (poll records and
push-channel messages) into normalized snapshots.
"""

__all__: list[str] = []
