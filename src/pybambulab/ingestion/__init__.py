"""Ingestion layer.

Turns inbound printer messages into state-store writes: classification and
routing (``dispatch``), the JSON-to-state projection (``explorer``) and the
value normalizers (``normalize``).
"""

__all__: list[str] = []
