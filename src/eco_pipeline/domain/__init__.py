"""Domain layer: entities and value objects shared by every engine."""
from __future__ import annotations

__all__: list[str] = []
