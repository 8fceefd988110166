"""Infrastructure collaborators: processes, remote API, scanning, reporting."""
from __future__ import annotations

__all__: list[str] = []
