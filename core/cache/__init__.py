"""Quality cache package.

Provides the persistent cache of validated translations and the collapsing of concurrent
identical requests.
"""

from __future__ import annotations

from core.cache.inflight_manager import InFlightManager
from core.cache.manager import QualityCache

__all__: list[str] = ["InFlightManager", "QualityCache"]
