"""Router module.

Routers are split into `wallmeasure.api.endpoints`; this module re-exports the
combined `router` object.
"""

from __future__ import annotations

from wallmeasure.api.endpoints import router  # noqa: F401
