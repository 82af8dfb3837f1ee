"""Reference oracle: chases definitions through a location provider."""

from actionlens.resolve.chaser import (
    DEFAULT_MAX_HOPS,
    Document,
    Location,
    LocationProvider,
    make_resolve_fn,
)
from actionlens.resolve.workspace import WorkspaceLocationProvider

__all__ = [
    "DEFAULT_MAX_HOPS",
    "Document",
    "Location",
    "LocationProvider",
    "WorkspaceLocationProvider",
    "make_resolve_fn",
]
