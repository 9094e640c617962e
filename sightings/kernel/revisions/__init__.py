"""
Revision Store Engine and its entity specializations.
"""

from sightings.kernel.revisions.collection import RevisionCollection
from sightings.kernel.revisions.store import Fields, RevisionStore
from sightings.kernel.revisions.images import ImageStore, storage_key_for
from sightings.kernel.revisions.observations import ObservationStore

__all__ = [
    "RevisionCollection",
    "Fields",
    "RevisionStore",
    "ImageStore",
    "storage_key_for",
    "ObservationStore",
]
