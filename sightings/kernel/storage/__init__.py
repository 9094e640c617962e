"""
Blob storage collaborator.
"""

from sightings.kernel.storage.blob import BlobStore, MinioBlobStore

__all__ = [
    "BlobStore",
    "MinioBlobStore",
]
