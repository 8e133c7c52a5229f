from .gtfs_zip_loader import GtfsZipLoader
from .in_memory_gtfs_repository import (
    GtfsDataset,
    InMemoryGtfsRepository,
    RepositoryStats,
)

__all__ = [
    "GtfsDataset",
    "GtfsZipLoader",
    "InMemoryGtfsRepository",
    "RepositoryStats",
]
