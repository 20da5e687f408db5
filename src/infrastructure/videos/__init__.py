"""Domain video catalogue access."""

from src.infrastructure.videos.base import VideoRepositoryBase
from src.infrastructure.videos.documentdb_repository import DocumentDBVideoRepository

__all__ = [
    "VideoRepositoryBase",
    "DocumentDBVideoRepository",
]
