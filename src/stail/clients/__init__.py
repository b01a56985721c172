"""Service clients implementing `IStreamClient`."""

from stail.clients.kinesis import KinesisClient, build_session

__all__ = [
    "KinesisClient",
    "build_session",
]
