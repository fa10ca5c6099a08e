"""Shared testing fixtures for the image_converter test suite."""

from .codec import CollectingSink, FakeCodec  # noqa: F401
from .workspace import WorkspaceBuilder, build_tree  # noqa: F401

__all__ = [
    "CollectingSink",
    "FakeCodec",
    "WorkspaceBuilder",
    "build_tree",
]
