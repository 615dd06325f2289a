"""Schema definitions for build configuration."""

from .build import BuildRequest, DeploySpec

__all__ = ["BuildRequest", "DeploySpec"]
