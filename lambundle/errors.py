"""Exception hierarchy raised by the build pipeline."""

from __future__ import annotations


class LambundleError(RuntimeError):
    """Base class for every stage failure."""

    stage = "build"


class ResolutionError(LambundleError):
    """Raised when the entry, its handler or a local import cannot be located."""

    stage = "bundle"


class BundleSyntaxError(LambundleError):
    """Raised when a contributing source cannot be decoded or parsed."""

    stage = "bundle"


class MinifyError(LambundleError):
    stage = "minify"


class ArchiveError(LambundleError):
    """Raised when an archive member cannot be read or collides with another."""

    stage = "archive"


class OutputWriteError(LambundleError):
    stage = "output"


class DeployError(LambundleError):
    stage = "deploy"


class DeleteError(DeployError):
    """Raised when removing an existing function fails for a reason other than absence."""


class CreateError(DeployError):
    """Raised when the function cannot be created."""
