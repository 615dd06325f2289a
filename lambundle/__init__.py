"""Bundle a Python handler into a Lambda archive and optionally deploy it."""

__version__ = "0.1.0"
from .bundle.archive import ArchiveMember, build_archive, write_archive
from .bundle.bundler import Bundle, bundle_entry
from .bundle.minifier import MinifiedBundle, minify_bundle
from .errors import (
    ArchiveError,
    BundleSyntaxError,
    CreateError,
    DeleteError,
    DeployError,
    LambundleError,
    MinifyError,
    OutputWriteError,
    ResolutionError,
)
from .models import BuildResult
from .pipeline import BuildPipeline, build_function
from .publish import LambdaClient, LambdaDeployer, create_lambda_client
from .schemas.build import BuildRequest, DeploySpec

__all__ = [
    "__version__",
    "ArchiveMember",
    "build_archive",
    "write_archive",
    "Bundle",
    "bundle_entry",
    "MinifiedBundle",
    "minify_bundle",
    "BuildPipeline",
    "build_function",
    "BuildRequest",
    "BuildResult",
    "DeploySpec",
    "LambdaClient",
    "LambdaDeployer",
    "create_lambda_client",
    "LambundleError",
    "ResolutionError",
    "BundleSyntaxError",
    "MinifyError",
    "ArchiveError",
    "OutputWriteError",
    "DeployError",
    "DeleteError",
    "CreateError",
]
