"""Build pipeline: bundle, minify, archive, write and deploy one handler."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Union

from .bundle.archive import ArchiveMember, build_archive, read_member, write_archive
from .bundle.bundler import Bundle, bundle_entry
from .bundle.minifier import MinifiedBundle, minify_bundle
from .models import BuildResult
from .publish.client import LambdaClient, create_lambda_client
from .publish.deployer import LambdaDeployer
from .schemas.build import BuildRequest, DeploySpec

logger = logging.getLogger(__name__)

Bundler = Callable[[Path, str], Bundle]
Minifier = Callable[..., MinifiedBundle]
ClientFactory = Callable[[DeploySpec], LambdaClient]


class BuildPipeline:
    """Runs the build stages for one request at a time.

    Stages run in a fixed order and the first failure aborts the run. Side
    effects that already happened, such as a written output file, are not
    rolled back when a later stage fails.
    """

    def __init__(
        self,
        *,
        bundler: Bundler = bundle_entry,
        minifier: Minifier = minify_bundle,
        client_factory: ClientFactory = create_lambda_client,
        max_workers: int = 4,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.bundler = bundler
        self.minifier = minifier
        self.client_factory = client_factory
        self.max_workers = max_workers

    def run(self, request: BuildRequest) -> BuildResult:
        """Build ``request`` and return the archive bytes with its artifacts."""

        artifacts: dict[str, object] = {}
        bundle, extra_members = self._bundle_and_read(request)

        code = bundle.text
        if request.minify:
            minified = self.minifier(bundle, sourcemap=request.wants_sourcemap)
            code = minified.code
            if request.wants_sourcemap and minified.sourcemap is not None:
                artifacts["sourcemap"] = minified.sourcemap

        archive_bytes = build_archive(
            [ArchiveMember(name=request.archive_name, source=code.encode("utf-8")), *extra_members]
        )

        if request.output_path is not None:
            write_archive(archive_bytes, request.output_path)

        if request.deploy is not None:
            client = self.client_factory(request.deploy)
            deployer = LambdaDeployer(client)
            artifacts["lambda"] = deployer.deploy(archive_bytes, request.deploy, handler=request.handler)

        logger.info("Built %s (%d bytes, artifacts: %s)", request.archive_name, len(archive_bytes), sorted(artifacts) or "none")
        return BuildResult(archive_bytes=archive_bytes, artifacts=artifacts)

    def _bundle_and_read(self, request: BuildRequest) -> tuple[Bundle, List[ArchiveMember]]:
        """Bundle the entry while the additional files are read in the background."""

        if not request.additional_files:
            return self.bundler(request.entry_path, request.export_name), []

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="lambundle-read") as pool:
            reads: List[Future[ArchiveMember]] = [pool.submit(read_member, path) for path in request.additional_files]
            try:
                bundle = self.bundler(request.entry_path, request.export_name)
            except BaseException:
                for future in reads:
                    future.cancel()
                raise
            members = [future.result() for future in reads]
        return bundle, members


def build_function(
    request: Union[BuildRequest, Mapping[str, Any]],
    *,
    lambda_client: Optional[LambdaClient] = None,
    bundler: Bundler = bundle_entry,
    minifier: Minifier = minify_bundle,
    max_workers: int = 4,
) -> BuildResult:
    """Validate ``request`` when given as options and run the pipeline once.

    ``lambda_client`` replaces the boto3 client built from the deploy credentials.
    """

    if not isinstance(request, BuildRequest):
        request = BuildRequest.model_validate(request)
    factory: ClientFactory = create_lambda_client
    if lambda_client is not None:
        factory = lambda _spec: lambda_client
    pipeline = BuildPipeline(bundler=bundler, minifier=minifier, client_factory=factory, max_workers=max_workers)
    return pipeline.run(request)
