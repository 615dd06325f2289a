"""Bundle assembly utilities."""

from .archive import ArchiveMember, build_archive, read_member, write_archive
from .bundler import Bundle, BundledModule, bundle_entry
from .minifier import MinifiedBundle, minify_bundle

__all__ = [
    "ArchiveMember",
    "Bundle",
    "BundledModule",
    "MinifiedBundle",
    "build_archive",
    "bundle_entry",
    "minify_bundle",
    "read_member",
    "write_archive",
]
