"""Filesystem checks for the built web bundle.

The probe is recomputed on every request: the build script writes into the
bundle directory at any time, so nothing here is cached.
"""
import os
from dataclasses import dataclass

READY_MESSAGE = "Flutter web application is ready to serve"
NEEDS_BUILD_MESSAGE = "Flutter web application needs to be built"


@dataclass(frozen=True)
class StatusReport:
    web_directory_exists: bool
    index_file_exists: bool
    message: str

    @property
    def ready(self) -> bool:
        return self.index_file_exists

    def to_json(self) -> dict:
        return {
            "status": "ok",
            "webDirectoryExists": self.web_directory_exists,
            "indexFileExists": self.index_file_exists,
            "message": self.message,
        }


def probe(bundle_dir: str, entry_name: str = "index.html") -> StatusReport:
    """Report whether ``bundle_dir`` and ``bundle_dir/entry_name`` exist.

    Absence is a normal state, so no error is raised for missing paths.
    """
    dir_exists = os.path.isdir(bundle_dir)
    # Only look for the entry file inside an existing directory
    index_exists = dir_exists and os.path.isfile(os.path.join(bundle_dir, entry_name))
    message = READY_MESSAGE if index_exists else NEEDS_BUILD_MESSAGE
    return StatusReport(dir_exists, index_exists, message)
