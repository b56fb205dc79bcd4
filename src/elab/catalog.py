"""Target catalog — list devices registered on the master and install their libraries."""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path

from elab.api.gateway import ApiGateway
from elab.errors import DownloadFailure, TransportFailure, UnzipFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Target:
    """A device registered in the master database."""

    name: str
    description: str = ""
    lib_files: str = ""


class Catalog:
    def __init__(self, gateway: ApiGateway, targets_dir: Path) -> None:
        self._gateway = gateway
        self._targets_dir = Path(targets_dir)

    @property
    def targets_dir(self) -> Path:
        return self._targets_dir

    def list_targets(self) -> list[Target]:
        data = self._gateway.get("get_targets_json")
        raw_targets = data.get("targets", []) if isinstance(data, dict) else []
        # A single registered target may come back as a bare object.
        if isinstance(raw_targets, dict):
            raw_targets = [raw_targets]
        return [
            Target(
                name=str(t.get("name", "")),
                description=str(t.get("description", "")),
                lib_files=str(t.get("lib_files", "")),
            )
            for t in raw_targets
            if isinstance(t, dict) and t.get("name")
        ]

    def find(self, name: str) -> Target | None:
        for target in self.list_targets():
            if target.name == name:
                return target
        return None

    def install(self, name: str) -> Path | None:
        """Download and extract a target's library archive.

        Returns the install directory, or None if the target is unknown.
        """
        target = self.find(name)
        if target is None:
            logger.warning(
                "Device '%s' is not registered in the eLab master database.", name
            )
            return None
        if not target.lib_files:
            raise DownloadFailure(f"Target '{name}' has no library files to install")

        archive = self._targets_dir / f"{name}.zip"
        try:
            self._gateway.download("get_lib_file", archive, fname=target.lib_files)
        except TransportFailure as exc:
            archive.unlink(missing_ok=True)
            raise DownloadFailure(
                f"Target '{name}' could not be downloaded from repository.",
                cause=exc,
            ) from exc

        dest = self._targets_dir / name
        try:
            with zipfile.ZipFile(archive) as zf:
                _check_members(zf, dest)
                zf.extractall(dest)
        except (zipfile.BadZipFile, OSError) as exc:
            raise UnzipFailure(
                f"An error occurred during extraction of archive {archive}.",
                cause=exc,
            ) from exc
        finally:
            archive.unlink(missing_ok=True)

        logger.info("Target '%s' installed into %s", name, dest)
        return dest


def _check_members(zf: zipfile.ZipFile, dest: Path) -> None:
    root = dest.resolve()
    for member in zf.namelist():
        resolved = (dest / member).resolve()
        if resolved != root and root not in resolved.parents:
            raise zipfile.BadZipFile(f"Archive member escapes target directory: {member}")
