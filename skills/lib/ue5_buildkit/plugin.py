"""
UE5 Build Kit - Plugin Descriptor and Package Output

Reads the fields of a .uplugin file that name a package, and archives a
packaged plugin directory into a zip next to it.
"""

import json
import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path

from .errors import BuildKitError

logger = logging.getLogger(__name__)

PACKAGE_NAME_SEPARATOR = "-"
WITH_HOST_MARKER = "WithHost"
HOST_ONLY_FOLDERS = ("Intermediate", "Binaries")


@dataclass(frozen=True)
class PluginDescriptor:
    path: Path
    friendly_name: str
    version_name: str

    @property
    def root(self) -> Path:
        return self.path.parent

    @classmethod
    def load(cls, path: Path) -> "PluginDescriptor":
        """
        Read FriendlyName and VersionName from a .uplugin file.

        FriendlyName falls back to the file name when absent.

        Raises:
            BuildKitError: unreadable file, not a JSON object, or missing VersionName
        """
        path = Path(path)
        try:
            # .uplugin files saved by the editor may carry a BOM
            with open(path, "r", encoding="utf-8-sig") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise BuildKitError(f"Cannot read plugin descriptor {path}: {e}") from e

        if not isinstance(data, dict):
            raise BuildKitError(f"Plugin descriptor {path} is not a JSON object")

        friendly_name = data.get("FriendlyName") or path.stem
        version_name = data.get("VersionName")
        if not version_name:
            raise BuildKitError(f"Plugin descriptor {path} has no VersionName")

        return cls(path, str(friendly_name), str(version_name))


def package_name(descriptor: PluginDescriptor, engine_version, with_host: bool = False) -> str:
    """
    Output folder name for a packaged plugin, e.g.
    "MyPlugin-1.2.0-WithHost-5.4.2".
    """
    parts = [descriptor.friendly_name.replace(" ", ""), descriptor.version_name]
    if with_host:
        parts.append(WITH_HOST_MARKER)
    parts.append(str(engine_version))
    return PACKAGE_NAME_SEPARATOR.join(parts)


def archive_path_for(package_dir: Path) -> Path:
    # Names contain dots ("5.4.2"), so with_suffix() would cut them
    package_dir = Path(package_dir)
    return package_dir.parent / f"{package_dir.name}.zip"


def archive_package(package_dir: Path, include_binaries: bool = False) -> Path:
    """
    Zip a packaged plugin into <package_dir>.zip.

    Archive entries are relative to package_dir. Top-level Intermediate and
    Binaries folders are left out unless include_binaries is set.

    Returns:
        Path to the zip file

    Raises:
        BuildKitError: the package directory is missing or the zip cannot be written
    """
    package_dir = Path(package_dir)
    zip_path = archive_path_for(package_dir)
    excluded = () if include_binaries else HOST_ONLY_FOLDERS

    if not package_dir.is_dir():
        raise BuildKitError(f"Package directory {package_dir} was not created")

    count = 0
    try:
        with zipfile.ZipFile(zip_path, "w", zipfile.ZIP_DEFLATED) as zf:
            for file_path in sorted(package_dir.rglob("*")):
                if not file_path.is_file():
                    continue
                relative = file_path.relative_to(package_dir)
                if relative.parts[0] in excluded:
                    continue
                zf.write(file_path, relative.as_posix())
                count += 1
    except OSError as e:
        raise BuildKitError(f"Cannot write archive {zip_path}: {e}") from e

    logger.info(f"Archived {count} files to {zip_path}")
    return zip_path
