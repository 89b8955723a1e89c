"""
Tools manifest model and loader.

The manifest declares, per platform identifier, where to download each tool
family's archive, where to find its expected SHA256, and which files to take
out of it. Its toolset version keys the on-disk cache.

Manifest format (JSON):

    {
      "toolsetVersion": "2024.09.15",
      "platforms": {
        "win-x64": {
          "ffmpeg": {
            "archiveUrl": "https://.../ffmpeg.7z",
            "checksumUrl": "https://.../ffmpeg.7z.sha256",
            "archiveType": "7z",
            "extractMap": {"ffmpeg.exe": "bin/ffmpeg.exe",
                           "ffprobe.exe": "bin/ffprobe.exe"}
          },
          "mkvtoolnix": {
            "archiveUrl": "https://.../mkvtoolnix.7z",
            "checksumUrl": "https://.../sha256sums.txt",
            "checksumEntry": "mkvtoolnix.7z",
            "archiveType": "7z",
            "extractMap": {"mkvmerge.exe": "mkvtoolnix/mkvmerge.exe",
                           "mkvpropedit.exe": "mkvtoolnix/mkvpropedit.exe"}
          }
        }
      }
    }
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from kitsub.core.directory import get_app_base_dir
from kitsub.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

MANIFEST_FILE_NAME = "tools-manifest.json"

# Tool family -> extract-map keys every platform entry must declare.
REQUIRED_FILES: Dict[str, tuple] = {
    "ffmpeg": ("ffmpeg.exe", "ffprobe.exe"),
    "mkvtoolnix": ("mkvmerge.exe", "mkvpropedit.exe"),
}

# Logical tool name -> (family, extract-map key)
TOOL_FILES: Dict[str, tuple] = {
    "ffmpeg": ("ffmpeg", "ffmpeg.exe"),
    "ffprobe": ("ffmpeg", "ffprobe.exe"),
    "mkvmerge": ("mkvtoolnix", "mkvmerge.exe"),
    "mkvpropedit": ("mkvtoolnix", "mkvpropedit.exe"),
}


def _string_field(data: Dict[str, Any], key: str, context: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ConfigurationError(
            f"Tools manifest {key} must be a string for {context}, "
            f"got {type(value).__name__}."
        )
    return value


@dataclass
class ArchiveDefinition:
    """Describes a downloadable tool archive and its extraction map."""

    archive_url: str = ""
    checksum_url: str = ""
    archive_type: str = ""
    extract_map: Dict[str, str] = field(default_factory=dict)
    checksum_entry: Optional[str] = None
    version: Optional[str] = None

    def destination_for(self, file_key: str) -> Optional[str]:
        """Look up an extract-map entry, ignoring key case."""
        if file_key in self.extract_map:
            return self.extract_map[file_key]

        lowered = file_key.lower()
        for key, value in self.extract_map.items():
            if key.lower() == lowered:
                return value
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], context: str = "archive") -> "ArchiveDefinition":
        """
        Build a definition from a manifest object.

        Args:
            data: Manifest object for one tool family
            context: Label used in error messages, e.g. 'ffmpeg (win-x64)'

        Raises:
            ConfigurationError: If a field has the wrong type
        """
        extract_map = data.get("extractMap") or {}
        if not isinstance(extract_map, dict):
            raise ConfigurationError(
                f"Tools manifest extractMap must be an object for {context}."
            )
        for key, value in extract_map.items():
            if not isinstance(value, str):
                raise ConfigurationError(
                    f"Tools manifest extractMap entry '{key}' must be a string "
                    f"for {context}."
                )

        return cls(
            archive_url=_string_field(data, "archiveUrl", context) or "",
            checksum_url=_string_field(data, "checksumUrl", context) or "",
            archive_type=_string_field(data, "archiveType", context) or "",
            extract_map=dict(extract_map),
            checksum_entry=_string_field(data, "checksumEntry", context),
            version=_string_field(data, "version", context),
        )


@dataclass
class ToolsManifest:
    """Root manifest describing tool sources per platform."""

    toolset_version: str
    platforms: Dict[str, Dict[str, ArchiveDefinition]] = field(default_factory=dict)

    def get_platform(self, platform_id: str) -> Optional[Dict[str, ArchiveDefinition]]:
        """Get a platform entry, matching the identifier case-insensitively."""
        if platform_id in self.platforms:
            return self.platforms[platform_id]

        lowered = platform_id.lower()
        for key, entry in self.platforms.items():
            if key.lower() == lowered:
                return entry
        return None

    def has_platform(self, platform_id: str) -> bool:
        return self.get_platform(platform_id) is not None


class ManifestLoader:
    """
    Loads and validates the tools manifest.

    The manifest is read from an explicit override path, else from
    ``tools-manifest.json`` beside the application, else from the copy
    embedded in the package.

    Example:
        >>> manifest = ManifestLoader().load()
        >>> manifest.toolset_version
        '2024.09.15'
    """

    def __init__(self, override_path: Optional[Path] = None):
        self.override_path = Path(override_path) if override_path else None

    def load(self) -> ToolsManifest:
        """
        Load and validate the manifest.

        Raises:
            ConfigurationError: If the manifest is missing, malformed or incomplete
        """
        path = self._locate()
        logger.debug(f"Loading tools manifest from {path}")

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Failed to read tools manifest {path}: {e}") from e

        manifest = self.deserialize(text)
        validate_manifest(manifest)
        return manifest

    def _locate(self) -> Path:
        if self.override_path is not None:
            if not self.override_path.exists():
                raise ConfigurationError(
                    f"Tools manifest not found: {self.override_path}"
                )
            return self.override_path

        disk_path = get_app_base_dir() / MANIFEST_FILE_NAME
        if disk_path.exists():
            return disk_path

        logger.debug(f"Tools manifest not found at {disk_path}, using embedded copy")
        embedded = Path(__file__).parent.parent / "data" / MANIFEST_FILE_NAME
        if not embedded.exists():
            raise ConfigurationError("Embedded tools manifest resource not found.")
        return embedded

    @staticmethod
    def deserialize(text: str) -> ToolsManifest:
        """
        Parse manifest JSON into a ToolsManifest without validating completeness.

        Raises:
            ConfigurationError: If the JSON is invalid or structurally wrong
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Tools manifest is invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError("Tools manifest must be a JSON object.")

        raw_platforms = data.get("platforms") or {}
        if not isinstance(raw_platforms, dict):
            raise ConfigurationError("Tools manifest 'platforms' must be an object.")

        platforms: Dict[str, Dict[str, ArchiveDefinition]] = {}
        for platform_id, raw_entry in raw_platforms.items():
            if not isinstance(raw_entry, dict):
                raise ConfigurationError(
                    f"Tools manifest entry for platform {platform_id} must be an object."
                )

            entry = {}
            for tool_name, raw_def in raw_entry.items():
                if not isinstance(raw_def, dict):
                    raise ConfigurationError(
                        f"Tools manifest {tool_name} entry for platform "
                        f"{platform_id} must be an object."
                    )
                entry[tool_name] = ArchiveDefinition.from_dict(
                    raw_def, f"{tool_name} ({platform_id})"
                )
            platforms[platform_id] = entry

        return ToolsManifest(
            toolset_version=_string_field(data, "toolsetVersion", "the toolset") or "",
            platforms=platforms,
        )


def validate_manifest(manifest: ToolsManifest) -> None:
    """
    Check that a manifest can drive provisioning on every platform it lists.

    Raises:
        ConfigurationError: Naming the platform, tool and missing field
    """
    if not manifest.toolset_version or not manifest.toolset_version.strip():
        raise ConfigurationError("Tools manifest missing toolsetVersion.")

    if not manifest.platforms:
        raise ConfigurationError("Tools manifest missing platform entries.")

    for platform_id, entry in manifest.platforms.items():
        for tool_name, required_keys in REQUIRED_FILES.items():
            definition = entry.get(tool_name)
            if definition is None:
                raise ConfigurationError(
                    f"Tools manifest missing {tool_name} entry for platform {platform_id}."
                )

            _validate_definition(definition, platform_id, tool_name)

            for key in required_keys:
                if not definition.destination_for(key):
                    raise ConfigurationError(
                        f"Tools manifest missing extractMap entry '{key}' "
                        f"for {tool_name} ({platform_id})."
                    )


def _validate_definition(
    definition: ArchiveDefinition, platform_id: str, tool_name: str
) -> None:
    required = (
        ("archiveUrl", definition.archive_url),
        ("checksumUrl", definition.checksum_url),
        ("archiveType", definition.archive_type),
    )
    for field_name, value in required:
        if not value or not value.strip():
            raise ConfigurationError(
                f"Tools manifest missing {field_name} for {tool_name} ({platform_id})."
            )

    if not definition.extract_map:
        raise ConfigurationError(
            f"Tools manifest missing extractMap for {tool_name} ({platform_id})."
        )


__all__ = [
    "ArchiveDefinition",
    "MANIFEST_FILE_NAME",
    "ManifestLoader",
    "REQUIRED_FILES",
    "TOOL_FILES",
    "ToolsManifest",
    "validate_manifest",
]
