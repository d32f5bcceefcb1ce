"""
Backup root layout and the manifest of backed-up artifacts.

Backup Structure:
    <root>/
        .backup_ok_lp                   # backup flag (current generation)
        .backup_ok                      # obsolete flag (legacy generation)
        .nomedia                        # suppresses media scanning
        <package>_preferences.xml       # preference artifacts
        ledcontrol.xml
        quiet_hours.xml
        tuner.xml
        files/
            lockwallpaper ...           # file artifacts and private files
            app_picker/                 # user-selected item cache

The flag file is the only source of truth for "a valid backup exists".
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from prefvault.config.settings import Settings
from prefvault.paths import APP_PICKER_DIR, FILES_DIR

BACKUP_OK_FLAG = ".backup_ok_lp"
BACKUP_OK_FLAG_OBSOLETE = ".backup_ok"
NO_MEDIA_FILE = ".nomedia"

SECONDARY_PREFERENCE_FILES = ("ledcontrol.xml", "quiet_hours.xml", "tuner.xml")
FILE_ARTIFACTS = (
    "lockwallpaper",
    "notifwallpaper",
    "notifwallpaper_landscape",
    "caller_photo",
    "navbar_custom_key_image",
)


class ArtifactKind(Enum):
    """Where an artifact is kept inside the backup root."""

    PREFERENCE = "preference"
    FILE = "file"


@dataclass(frozen=True)
class Artifact:
    """One named unit of backed-up content."""

    name: str
    kind: ArtifactKind
    required: bool = False
    # Older names tried on restore when ``name`` is absent, newest first
    legacy_names: tuple[str, ...] = ()

    @property
    def version_chain(self) -> tuple[str, ...]:
        """Every file name this artifact may be stored under, newest first."""
        return (self.name, *self.legacy_names)


def build_manifest(
    primary_preferences_file: str,
    legacy_preference_files: Iterable[str] = (),
) -> tuple[Artifact, ...]:
    """
    Build the ordered artifact manifest.

    Args:
        primary_preferences_file: Current file name of the main preference store.
        legacy_preference_files: Earlier names of that file, newest first.

    Returns:
        Artifacts in backup/restore order; the first one is required.
    """
    legacy = tuple(
        name for name in legacy_preference_files if name != primary_preferences_file
    )
    artifacts = [
        Artifact(
            primary_preferences_file,
            ArtifactKind.PREFERENCE,
            required=True,
            legacy_names=legacy,
        )
    ]
    artifacts.extend(Artifact(name, ArtifactKind.PREFERENCE) for name in SECONDARY_PREFERENCE_FILES)
    artifacts.extend(Artifact(name, ArtifactKind.FILE) for name in FILE_ARTIFACTS)
    return tuple(artifacts)


@dataclass(frozen=True)
class BackupLayout:
    """Fixed paths inside the backup root."""

    root: Path
    manifest: tuple[Artifact, ...] = field(default=())

    @classmethod
    def from_settings(cls, settings: Settings) -> BackupLayout:
        return cls(
            root=Path(settings.backup.root),
            manifest=build_manifest(
                settings.primary_preferences_file,
                settings.restore.legacy_preference_files,
            ),
        )

    @property
    def flag(self) -> Path:
        return self.root / BACKUP_OK_FLAG

    @property
    def obsolete_flag(self) -> Path:
        return self.root / BACKUP_OK_FLAG_OBSOLETE

    @property
    def no_media(self) -> Path:
        return self.root / NO_MEDIA_FILE

    @property
    def files_dir(self) -> Path:
        return self.root / FILES_DIR

    @property
    def app_picker_dir(self) -> Path:
        return self.files_dir / APP_PICKER_DIR

    def artifact_dir(self, artifact: Artifact) -> Path:
        return self.root if artifact.kind is ArtifactKind.PREFERENCE else self.files_dir

    def artifact_path(self, artifact: Artifact, name: str | None = None) -> Path:
        """Backup location of ``artifact``, optionally under an older name."""
        return self.artifact_dir(artifact) / (name or artifact.name)

    def is_backup_available(self) -> bool:
        return self.flag.exists()

    def is_backup_obsolete(self) -> bool:
        return self.obsolete_flag.exists() and not self.is_backup_available()
