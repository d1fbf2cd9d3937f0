"""Archive creation helpers for n8nupdater."""

import os
import tarfile
from typing import Sequence

from n8nupdater.errors import BackupStepFailure


class ArchiveService:
    """Writes gzip-compressed tar archives of files and directories."""

    def create_tar_gz(self, archive_path: str, base_dir: str, members: Sequence[str]):
        """Archive ``members`` (paths relative to ``base_dir``) into ``archive_path``.

        A partially written archive is removed before the error is raised.
        """
        if not members:
            raise BackupStepFailure(f"Nothing to archive into {archive_path}")

        try:
            with tarfile.open(archive_path, "w:gz") as tar:
                for member in members:
                    tar.add(os.path.join(base_dir, member), arcname=member)
        except (OSError, tarfile.TarError) as exc:
            try:
                os.remove(archive_path)
            except OSError:
                pass
            raise BackupStepFailure(f"Failed to create {os.path.basename(archive_path)}: {exc}") from exc

    def archive_path_leaf(self, archive_path: str, source: str):
        source = source.rstrip(os.sep) or os.sep
        self.create_tar_gz(
            archive_path,
            os.path.dirname(source),
            [os.path.basename(source)],
        )
