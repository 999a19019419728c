"""Migration file persistence."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class MigrationFileWriter:
    """Writes generated migration modules into a directory.

    Args:
        base_path: Output directory, created on first write if missing.

    Example:
        writer = MigrationFileWriter("migrations")
        path = writer.write(code, "CreateUsers20240102030405")
        # migrations/CreateUsers20240102030405.py
    """

    def __init__(self, base_path: str | Path) -> None:
        self.base_path = Path(base_path)

    def path_for(self, identifier: str) -> Path:
        return self.base_path / f"{identifier}.py"

    def write(self, code: str, identifier: str) -> Path:
        """Write *code* to ``<base_path>/<identifier>.py``.

        Returns:
            Path of the written file.

        Raises:
            FileExistsError: If a migration with that identifier already
                exists. Existing migrations are never overwritten.
        """
        path = self.path_for(identifier)
        self.base_path.mkdir(parents=True, exist_ok=True)

        with open(path, "x", encoding="utf-8") as f:
            f.write(code)

        logger.info("Wrote migration %s", path)
        return path
