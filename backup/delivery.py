"""Delivery adapter -- put an export on disk where the user wants it.

Tries the interactive save picker first. A cancelled picker is a no-op,
not an error. If the picker is missing, raises, or its destination cannot
be written, the file goes to the export directory instead. Only a failure
of that fallback is an error.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from core.errors import DeliveryError
from core.protocols import DeliveryResult, SavePicker

logger = logging.getLogger(__name__)

FALLBACK_ADAPTER = "export_dir"


def write_atomic(path: Path, content: str) -> Path:
    """Write via a temp file in the same directory, then rename into place.

    The temp file is removed if anything fails.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".part")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
    return path


class FileDelivery:
    """Deliver serialized exports through a SavePicker with a directory fallback.

    Usage:
        delivery = FileDelivery(config.export_path, picker=QuestionarySavePicker())
        result = delivery.deliver(document.to_json(), backup_filename())
    """

    def __init__(self, export_dir: Path, picker: SavePicker | None = None) -> None:
        self._export_dir = export_dir
        self._picker = picker

    def deliver(self, content: str, suggested_filename: str) -> DeliveryResult:
        if self._picker is not None:
            result = self._deliver_with_picker(self._picker, content, suggested_filename)
            if result is not None:
                return result

        path = self._export_dir / suggested_filename
        try:
            write_atomic(path, content)
        except OSError as exc:
            logger.exception("Fallback export to %s failed", path)
            raise DeliveryError(f"Failed to write {suggested_filename}: {exc}") from exc

        logger.info("Exported %s to %s", suggested_filename, path)
        return DeliveryResult("delivered", FALLBACK_ADAPTER, path=path)

    def _deliver_with_picker(
        self,
        picker: SavePicker,
        content: str,
        suggested_filename: str,
    ) -> DeliveryResult | None:
        """Returns None when the caller should fall back."""
        try:
            chosen = picker.choose(suggested_filename)
        except Exception:
            logger.warning(
                "Save picker %s failed/unsupported, falling back to %s",
                picker.name, self._export_dir, exc_info=True,
            )
            return None

        if chosen is None:
            logger.info("Export of %s cancelled by user", suggested_filename)
            return DeliveryResult("cancelled", picker.name)

        target = Path(chosen).expanduser()
        if target.is_dir():
            target = target / suggested_filename

        try:
            write_atomic(target, content)
        except OSError:
            logger.warning(
                "Could not write to %s, falling back to %s", target, self._export_dir, exc_info=True,
            )
            return None

        logger.info("Exported %s to %s via %s", suggested_filename, target, picker.name)
        return DeliveryResult("delivered", picker.name, path=target)
