"""Reader for the ReEntry DSKY export files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Type, TypeVar

from .. import constants
from ..core.models import CommandModuleValues, DskyValues, LunarModuleValues

LOGGER = logging.getLogger(__name__)

_ValuesT = TypeVar("_ValuesT", bound=DskyValues)


class ExportFileReader:
    """Reads the command and lunar module export documents.

    Missing or unparsable files yield ``None``; the caller keeps whatever it
    read last.
    """

    def __init__(self, export_dir: Path) -> None:
        self.export_dir = Path(export_dir)

    @property
    def command_path(self) -> Path:
        return self.export_dir / constants.COMMAND_MODULE_EXPORT

    @property
    def lunar_path(self) -> Optional[Path]:
        for name in constants.LUNAR_MODULE_EXPORTS:
            candidate = self.export_dir / name
            if candidate.exists():
                return candidate
        return None

    def read_command(self) -> Optional[CommandModuleValues]:
        return _read(self.command_path, CommandModuleValues)

    def read_lunar(self) -> Optional[LunarModuleValues]:
        path = self.lunar_path
        if path is None:
            return None
        return _read(path, LunarModuleValues)


def _read(path: Path, model: Type[_ValuesT]) -> Optional[_ValuesT]:
    try:
        # utf-8-sig tolerates the BOM some Windows writers prepend.
        text = path.read_text(encoding="utf-8-sig")
    except FileNotFoundError:
        return None
    except OSError as exc:
        LOGGER.debug("Unable to read %s: %s", path, exc)
        return None

    try:
        payload = json.loads(text)
        if not isinstance(payload, dict):
            raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
        return model.from_export(payload)
    except (ValueError, TypeError) as exc:
        # The simulator rewrites these files in place; partial reads are expected.
        LOGGER.debug("Ignoring malformed export %s: %s", path, exc)
        return None
