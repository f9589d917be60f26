# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: client-local preferences.
Holds the remembered volunteer display name used to pre-fill the login
field. Not a credential.
"""

import json
import os
from typing import Optional

from fieldservice.core.config import settings
from fieldservice.core.logging import get_logger

logger = get_logger(__name__)

REMEMBERED_NAME_KEY = "volunteerName"


class PreferencesRepository:
    """Small JSON file store."""

    def __init__(self, path: Optional[str] = None) -> None:
        self._path = path or settings.PREFERENCES_PATH

    @property
    def path(self) -> str:
        return self._path

    def _read(self) -> dict[str, str]:
        if not os.path.exists(self._path):
            return {}
        try:
            with open(self._path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Preferences unreadable at %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, str]) -> None:
        directory = os.path.dirname(self._path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as fh:
            json.dump(data, fh, ensure_ascii=False)

    # ── Remembered name ──

    def get_remembered_name(self) -> str:
        return self._read().get(REMEMBERED_NAME_KEY, "")

    def set_remembered_name(self, name: str) -> None:
        data = self._read()
        data[REMEMBERED_NAME_KEY] = name
        self._write(data)
