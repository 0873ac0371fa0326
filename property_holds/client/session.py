"""Client-side session storage for the CTV portal.

Callers pick a provider and pass it around explicitly; there is no module-level
session.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol

from loguru import logger
from pydantic import BaseModel


class ClientSession(BaseModel):
    user_id: str
    token: str | None = None
    full_name: str | None = None
    role: str | None = None


class SessionProvider(Protocol):
    def load(self) -> ClientSession | None: ...

    def save(self, session: ClientSession) -> None: ...

    def clear(self) -> None: ...


class MemorySessionProvider:
    def __init__(self, session: ClientSession | None = None) -> None:
        self._session = session

    def load(self) -> ClientSession | None:
        return self._session

    def save(self, session: ClientSession) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None


class FileSessionProvider:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> ClientSession | None:
        data = self._read()
        if not data:
            return None
        try:
            return ClientSession.model_validate(data)
        except ValueError:
            logger.warning("Ignoring malformed session file {path}", path=str(self.path))
            return None

    def save(self, session: ClientSession) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(session.model_dump(), f, ensure_ascii=False, indent=2)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                return json.load(f) or {}
        except (OSError, ValueError):
            logger.warning("Could not read session file {path}", path=str(self.path))
            return {}
