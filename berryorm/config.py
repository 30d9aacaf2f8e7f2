"""Runtime settings read from the environment (and an optional ``.env`` file)."""
from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./berryorm.db"

_TRUTHY = ('1', 'true', 't', 'yes', 'y', 'on')


@dataclass
class Settings:
    """Settings for building a SQL storage.

    Attributes:
        database_url: SQLAlchemy async URL, e.g. ``postgresql+asyncpg://...``.
        echo: Log every SQL statement through SQLAlchemy's logger.
    """

    database_url: str = DEFAULT_DATABASE_URL
    echo: bool = False


def load_settings(env_file: Optional[str] = None, *, prefix: str = 'BERRYORM_') -> Settings:
    """Build :class:`Settings` from ``<prefix>DATABASE_URL`` and ``<prefix>ECHO``.

    A ``.env`` file (``env_file`` or the nearest one found) is loaded first;
    variables already set in the environment win.
    """
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv()
    url = os.getenv(f'{prefix}DATABASE_URL') or DEFAULT_DATABASE_URL
    echo = (os.getenv(f'{prefix}ECHO') or '').strip().lower() in _TRUTHY
    return Settings(database_url=url, echo=echo)
