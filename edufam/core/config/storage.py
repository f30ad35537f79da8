from __future__ import annotations

import typing as t

import pydantic as p

from .base import BaseSettings


class StorageSettings(BaseSettings):
    persistent: PersistentSettings


class PersistentSettings(BaseSettings):
    database: DatabaseSettings


class DatabaseSettings(BaseSettings):
    """Connection settings for the grading database.

    PostgreSQL in deployment; `sqlite+pysqlite` with a file path (or
    `:memory:`) as `database` for local work and tests.
    """

    host: p.IPvAnyAddress | str | None = None
    port: int | None = 5432
    database: str
    driver: t.Literal["postgresql+psycopg", "sqlite+pysqlite"] = "postgresql+psycopg"
    echo: bool = False

    @property
    def is_sqlite(self) -> bool:
        return self.driver.startswith("sqlite")
