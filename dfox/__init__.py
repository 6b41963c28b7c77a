"""dfox: a terminal client for Postgres, MySQL and SQLite."""

__version__ = "0.3.0"
