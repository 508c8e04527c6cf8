"""Storage layer for punch: SQLite schema, migrations and repository."""
