"""Database base classes, column types and engine/session handling."""
