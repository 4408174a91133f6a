"""Database exceptions."""

class DatabaseError(Exception):
    """Base class for database errors."""
    pass

class DatabaseSchemaError(DatabaseError):
    """Raised when the schema cannot be loaded, created or migrated."""
    pass
