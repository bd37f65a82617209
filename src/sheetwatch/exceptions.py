class SheetwatchError(Exception):
    """Base exception for Sheetwatch errors."""
    pass

class ConfigError(SheetwatchError):
    """Invalid configuration (bad file pattern, missing root). Fatal at startup."""
    pass

class ReadError(SheetwatchError):
    """A workbook could not be opened. Scoped to one file."""
    pass

class CursorLookupError(SheetwatchError):
    """The previous-record query failed. The sheet is treated as having no history."""
    pass

class PersistenceError(SheetwatchError):
    """A store read or write failed, or the store is unreachable."""
    pass
