"""Exceptions shared by the storage layer, routes and process lifecycle."""


class StorageError(Exception):
    """Any failure from the persistence layer; the message is shown to API callers."""


class FatalStartupError(Exception):
    """The process cannot start serving (storage unreachable, listener bind failed)."""


class ConfigurationError(Exception):
    """A required setting is missing or unusable."""
