"""Error taxonomy shared by the generator pipeline and the CLI."""


class CollectionGenError(Exception):
    """Base class for all generator errors."""


class AnalysisError(CollectionGenError):
    """A controller, type or source file could not be analyzed.

    Recoverable: the affected route still yields an item with whatever
    partial information was gathered.
    """


class ConfigurationError(CollectionGenError):
    """Configuration is missing or invalid. Raised before anything is written."""


class PersistenceError(CollectionGenError):
    """The collection could not be encoded or written to disk."""


class RemoteSyncError(CollectionGenError):
    """Pushing the collection to the Postman API failed. Never fatal."""
