"""Custom exception classes."""


class RecipeBookException(Exception):
    """Base exception for the recipe book service."""

    pass


class InvalidRequest(RecipeBookException):
    """Raised when caller input cannot select or satisfy an ingestion strategy,
    or when a record fails the completeness check."""

    pass


class SourceUnreachable(RecipeBookException):
    """Raised when a remote page or image cannot be fetched."""

    pass


class ExtractionFailed(RecipeBookException):
    """Raised when the model does not return a usable structured recipe."""

    pass


class RecipeNotFound(RecipeBookException):
    """Raised when a recipe id does not exist in storage."""

    pass


class StorageError(RecipeBookException):
    """Raised when the persistence backend fails."""

    pass
