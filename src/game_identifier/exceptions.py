class GameIdentifierError(Exception):
    """Base exception for the game identifier service."""


class ConfigurationError(GameIdentifierError):
    """Raised when configuration values are missing or invalid."""


class CatalogError(GameIdentifierError):
    """Base exception for catalog store failures."""


class CatalogQueryError(CatalogError):
    """Raised when a catalog query fails in transport or execution."""


class CatalogIndexUnavailableError(CatalogQueryError):
    """Raised when the ordered index needed for range queries is missing."""


class DetailFetchError(GameIdentifierError):
    """Raised when a detail enrichment lookup fails."""


class InvalidTransitionError(GameIdentifierError):
    """Raised when a candidate is moved to a state its lifecycle forbids."""


class CandidateNotFoundError(GameIdentifierError):
    """Raised when a candidate id is not present on the board."""


class RecognizerPayloadError(GameIdentifierError):
    """Raised when the recognizer response cannot be parsed."""
