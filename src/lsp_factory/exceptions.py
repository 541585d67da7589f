"""Custom exception classes for lsp-factory library."""


class LSPFactoryError(Exception):
    """Base exception for all lsp-factory errors."""

    pass


class ConfigurationError(LSPFactoryError, ValueError):
    """Raised when deployment configuration is missing or inconsistent."""

    pass


class InvalidControllerError(LSPFactoryError, ValueError):
    """Raised when a controller entry is malformed."""

    pass


class InvalidPermissionError(LSPFactoryError, ValueError):
    """Raised when an unknown permission name or malformed bitmask is given."""

    pass


class ArtifactNotFoundError(LSPFactoryError, LookupError):
    """Raised when no contract artifact exists for a contract/version."""

    pass


class DefectiveArtifactError(LSPFactoryError, ValueError):
    """Raised when a contract artifact file is missing its bytecode."""

    pass


class ProfileMetadataError(LSPFactoryError, RuntimeError):
    """Raised when profile metadata cannot be fetched or encoded."""

    pass


class TransactionFailedError(LSPFactoryError, RuntimeError):
    """Raised when a mined transaction reverted."""

    pass


class DeploymentStepError(LSPFactoryError, RuntimeError):
    """Raised when a deployment step fails to submit or confirm."""

    def __init__(self, message: str, contract_name: str = "", function_name: str = ""):
        super().__init__(message)
        self.contract_name = contract_name
        self.function_name = function_name


class AddressResolutionError(LSPFactoryError, RuntimeError):
    """Raised when a deployed contract address cannot be read from a receipt."""

    pass


class HandoffError(LSPFactoryError, RuntimeError):
    """Raised when an ownership handoff transition is attempted out of order."""

    pass
