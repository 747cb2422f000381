"""Registry exceptions."""

class RegistryError(Exception):
    """Base exception for registry operations."""
    pass

class TokenNotFoundError(RegistryError):
    """Raised when a token id does not exist in the collection."""
    def __init__(self, token_id: int):
        self.token_id = token_id
        super().__init__(f"Token {token_id} does not exist")

class TransferNotAuthorizedError(RegistryError):
    """Raised when a custody transfer is not sanctioned by the owner."""
    pass
