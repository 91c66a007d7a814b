class CompositionError(Exception):
    """Base class for errors raised while composing PCDM resources."""
    pass


class ContainerNotFound(CompositionError):
    """Raised when a resource has no membership container for the requested relation."""
    def __init__(self, parent_uri: str, relation: str):
        super().__init__(parent_uri, relation)
        self.parent_uri = parent_uri
        self.relation = relation

    def __str__(self):
        return f'No container for {self.relation} found in {self.parent_uri}'


class TransactionOwnershipError(CompositionError):
    """Raised on an attempt to commit or roll back a transaction that the
    current scope did not open, or that it has already closed."""
    pass
