# docgraph/core/exceptions.py
class GraphException(Exception):
    """Base class for every error raised by the graph layer."""
    def __init__(self, message="Graph operation failed."):
        self.message = message
        super().__init__(self.message)

class NotFoundException(GraphException):
    """Raised when a lookup, update or delete target does not exist."""
    def __init__(self, message="Not found."):
        super().__init__(message)

class VertexNotFoundException(NotFoundException):
    """Raised when a vertex is not found for a given ID."""
    def __init__(self, message="Vertex not found."):
        super().__init__(message)

class EdgeNotFoundException(NotFoundException):
    """Raised when an edge is not found for a given ID."""
    def __init__(self, message="Edge not found."):
        super().__init__(message)

class ConsistencyAnomalyException(NotFoundException):
    """Raised when a document cannot be read back right after it was inserted."""
    def __init__(self, message="Inserted document could not be read back."):
        super().__init__(message)

class InvalidArgumentException(GraphException):
    def __init__(self, message="Invalid argument."):
        super().__init__(message)

class StoreFailureException(GraphException):
    """
    Wraps any error reported by the document store.
    `transient` marks failures the caller may safely retry.
    """
    def __init__(self, message="Document store operation failed.", transient: bool = False):
        self.transient = transient
        super().__init__(message)
