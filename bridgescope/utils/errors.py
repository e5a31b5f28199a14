class BridgeScopeError(Exception):
    """Base class for pipeline errors."""


class NormalizationError(BridgeScopeError):
    """A raw payload could not be turned into a canonical transfer."""


class IndexerError(BridgeScopeError):
    """The subgraph answered with an error or an unexpected shape."""


class FatalStartupError(BridgeScopeError):
    """Missing required configuration or unreachable store at boot."""
