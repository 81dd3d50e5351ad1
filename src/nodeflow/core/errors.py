class NodeflowError(Exception):
    pass


class DataSourceError(NodeflowError):
    pass


class SourceUnavailableError(DataSourceError):
    pass


class SourceExhaustedError(DataSourceError):
    pass
