"""Exception taxonomy shared by the loader, builder, renderers and CLI."""


class TfOpsError(Exception):
    """Base class for every error tfops reports to its callers."""


class MalformedInputError(TfOpsError):
    """The plan document is not valid JSON or has the wrong structure."""


class MissingFieldError(TfOpsError):
    """A mandatory top-level field is absent from the plan document."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"plan document is missing required field '{field}'")


class SchemaVersionError(TfOpsError):
    """The plan document declares an unsupported format major version."""

    def __init__(self, version: str, supported_major: str):
        self.version = version
        self.supported_major = supported_major
        super().__init__(
            f"unsupported format version: {version} "
            f"(only {supported_major}.x versions are supported)"
        )


class UnsupportedFormatError(TfOpsError):
    """An output format name is not recognized."""

    def __init__(self, format_name: str, supported: list[str] | None = None):
        self.format_name = format_name
        self.supported = list(supported or [])
        message = f"unsupported format: {format_name}"
        if self.supported:
            message += f". Supported formats: {', '.join(self.supported)}"
        super().__init__(message)


class UnsupportedGroupingError(TfOpsError):
    """A grouping strategy name is not recognized."""

    def __init__(self, grouping: str, supported: list[str] | None = None):
        self.grouping = grouping
        self.supported = list(supported or [])
        message = f"unsupported grouping: {grouping}"
        if self.supported:
            message += f". Supported groupings: {', '.join(self.supported)}"
        super().__init__(message)


class ResourceLimitError(TfOpsError):
    """The input exceeds one of the configured safety bounds."""

    def __init__(self, limit_name: str, limit: int, context: str = ""):
        self.limit_name = limit_name
        self.limit = limit
        message = f"{limit_name} of {limit} exceeded"
        if context:
            message += f" while processing {context}"
        super().__init__(message)


class ConsistencyError(TfOpsError):
    """An internal invariant of the builder or a renderer was violated."""


class ConfigError(TfOpsError):
    """The tfops configuration file is unreadable or invalid."""
