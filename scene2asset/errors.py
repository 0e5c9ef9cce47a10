"""Exceptions raised while converting a scene into engine assets."""


class ConversionError(Exception):
    """Base class for every conversion failure."""


class DecodeError(ConversionError):
    """Scene could not be decoded or lacks required per-vertex data.

    Fatal for the whole conversion: raised before any output file is opened.
    """


class AssetIOError(ConversionError, OSError):
    """An output file could not be opened or written."""

    def __init__(self, path, reason):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class MalformedChannelError(ConversionError):
    """Animation channel has no position or no rotation keys."""

    def __init__(self, clip_name, node_name, missing):
        super().__init__(f"clip '{clip_name}': channel '{node_name}' has no {missing} keys")
        self.clip_name = clip_name
        self.node_name = node_name
        self.missing = missing


class NameResolutionError(ConversionError):
    """A bone or channel references a node name missing from the bone table."""

    def __init__(self, name, referenced_by):
        super().__init__(f"'{name}' referenced by {referenced_by} is not a node in the scene")
        self.name = name
        self.referenced_by = referenced_by


class ConversionCancelled(ConversionError):
    """Caller asked to stop; raised only between stages.

    `report` holds the artifacts finished before the cancellation.
    """

    def __init__(self, stage, report=None):
        super().__init__(f"conversion cancelled before {stage}")
        self.stage = stage
        self.report = report
