"""Convert decoded 3D scenes into engine mesh, material and animation assets."""

from .errors import (
    AssetIOError, ConversionCancelled, ConversionError, DecodeError,
    MalformedChannelError, NameResolutionError,
)
from .pipeline import ConversionReport, ExportOptions, convert_file, convert_scene

__version__ = "0.1.0"
