"""
Base Protocol for Vector Converters.

This defines the interface that all converters should implement.
It's a Protocol (not a base class) - converters don't inherit from it,
but it provides type hints and documentation.
"""

from io import BytesIO
from typing import List, Optional, Protocol, runtime_checkable

from geopandas import GeoDataFrame

from core.models import FileType, LayerInfo


@runtime_checkable
class VectorConverter(Protocol):
    """
    Protocol defining the interface for vector file converters.

    All converters must implement:
    - supported_extensions / file_type properties
    - list_layers() returning the layers available in the file
    - convert() taking BytesIO and returning a GeoDataFrame

    Example:
        @ConverterRegistry.instance().register('gpkg')
        class GeoPackageConverter:  # No inheritance!

            @property
            def supported_extensions(self) -> list[str]:
                return ['gpkg']

            def convert(self, data: BytesIO, layer_name=None) -> GeoDataFrame:
                ...
    """

    @property
    def supported_extensions(self) -> list[str]:
        """File extensions (without leading dots) this converter handles."""
        ...

    @property
    def file_type(self) -> FileType:
        ...

    def list_layers(self, data: BytesIO) -> List[LayerInfo]:
        """
        Layers available in the file.

        Raises:
            ParseError: If the file is not readable as this format
        """
        ...

    def resolve_layer(self, data: BytesIO, layer_name: Optional[str]) -> str:
        """
        Name of the layer ``convert`` would read for ``layer_name``.

        Raises:
            LayerNotFoundError, LayerRequiredError
        """
        ...

    def convert(self, data: BytesIO, layer_name: Optional[str] = None) -> GeoDataFrame:
        """
        Convert file data to GeoDataFrame.

        Raises:
            ParseError: If the file is not readable as this format
            LayerNotFoundError: If layer_name does not exist
            LayerRequiredError: If the file has several layers and none was chosen
        """
        ...
