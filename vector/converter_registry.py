"""
Converter Registry - Singleton registry for vector file converters.

Maps file extensions to converter classes using decorator-based registration.
"""

from typing import Dict, Type, TYPE_CHECKING

from exceptions import UnsupportedFileTypeError
from util_logger import LoggerFactory, ComponentType

if TYPE_CHECKING:
    from .converter_base import VectorConverter


logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "ConverterRegistry")


class ConverterRegistry:
    """
    Singleton registry mapping file extensions to converter classes.

    Usage:
        # Register a converter
        @ConverterRegistry.instance().register('geojson', 'json')
        class GeoJSONConverter:
            def convert(self, data, layer_name=None):
                ...

        # Get a converter
        converter = ConverterRegistry.instance().get_converter('gpkg')
        gdf = converter.convert(file_data, layer_name='roads')
    """

    _instance = None

    def __init__(self):
        """Private constructor - use instance() instead"""
        self._converters: Dict[str, Type['VectorConverter']] = {}

    @classmethod
    def instance(cls) -> 'ConverterRegistry':
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def register(self, *extensions: str):
        """
        Decorator to register a converter for one or more file extensions.

        Example:
            @ConverterRegistry.instance().register('geojson', 'json')
            class GeoJSONConverter:
                ...
        """
        def decorator(converter_class: Type['VectorConverter']):
            for ext in extensions:
                ext_clean = ext.lower().lstrip('.')

                if ext_clean in self._converters:
                    logger.warning(
                        f"Overwriting existing converter for .{ext_clean}: "
                        f"{self._converters[ext_clean].__name__} → {converter_class.__name__}"
                    )

                self._converters[ext_clean] = converter_class
                logger.debug(f"Registered {converter_class.__name__} for .{ext_clean}")

            return converter_class

        return decorator

    def get_converter(self, extension: str) -> 'VectorConverter':
        """
        Get converter instance for a file extension.

        Raises:
            UnsupportedFileTypeError: If no converter registered for extension
        """
        ext_clean = extension.lower().lstrip('.')

        if ext_clean not in self._converters:
            raise UnsupportedFileTypeError(f"*.{ext_clean}")

        return self._converters[ext_clean]()

    def get_converter_for_type(self, file_type) -> 'VectorConverter':
        """First registered converter whose file_type matches."""
        for converter_class in self._converters.values():
            converter = converter_class()
            if converter.file_type == file_type:
                return converter
        raise UnsupportedFileTypeError(str(file_type))

    def is_supported(self, extension: str) -> bool:
        return extension.lower().lstrip('.') in self._converters

    def list_supported_extensions(self) -> list[str]:
        return sorted(self._converters.keys())
