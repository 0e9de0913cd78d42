"""Helpers for optional dependency imports.

geopandas, rasterio and matplotlib are only needed at the workflow layer.
Modules import them in a try/except block that sets an ``*_AVAILABLE`` flag,
and call ``require`` before first use.
"""

from geolink.utils.errors import DependencyError, format_dependency_error


def require(dependency_name: str, available: bool, optional_group: str) -> None:
    """Raise DependencyError when an optional dependency is missing.

    Args:
        dependency_name: Distribution name shown to the user.
        available: Availability flag set at import time.
        optional_group: Extra that installs the dependency.

    Raises:
        DependencyError: If ``available`` is False.
    """
    if not available:
        raise DependencyError(
            format_dependency_error(dependency_name, optional_group=optional_group)
        )
