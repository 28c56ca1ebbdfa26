"""Error types raised by the profile core and its tile providers."""

from __future__ import annotations


class InvalidCoordinateError(ValueError):
    """Latitude outside the open interval (-90, 90) or not a finite number."""


class FetchError(RuntimeError):
    """A tile raster could not be retrieved or decoded.

    Attributes:
        raster_type: DEM dataset identifier of the requested tile.
        zoom: Zoom level.
        x: Tile X coordinate.
        y: Tile Y coordinate.
    """

    def __init__(
        self,
        message: str,
        *,
        raster_type: str | None = None,
        zoom: int | None = None,
        x: int | None = None,
        y: int | None = None,
    ) -> None:
        super().__init__(message)
        self.raster_type = raster_type
        self.zoom = zoom
        self.x = x
        self.y = y

    @property
    def tile(self) -> tuple[str | None, int | None, int | None, int | None]:
        return (self.raster_type, self.zoom, self.x, self.y)
