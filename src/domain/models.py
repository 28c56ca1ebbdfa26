from pydantic import BaseModel, field_validator

from shared.constants import (
    ASYNC_MAX_CONCURRENCY,
    GSI_TILE_BASE_URL,
    GSI_TILE_EXT,
    HTTP_BACKOFF_FACTOR,
    HTTP_RETRIES_DEFAULT,
    HTTP_TIMEOUT_DEFAULT,
    MAX_ZOOM,
    MIN_ZOOM,
    PROFILE_MAX_DEPTH,
    PROFILE_MAX_DEPTH_LIMIT,
    PROFILE_MIN_PIXEL_DISTANCE,
    default_raster_type,
)


class ProfileSettings(BaseModel):
    """Параметры построения профиля высот и загрузки тайлов."""

    model_config = {
        'extra': 'ignore',  # игнорировать лишние поля из TOML
    }

    # Набор DEM-тайлов (идентификатор слоя GSI)
    raster_type: str = default_raster_type().value
    # Источник тайлов
    base_url: str = GSI_TILE_BASE_URL
    file_ext: str = GSI_TILE_EXT

    # Верхняя граница перебора зума
    max_zoom: int = MAX_ZOOM
    # Глубина деления отрезка: 2**max_depth + 1 точек
    max_depth: int = PROFILE_MAX_DEPTH
    # Порог расстояния между концами (px), на котором останавливается выбор зума
    min_pixel_distance: float = PROFILE_MIN_PIXEL_DISTANCE

    # HTTP
    http_timeout_s: float = HTTP_TIMEOUT_DEFAULT
    http_retries: int = HTTP_RETRIES_DEFAULT
    http_backoff: float = HTTP_BACKOFF_FACTOR
    concurrency: int = ASYNC_MAX_CONCURRENCY

    @field_validator('max_zoom')
    @classmethod
    def validate_max_zoom(cls, v: int) -> int:
        v = int(v)
        if not (MIN_ZOOM <= v <= MAX_ZOOM):
            msg = f'max_zoom must be in [{MIN_ZOOM}, {MAX_ZOOM}]'
            raise ValueError(msg)
        return v

    @field_validator('max_depth')
    @classmethod
    def validate_max_depth(cls, v: int) -> int:
        v = int(v)
        if not (0 <= v <= PROFILE_MAX_DEPTH_LIMIT):
            msg = f'max_depth must be in [0, {PROFILE_MAX_DEPTH_LIMIT}]'
            raise ValueError(msg)
        return v

    @field_validator('min_pixel_distance', 'http_timeout_s')
    @classmethod
    def validate_positive(cls, v: float) -> float:
        v = float(v)
        if v <= 0:
            msg = 'Value must be positive'
            raise ValueError(msg)
        return v

    @field_validator('http_retries', 'concurrency')
    @classmethod
    def validate_at_least_one(cls, v: int) -> int:
        v = int(v)
        if v < 1:
            msg = 'Value must be >= 1'
            raise ValueError(msg)
        return v

    @field_validator('http_backoff')
    @classmethod
    def validate_backoff(cls, v: float) -> float:
        v = float(v)
        if v < 0:
            msg = 'http_backoff must be >= 0'
            raise ValueError(msg)
        return v

    @field_validator('raster_type')
    @classmethod
    def validate_raster_type(cls, v: str) -> str:
        v = str(v).strip()
        if not v:
            msg = 'raster_type must not be empty'
            raise ValueError(msg)
        return v

    @property
    def sample_count(self) -> int:
        return 2**self.max_depth + 1
