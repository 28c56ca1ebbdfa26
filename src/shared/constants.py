import math
from enum import Enum

# Размер тайла slippy-map (пикселей по стороне)
TILE_SIZE = 256

# Половина окружности мира на zoom 0 (пикселей)
WORLD_HALF_SIZE_PX = TILE_SIZE / 2

# Пикселей на радиан при zoom 0: 256 px на 2π радиан
PIXELS_PER_RADIAN = TILE_SIZE / (2 * math.pi)

# Допустимые уровни приближения. 15 — предельное разрешение DEM5A
MIN_ZOOM = 0
MAX_ZOOM = 15

# Широта, на которой Меркатор вырождается (градусы)
MERCATOR_POLE_LAT_DEG = 90.0

# Выбор зума: первая ступень, где расстояние между концами больше порога (px)
PROFILE_MIN_PIXEL_DISTANCE = 128.0

# Глубина рекурсивного деления отрезка: 2**7 + 1 = 129 точек профиля
PROFILE_MAX_DEPTH = 7

# Предел глубины, чтобы профиль не разросся до миллионов точек
PROFILE_MAX_DEPTH_LIMIT = 16

# Радиус Земли для формулы сферических косинусов (км)
EARTH_RADIUS_KM = 6371.0

# --- Кодирование высот в PNG-тайлах GSI
# x = 2^16 R + 2^8 G + B
DEM_CHANNEL_R_WEIGHT = 2**16
DEM_CHANNEL_G_WEIGHT = 2**8
# x == 2^23 — «нет данных»
DEM_NO_DATA_VALUE = 2**23
# x > 2^23 — отрицательные высоты
DEM_SIGNED_OFFSET = 2**24
# Разрешение по высоте (метров на единицу)
DEM_RESOLUTION_M = 0.01

# Минимальное число каналов цвета в пикселе тайла
DEM_MIN_CHANNELS = 3


class RasterType(str, Enum):
    """Наборы DEM-тайлов GSI, совместимые с кодировкой выше."""

    DEM5A = 'dem5a_png'
    DEM5B = 'dem5b_png'
    DEM10B = 'dem_png'


def default_raster_type() -> RasterType:
    return RasterType.DEM5A


# --- HTTP
GSI_TILE_BASE_URL = 'https://cyberjapandata.gsi.go.jp/xyz'
GSI_TILE_EXT = 'png'

HTTP_TIMEOUT_DEFAULT = 20.0
HTTP_RETRIES_DEFAULT = 4
HTTP_BACKOFF_FACTOR = 1.5

# Статусы 5xx, которые имеет смысл повторять
HTTP_5XX_MIN = 500
HTTP_5XX_MAX = 600

# Максимальное число параллельных запросов тайлов в одном профиле
ASYNC_MAX_CONCURRENCY = 8

# Формат строки лога
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
