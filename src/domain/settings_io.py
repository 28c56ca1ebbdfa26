import logging
from pathlib import Path

import tomlkit

from domain.models import ProfileSettings

logger = logging.getLogger(__name__)


def load_settings(path: str | Path) -> ProfileSettings:
    """Загрузка и валидация TOML -> ProfileSettings."""
    path = Path(path)
    if not path.exists():
        msg = f'Settings file not found: {path}'
        raise FileNotFoundError(msg)
    text = path.read_text(encoding='utf-8')
    data = tomlkit.parse(text)
    settings = ProfileSettings.model_validate(data.unwrap())
    logger.info(
        'Loaded settings from %s: raster_type=%s max_zoom=%s max_depth=%s',
        path,
        settings.raster_type,
        settings.max_zoom,
        settings.max_depth,
    )
    return settings


def save_settings(path: str | Path, settings: ProfileSettings) -> Path:
    """Сохранение настроек в TOML."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    text = tomlkit.dumps(settings.model_dump())
    path.write_text(text, encoding='utf-8')
    return path
