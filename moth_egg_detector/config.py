from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    provider: str = 'roboflow'
    api_key: SecretStr | None = None
    inference_base_url: str = 'https://serverless.roboflow.com'
    inference_model: str = 'winter-moth-eggs-vmehu/1'
    inference_timeout_ms: int = 30000
    max_image_bytes: int = 12 * 1024 * 1024
    box_color: str = '#00ff00'
    box_width: int = 3
    label_font_size: int = 16
    label_margin: int = 5
    font_path: str | None = None
    host: str = '127.0.0.1'
    port: int = 8000
    log_level: str = 'INFO'
    version: str = '1.0.0'


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
