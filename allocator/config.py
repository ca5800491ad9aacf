from pathlib import Path
from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).parent.parent


class Settings(BaseSettings):
    app_name: str = "Timeline Allocator"
    app_description: str = (
        "Редактор пропорционального распределения времени проекта между сессиями. "
        "Границы сессий выводятся из их весов, разделители можно перетаскивать, "
        "а даты сессий править напрямую; изменения копятся в черновике "
        "и сохраняются одним commit."
    )
    api_prefix: str = "/api"
    api_v1_prefix: str = f"{api_prefix}/v1"

    db_url: str = f"sqlite+aiosqlite:///{BASE_DIR}/allocator.db"
    db_echo: bool = False

    log_level: str = "INFO"

    min_span_minutes: int = 1
    drag_min_percent: int = 5
    default_weight: float = 100

    model_config = {"env_file": ".env"}


settings = Settings()
