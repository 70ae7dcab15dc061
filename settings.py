from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    project_dir: Path = Path("./for-sale/public")
    target_groups: int | None = 70
    threshold_seconds: int | None = None
    threshold_min: int = 10
    threshold_max: int = 300
    default_threshold: int = 60
    search_iterations: int = 20
    image_url_prefix: str = "/for-sale/images"
    default_categories: list[int] = [1]
    price_min: int = 50
    price_max: int = 549
    price_seed: int = 0
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CIG_",
        env_file_encoding="utf-8",
    )

    @field_validator("target_groups", "search_iterations")
    @classmethod
    def must_be_positive(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("threshold_seconds", "threshold_min", "default_threshold", "price_min")
    @classmethod
    def must_not_be_negative(cls, v: int | None) -> int | None:
        if v is not None and v < 0:
            raise ValueError("must not be negative")
        return v

    @field_validator("image_url_prefix")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @model_validator(mode="after")
    def ranges_must_be_ordered(self) -> "Settings":
        if self.threshold_min > self.threshold_max:
            raise ValueError("threshold_min must not exceed threshold_max")
        if self.price_min > self.price_max:
            raise ValueError("price_min must not exceed price_max")
        return self

    @property
    def images_dir(self) -> Path:
        return self.project_dir / "images"

    @property
    def data_dir(self) -> Path:
        return self.project_dir / "data"

    @property
    def items_json_path(self) -> Path:
        return self.data_dir / "items.json"

    @property
    def mapping_json_path(self) -> Path:
        return self.data_dir / "image-mapping.json"

    @property
    def placeholders_yaml_path(self) -> Path:
        return self.data_dir / "placeholders.yaml"
