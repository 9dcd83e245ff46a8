from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Configurações do Banco de Dados
    DB_DIALECT: Literal["sqlite", "mysql"] = "sqlite"
    SQLITE_PATH: str = "db/infradb.sqlite"

    MYSQL_HOST: Optional[str] = None
    MYSQL_PORT: int = Field(default=3306, ge=1, le=65535)
    MYSQL_USER: Optional[str] = None
    MYSQL_PASSWORD: Optional[SecretStr] = None
    MYSQL_DATABASE: Optional[str] = None
    MYSQL_SSL: bool = False
    MYSQL_POOL_SIZE: int = Field(default=10, ge=1)

    # Migrations
    MIGRATIONS_LOCK_TIMEOUT: int = Field(default=30, ge=0)

    # Configurações da API
    PROJECT_NAME: str = "InfraDB API"
    VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    @field_validator("DB_DIALECT", mode="before")
    def normalize_dialect(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def check_mysql_settings(self):
        if self.DB_DIALECT != "mysql":
            return self
        required = {
            "MYSQL_HOST": self.MYSQL_HOST,
            "MYSQL_USER": self.MYSQL_USER,
            "MYSQL_PASSWORD": self.MYSQL_PASSWORD,
            "MYSQL_DATABASE": self.MYSQL_DATABASE,
        }
        missing = [name for name, value in required.items() if value is None]
        if missing:
            raise ValueError(
                f"Variáveis MySQL obrigatórias ausentes: {', '.join(missing)}"
            )
        return self


settings = Settings()
