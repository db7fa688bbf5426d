import json
from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Настройки базы данных
    DATABASE_USER: str
    DATABASE_PASSWORD: str
    DATABASE_HOST: str
    DATABASE_PORT: int
    DATABASE_NAME: str

    # Настройки JWT токенов
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 3 # 3 дня

    # OTP для подтверждения email
    OTP_LENGTH: int = 6
    OTP_EXPIRE_MINUTES: int = 10

    # Почта. В dev-режиме письма не отправляются, а только пишутся в лог
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = "no-reply@chainsphere.local"
    EMAIL_DEV_MODE: bool = True

    # Публичный адрес сервиса и каталог для документов пользователей
    BASE_URL: str = "http://localhost:8000"
    UPLOAD_DIR: str = "temp"

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # Блокчейн: RPC-нода, контракт токена и кошелек, с которого платим награды
    WEB3_RPC_URL: str = "http://localhost:8545"
    TOKEN_CONTRACT_ADDRESS: str = ""
    PAYOUT_PRIVATE_KEY: str = ""
    TRANSFER_TIMEOUT_SECONDS: float = 120.0
    # Таймаут одного HTTP-запроса к RPC-ноде
    WEB3_REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Реферальные награды в базисных пунктах (1000 = 10%, 250 = 2.5%)
    DIRECT_REWARD_BPS: int = 1000
    ROOT_REWARD_BPS: int = 250
    # Считать ли прямого реферера "корнем", если его самого никто не пригласил.
    # False - бонус корню только для цепочек из двух и более уровней.
    ROOT_REWARD_INCLUDES_DIRECT_REFERRER: bool = False

    RECONCILE_INTERVAL_MINUTES: int = 10
    STALE_INTENT_MINUTES: int = 30

    CORS_ORIGINS_JSON: str = Field(
        default='["http://localhost", "http://localhost:3000", "http://localhost:5173"]',
        alias="CORS_ORIGINS",
    )

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return json.loads(self.CORS_ORIGINS_JSON)

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"
    @property
    def DATABASE_URL(self) -> str:
        return f"postgresql+psycopg2://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"

    model_config = SettingsConfigDict(env_file=".env", populate_by_name=True)

settings = Settings()
