from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7
    bcrypt_rounds: int = 12

    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:8080"]
    frontend_url: str = "http://localhost:5173"

    # SMTP для уведомлений
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    mail_from: Optional[str] = None
    password_reset_expire_minutes: int = 60

    realtime_require_auth: bool = True
    # максимум неотправленных сообщений на одно соединение
    realtime_queue_size: int = 1000

    log_level: str = "INFO"
    sql_echo: bool = False

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
