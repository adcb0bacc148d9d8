from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    app_env: str = "dev"
    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/submissions.db"

    jwt_secret: str = "changeme"
    jwt_expires_hours: int = 24

    # Signed approve/reject links embedded in manager emails
    email_secret: str = "changeme-email"
    email_token_max_age_seconds: int = 7 * 24 * 3600  # 0 disables expiry
    base_url: str = "http://localhost:3001"

    manager_email: str = ""  # receives approval requests
    from_email: str = ""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_starttls: bool = True

    writer_email: str = "writer@example.com"
    writer_password: str = "writer123"
    manager_auth_email: str = "manager@example.com"
    manager_password: str = "manager123"

    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:3001"]


settings = Settings()  # reads from env
