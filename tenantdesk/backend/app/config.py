from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_version: str = "2026-10.v1"
    database_url: str = "sqlite:///./tenantdesk.db"
    public_base_url: str = "http://localhost:3000"

    # ---- Logging ----
    log_level: str = "INFO"
    log_format: str = "json"  # json|text
    sql_log_level: str = "WARNING"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Auth ----
    auth_mode: str = "dev"  # dev|jwt
    dev_auto_provision: bool = True

    dev_header_client_slug: str = "X-Client-Slug"
    dev_header_user_email: str = "X-User-Email"
    dev_header_user_role: str = "X-User-Role"

    jwt_secret: str = "dev-change-me"
    jwt_exp_minutes: int = 60 * 24 * 7  # 7 days
    jwt_cookie_name: str = "tenantdesk_jwt"
    jwt_cookie_secure: int = 0
    jwt_cookie_samesite: str = "lax"

    # ---- Cron triggers ----
    cron_secret: str | None = None
    cron_secret_scheduler: str | None = None  # announcements publisher has its own secret

    # ---- Object storage ----
    storage_base_url: str = "http://localhost:54321/storage/v1"
    storage_service_key: str | None = None
    storage_default_bucket: str = "tenantdesk"
    storage_signed_url_ttl_seconds: int = 60 * 30

    # ---- Email ----
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_from: str | None = None
    smtp_use_tls: bool = True
    support_email: str | None = None

    # ---- Subscriptions ----
    trial_days: int = 14
    subscription_reminder_days: list[int] = [7, 3, 1]

    # ---- Calendar reminders ----
    reminder_offsets_minutes: list[int] = [60, 30]
    reminder_window_minutes: int = 5

    # ---- Scheduled announcements ----
    announcement_forward_grace_seconds: int = 30

    # ---- Notifications ----
    notification_insert_batch: int = 500

    # ---- Celery ----
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/1"

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod:
            if (self.auth_mode or "").strip().lower() == "dev":
                raise ValueError("SECURITY: auth_mode=dev is not allowed in prod")
            if self.jwt_secret == "dev-change-me":
                raise ValueError("SECURITY: jwt_secret must be set in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
