from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "devalyze"
    environment: str = "local"
    debug: bool = True
    log_level: str = "INFO"
    public_base_url: str | None = None

    database_url: str | None = None
    mongo_port: int = 27017
    mongo_host: str = "localhost"
    mongo_db: str = "devalyze"
    mongo_password: str | None = None
    mongo_params: str | None = None
    mongo_user: str | None = None
    mongo_timeout_ms: int = 5000

    jwt_algorithm: str = "HS256"
    jwt_secret_key: str = "very-secret-key"
    session_token_expires_days: int = 7

    bcrypt_rounds: int = 12
    password_min_length: int = 8
    password_max_length: int = 128
    password_require_mixed_case: bool = True
    password_require_digit: bool = True
    password_require_symbol: bool = True
    password_history_size: int = 5

    max_login_attempts: int = 5
    lockout_minutes: int = 120
    verification_token_expires_hours: int = 24
    reset_token_expires_minutes: int = 60

    google_client_id: str | None = None
    google_certs_url: str = "https://www.googleapis.com/oauth2/v3/certs"
    google_timeout_seconds: float = 5.0
    google_certs_cache_seconds: int = 3600

    cors_origins: list[str] = [
        "https://devalyze.vercel.app",
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:5174",
    ]

    csrf_cookie_name: str = "csrfToken"
    csrf_header_name: str = "X-CSRF-Token"
    csrf_form_field: str = "_csrf"
    csrf_cookie_max_age: int = 3600

    admin_api_key: str | None = None
    # Socket peers allowed to set X-Forwarded-For
    trusted_proxies: list[str] = []
    rate_limit_enabled: bool = True
    # scope -> (max requests, window seconds)
    rate_limits: dict[str, tuple[int, int]] = {
        "general": (100, 15 * 60),
        "auth": (10, 15 * 60),
        "shorten": (50, 60 * 60),
        "qr": (30, 60 * 60),
        "password": (3, 15 * 60),
        "reset": (3, 60 * 60),
    }

    short_code_length: int = 7
    short_code_max_attempts: int = 5

    qr_box_size: int = 10
    qr_border: int = 4
    qr_error_correction: str = "M"

    redis_db: int = 0
    redis_port: int = 6379
    redis_host: str = "localhost"
    redis_password: str | None = None
    redis_key_prefix: str = "devalyze"
    redis_timeout_seconds: float = 2.0

    model_config = SettingsConfigDict(env_file=(".env",), case_sensitive=False)

    @property
    def mongo_uri(self) -> str:
        if self.database_url:
            return self.database_url
        auth = ""
        if self.mongo_user and self.mongo_password:
            auth = f"{self.mongo_user}:{self.mongo_password}@"
        params = f"?{self.mongo_params}" if self.mongo_params else "?retryWrites=true&w=majority"
        return f"mongodb+srv://{auth}{self.mongo_host}/{self.mongo_db}{params}"

    @property
    def is_development(self) -> bool:
        return self.environment in ("local", "development")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


settings = Settings()
