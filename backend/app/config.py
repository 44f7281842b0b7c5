from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Upstream ticket API
    ticket_api_url: str = "http://localhost:4000"
    ticket_api_timeout_seconds: float = 10.0

    # Upstream endpoints
    tickets_all_path: str = "/api/tickets/all"
    tickets_reply_path: str = "/api/tickets/reply"
    tickets_delete_path: str = "/api/tickets/delete/{ticket_id}"
    tickets_create_path: str = "/api/tickets/create"
    tickets_mine_path: str = "/api/tickets/my-tickets"
    user_profile_path: str = "/api/user/profile"
    user_login_path: str = "/api/user/login"

    # Auth token (browser-side stand-in for local storage)
    token_cookie_name: str = "token"
    token_cookie_secure: bool = True

    # Ticket submission
    max_upload_size_mb: int = 5

    # Dashboard
    default_avatar_url: str = (
        "https://ui-avatars.com/api/?name=User&background=cccccc&color=555555&size=128"
    )
    report_timezone: str = "UTC"
    recent_tickets_limit: int = 10
    top_customers_limit: int = 5
    session_idle_minutes: int = 60

    # Rate limiting (requests per minute per identity)
    rate_limit_per_minute: int = 100

    # Logging
    log_level: str = "INFO"

    # CORS
    allowed_origins: list[str] = ["http://localhost:5173", "http://localhost:5174"]

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
