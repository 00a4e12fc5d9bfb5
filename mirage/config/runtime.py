from __future__ import annotations

from dataclasses import dataclass
import os


@dataclass(frozen=True)
class RuntimeSettings:
    page_size: int
    export_page_size: int
    session_secret: str
    session_cookie: str
    session_max_age_seconds: int
    frontend_url: str
    api_host: str
    api_port: int
    log_level: str

    @classmethod
    def from_env(cls) -> "RuntimeSettings":
        return cls(
            page_size=int(os.getenv("PAGE_SIZE", "50")),
            export_page_size=int(os.getenv("EXPORT_PAGE_SIZE", "50")),
            session_secret=os.getenv("SESSION_SECRET", "your-secret-key-change-this-in-production"),
            session_cookie=os.getenv("SESSION_COOKIE", "mirage.sid"),
            session_max_age_seconds=int(os.getenv("SESSION_MAX_AGE_SECONDS", str(24 * 60 * 60))),
            frontend_url=os.getenv("FRONTEND_URL", "http://localhost:5173"),
            api_host=os.getenv("API_HOST", "0.0.0.0"),
            api_port=int(os.getenv("API_PORT", "5000")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
