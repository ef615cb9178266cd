"""
Configuration settings for the Meseca gateway and supervisor
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from meseca.supervisor.models import ServiceDescriptor


def default_services() -> List[ServiceDescriptor]:
    """Backends started by the supervisor when none are configured."""
    return [
        ServiceDescriptor(name="Gateway Server", port=5000, command="python", args=["run_server.py"]),
        ServiceDescriptor(name="VITS Server", port=7000, command="python", args=["vits_server.py"]),
        ServiceDescriptor(name="Whisper Server", port=7001, command="python", args=["whisper_server.py"]),
    ]


class Settings(BaseSettings):
    """Application settings"""

    # Gateway service
    host: str = Field(default="0.0.0.0", description="Gateway bind address")
    port: int = Field(default=5000, description="Gateway port")
    allowed_origin: str = Field(
        default="http://localhost:8080",
        description="Single origin allowed by CORS"
    )

    # Backend URLs
    ollama_url: str = Field(default="http://127.0.0.1:11434", description="Text generation backend")
    vits_url: str = Field(default="http://127.0.0.1:7000", description="Speech synthesis backend")
    whisper_url: str = Field(default="http://127.0.0.1:7001", description="Speech recognition backend")
    llm_model: str = Field(default="llama3", description="Model name sent to the generation backend")
    backend_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Timeout for backend calls; unset means wait for the transport"
    )
    backend_connect_attempts: int = Field(
        default=1,
        ge=1,
        description="Attempts made when a backend refuses the connection"
    )

    # Rate limiting
    rate_limit_window_ms: int = Field(default=60_000, ge=1, description="Rate limit window in ms")
    rate_limit_max: int = Field(default=60, ge=1, description="Requests allowed per window per client")

    # Conversation memory
    memory_file: str = Field(default="./tts_memory.json", description="Persisted memory document")
    history_max_entries: int = Field(default=200, ge=1, description="Max stored conversation entries")
    context_entries: int = Field(default=20, ge=0, description="Entries included in the prompt")
    persona_name: str = Field(default="Meseca", description="Assistant name used in the persona")
    persona_developer: str = Field(default="Dev", description="Developer credited in the persona")

    # Uploads and static files
    max_upload_bytes: int = Field(default=20 * 1024 * 1024, ge=1, description="Recognition upload cap")
    upload_dir: str = Field(default="uploads", description="Staging directory for uploads")
    static_dir: str = Field(default="public", description="Served under /static when present")

    # Supervisor
    launcher_host: str = Field(default="0.0.0.0", description="Supervisor trigger bind address")
    launcher_port: int = Field(default=3000, description="Supervisor trigger port")
    supervisor_cwd: Optional[str] = Field(default=None, description="Working directory for children")
    launcher_static_dir: Optional[str] = Field(
        default=None,
        description="Launcher web UI directory; defaults to the supervisor working directory"
    )
    supervised_services: List[ServiceDescriptor] = Field(
        default_factory=default_services,
        description="Services started by the supervisor, in order"
    )

    # Logging configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="text", description="Log format (json or text)")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
