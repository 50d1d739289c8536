"""Application configuration via environment variables."""

from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_service_role_key: str = ""

    # Job store backend
    job_store: str = "memory"  # "memory" or "supabase"

    # Collaborating services
    wendy_url: str = "http://localhost:5000"
    friends_url: str = "http://localhost:3000"
    notify_timeout_seconds: float = 10.0

    # Artifact locations
    out_dir: str = "/mnt/v0.9.2"
    tmp_dir: str = "/tmp"
    samples_dir: str = "./samples"

    # External programs
    renderer_bin: str = "sclang"
    renderer_script: str = "./nrt.sc"
    transcoder_bin: str = "lame"
    render_timeout_seconds: float = 30.0
    transcode_timeout_seconds: float = 30.0

    # Scheduler
    poll_interval_ms: int = 1000
    max_render_seconds: float = 50.0
    pickup_order: str = "newest"  # "newest" or "oldest"

    # Server
    app_port: int = 5000
    cors_origins: List[str] = ["http://localhost:3000", "*"]
    log_level: str = "INFO"
    log_file: str = "application.log"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
