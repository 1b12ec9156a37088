"""
Application configuration for the log stats service.

Provides environment-aware settings with conservative defaults. Retention and
query bounds are fixed module constants rather than settings: they are part of
the service contract, not deployment tuning.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Records whose event timestamp is older than this are invisible to all reads.
RETENTION_WINDOW = timedelta(days=10)

TOP_ERRORS_SAMPLE_SIZE = 5
DEFAULT_TOP_ERRORS_LIMIT = 10
MIN_TOP_ERRORS_LIMIT = 1
MAX_TOP_ERRORS_LIMIT = 100


class Config(BaseSettings):
	"""
	Global configuration with environment overrides.

	Notes:
	- ingest_dir: directory scanned for *.json batches at server startup.
	- ingest_workers: thread fan-out for batch ingestion (1 = sequential).
	- compaction_interval_seconds: background expiry sweep period, 0 disables it.
	"""

	model_config = SettingsConfigDict(env_prefix="LOGSTATS_", env_file=".env", extra="ignore")

	log_level: str = Field("INFO", description="Default logging level")
	logs_dir: Path = Field(Path("logs"), description="Directory for service log files")
	ingest_dir: Path = Field(Path("logs_in"), description="Directory of JSON log batches")
	ingest_workers: int = Field(1, ge=1, le=64)

	host: str = Field("0.0.0.0", description="HTTP bind address")
	port: int = Field(3000, ge=0, le=65535)
	compaction_interval_seconds: int = Field(3600, ge=0)

	def model_post_init(self, __context: object) -> None:
		self.logs_dir.mkdir(parents=True, exist_ok=True)


config = Config()
