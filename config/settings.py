from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
	DATABASE_URL: str = 'sqlite+aiosqlite:///./fleet_dashboard.db'
	DATABASE_ECHO: bool = False

	REDIS_URL: str = 'redis://localhost:6379'

	# Currency
	BASE_CURRENCY: str = 'USD'
	DISPLAY_CURRENCIES: list[str] = ['USD', 'UGX', 'KES']

	# Exchange rates
	OPENEXCHANGE_APP_ID: str = ''
	RATE_CACHE_TTL_SECONDS: int = 300
	RATE_REFRESH_INTERVAL_SECONDS: int = 3600

	# Recomputation
	DEBOUNCE_SECONDS: float = 0.5
	RECOMPUTE_TIMEOUT_SECONDS: float = 5.0

	# Dashboard rules
	OUTSTANDING_INCLUDES_COMPLETED: bool = False
	TOP_N_VEHICLES: int = 10

	# Application
	APP_NAME: str = 'Fleet Dashboard Engine'
	LOG_LEVEL: str = 'INFO'
	LOG_DIRECTORY: str = ''

	model_config = SettingsConfigDict(env_file='.env', case_sensitive=False, extra='ignore')


@lru_cache
def get_settings() -> Settings:
	return Settings()
