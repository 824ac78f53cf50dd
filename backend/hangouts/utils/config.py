"""
Hangout Scheduler Configuration Management
Handles environment variables, scheduling defaults, and API settings
"""

import os
from typing import Dict, Any, List
from dataclasses import dataclass
from pathlib import Path
import logging

logger = logging.getLogger(__name__)


@dataclass
class SchedulingConfig:
    """Availability search defaults"""
    step_minutes: int
    min_step_minutes: int
    max_search_days: int

    @classmethod
    def from_env(cls) -> 'SchedulingConfig':
        return cls(
            step_minutes=int(os.getenv('SCHEDULING_STEP_MINUTES', '15')),
            min_step_minutes=int(os.getenv('SCHEDULING_MIN_STEP_MINUTES', '5')),
            max_search_days=int(os.getenv('SCHEDULING_MAX_SEARCH_DAYS', '92'))
        )


@dataclass
class APIConfig:
    """FastAPI Application Configuration"""
    host: str
    port: int
    debug: bool
    cors_origins: List[str]
    log_level: str

    @classmethod
    def from_env(cls) -> 'APIConfig':
        return cls(
            host=os.getenv('API_HOST', '0.0.0.0'),
            port=int(os.getenv('API_PORT', '8000')),
            debug=os.getenv('DEBUG', 'False').lower() == 'true',
            cors_origins=os.getenv('CORS_ORIGINS', 'http://localhost:3000').split(','),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper()
        )


class Config:
    """Main Configuration Manager"""

    def __init__(self, env_path: Path = None):
        self.load_environment(env_path)

        self.scheduling = SchedulingConfig.from_env()
        self.api = APIConfig.from_env()

        self.validate_config()

    def load_environment(self, env_path: Path = None) -> None:
        """Load environment variables from .env file if it exists"""
        env_path = env_path or Path(__file__).parent.parent / 'config' / '.env'

        if env_path.exists():
            with open(env_path, 'r') as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith('#') and '=' in line:
                        key, value = line.split('=', 1)
                        os.environ.setdefault(key.strip(), value.strip())
            logger.info(f"Loaded environment from {env_path}")

    def validate_config(self) -> None:
        """Validate configuration values"""
        errors = []

        if self.scheduling.min_step_minutes <= 0:
            errors.append("SCHEDULING_MIN_STEP_MINUTES must be positive")
        if self.scheduling.step_minutes < self.scheduling.min_step_minutes:
            errors.append("SCHEDULING_STEP_MINUTES must be at least SCHEDULING_MIN_STEP_MINUTES")
        if self.scheduling.max_search_days <= 0:
            errors.append("SCHEDULING_MAX_SEARCH_DAYS must be positive")

        if self.api.log_level not in logging.getLevelNamesMapping():
            errors.append(f"LOG_LEVEL '{self.api.log_level}' is not a logging level")

        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(f"- {error}" for error in errors)
            logger.error(error_msg)
            raise ValueError(error_msg)

        logger.debug("Configuration validation passed")

    def get_log_config(self) -> Dict[str, Any]:
        """Get logging configuration"""
        return {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'default': {
                    'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                },
            },
            'handlers': {
                'default': {
                    'formatter': 'default',
                    'class': 'logging.StreamHandler',
                    'stream': 'ext://sys.stdout',
                },
            },
            'root': {
                'level': self.api.log_level,
                'handlers': ['default'],
            },
        }


# Global configuration instance
config = Config()

__all__ = [
    'config',
    'SchedulingConfig',
    'APIConfig',
    'Config'
]
