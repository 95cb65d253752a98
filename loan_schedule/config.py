"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class ScheduleConfig(BaseSettings):
    """Loan schedule engine configuration"""
    
    # Storage configuration
    storage_backend: str = "sqlite"  # sqlite or memory
    database_path: str = "loan_schedule.db"
    
    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8091
    api_workers: int = 1
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout
    
    # Business rules configuration
    default_currency: str = "GBP"
    default_loan_duration: int = 6
    default_auto_extend: bool = True
    settled_principal_threshold: str = "0.01"
    average_days_per_month: str = "30.44"
    interest_only_extension_buffer: int = 6
    amortizing_extension_buffer: int = 3
    
    class Config:
        env_prefix = "LOAN_SCHEDULE_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = ScheduleConfig()


def get_config() -> ScheduleConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> ScheduleConfig:
    """Reload configuration from environment"""
    global config
    config = ScheduleConfig()
    return config
