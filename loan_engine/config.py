"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
Settings only supply defaults (for create_loan and validator limits); every
calculation still receives its RoundingConfig explicitly.
"""

from pydantic_settings import BaseSettings


class LoanEngineConfig(BaseSettings):
    """Loan engine configuration"""
    
    # Defaults applied when building loan terms
    default_rounding_method: str = "HALF_UP"
    default_decimal_places: int = 2
    default_payment_frequency: str = "monthly"
    default_interest_type: str = "amortized"
    default_day_count_convention: str = "30/360"
    
    # Validation limits
    max_principal: str = "100000000"  # Decimal as string
    max_annual_rate: str = "100"
    max_term_months: int = 600  # 50 years
    max_first_payment_offset_months: int = 3
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    
    class Config:
        env_prefix = "LOAN_ENGINE_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = LoanEngineConfig()


def get_config() -> LoanEngineConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LoanEngineConfig:
    """Reload configuration from environment"""
    global config
    config = LoanEngineConfig()
    return config
