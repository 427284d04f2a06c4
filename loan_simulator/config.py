"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from decimal import Decimal
from typing import List

from pydantic_settings import BaseSettings

from .validation import LoanLimits


class LoanSimulatorConfig(BaseSettings):
    """Bank loan simulator configuration"""

    # Storage configuration
    storage_backend: str = "sqlite"  # sqlite or memory
    database_path: str = "loan_simulator.db"

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090
    cors_origins: List[str] = ["http://localhost:5173"]

    # Security configuration
    jwt_secret: str = "change-me-in-production-please-use-a-long-random-key"
    jwt_issuer: str = "BankLoanSimulator"
    jwt_expiry_days: int = 30
    jwt_algorithm: str = "HS256"
    password_min_length: int = 6

    # Logging configuration
    log_level: str = "INFO"

    # Business rules configuration
    max_loan_amount: Decimal = Decimal("100000000")
    max_interest_rate: Decimal = Decimal("50")
    max_term_months: int = 240

    # Demo accounts created at startup
    seed_demo_users: bool = True
    admin_email: str = "admin@test.com"
    admin_password: str = "admin123"
    demo_user_email: str = "user@example.com"
    demo_user_password: str = "User123!"

    class Config:
        env_prefix = "LOANSIM_"
        env_file = ".env"
        case_sensitive = False

    def loan_limits(self) -> LoanLimits:
        return LoanLimits(
            max_amount=self.max_loan_amount,
            max_interest_rate=self.max_interest_rate,
            max_term_months=self.max_term_months
        )


# Global configuration instance
config = LoanSimulatorConfig()


def get_config() -> LoanSimulatorConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LoanSimulatorConfig:
    """Reload configuration from environment"""
    global config
    config = LoanSimulatorConfig()
    return config
