"""
Tests for environment-based configuration
"""

from decimal import Decimal

from loan_simulator.config import LoanSimulatorConfig


class TestLoanSimulatorConfig:
    """Test defaults and LOANSIM_* overrides"""

    def test_defaults(self):
        config = LoanSimulatorConfig()

        assert config.api_port == 8090
        assert config.jwt_issuer == "BankLoanSimulator"
        assert config.jwt_expiry_days == 30
        assert config.password_min_length == 6
        assert config.max_term_months == 240

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LOANSIM_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("LOANSIM_API_PORT", "9000")
        monkeypatch.setenv("LOANSIM_MAX_TERM_MONTHS", "120")

        config = LoanSimulatorConfig()

        assert config.storage_backend == "memory"
        assert config.api_port == 9000
        assert config.max_term_months == 120

    def test_loan_limits(self):
        config = LoanSimulatorConfig(
            max_loan_amount=Decimal("250000"),
            max_interest_rate=Decimal("30"),
            max_term_months=360
        )

        limits = config.loan_limits()
        assert limits.max_amount == Decimal("250000")
        assert limits.max_interest_rate == Decimal("30")
        assert limits.max_term_months == 360
        assert limits.min_interest_rate == Decimal("0")
        assert limits.min_term_months == 1
