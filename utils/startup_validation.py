"""
Startup Validation Module

Checks the loaded configuration before the app serves requests:
1. Configuration validation - fail fast on unsafe settings in production
2. Database connectivity
3. Blueprint registration tracking
"""

import sys
import logging
from typing import Dict, List, Optional, Tuple, Any
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import text

from config import DEFAULT_JWT_SECRET

logger = logging.getLogger(__name__)

MIN_SECRET_LENGTH = 32


@dataclass
class ValidationResult:
    """Result of a validation check."""
    name: str
    passed: bool
    message: str
    severity: str = "error"  # error, warning, info
    remediation: Optional[str] = None


@dataclass
class StartupReport:
    """Startup validation report."""
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())
    environment: str = "development"
    validations: List[ValidationResult] = field(default_factory=list)
    ready: bool = False

    def add_validation(self, result: ValidationResult):
        self.validations.append(result)

    def has_critical_failures(self) -> bool:
        return any(v.severity == "error" and not v.passed for v in self.validations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "environment": self.environment,
            "ready": self.ready,
            "validations": [
                {
                    "name": v.name,
                    "passed": v.passed,
                    "message": v.message,
                    "severity": v.severity,
                    "remediation": v.remediation
                }
                for v in self.validations
            ],
            "summary": {
                "total_validations": len(self.validations),
                "passed": sum(1 for v in self.validations if v.passed),
                "failed": sum(1 for v in self.validations if not v.passed),
            }
        }


class StartupValidator:
    """
    Validates the Flask config of a freshly created app.

    Unsafe defaults are errors in production and warnings elsewhere.
    """

    def __init__(self, app):
        self.app = app
        self.config = app.config
        self.report = StartupReport(environment=self.config.get("ENV_NAME", "development"))

    def is_production(self) -> bool:
        return self.report.environment == "production"

    def validate_jwt_secret(self) -> None:
        """JWT secret must not be the shipped default and must be long enough in production."""
        secret = self.config.get("JWT_SECRET") or ""
        severity = "error" if self.is_production() else "warning"

        if secret == DEFAULT_JWT_SECRET:
            self.report.add_validation(ValidationResult(
                name="security:jwt_secret",
                passed=not self.is_production(),
                message="JWT_SECRET is the development default",
                severity=severity,
                remediation="Generate a strong random key: python -c 'import secrets; print(secrets.token_hex(32))'"
            ))
        elif len(secret) < MIN_SECRET_LENGTH:
            self.report.add_validation(ValidationResult(
                name="security:jwt_secret",
                passed=not self.is_production(),
                message=f"JWT_SECRET too short ({len(secret)} chars, need {MIN_SECRET_LENGTH}+)",
                severity=severity,
                remediation=f"Use at least {MIN_SECRET_LENGTH} characters for JWT_SECRET"
            ))
        else:
            self.report.add_validation(ValidationResult(
                name="security:jwt_secret",
                passed=True,
                message="JWT_SECRET meets requirements",
            ))

    def validate_token_lifetime(self) -> None:
        expires_in = self.config.get("JWT_EXPIRES_IN") or 0
        self.report.add_validation(ValidationResult(
            name="security:jwt_expires_in",
            passed=expires_in > 0,
            message=f"JWT lifetime is {expires_in}s",
            remediation=None if expires_in > 0 else "Set JWT_EXPIRES_IN to a positive duration such as 7d"
        ))

    def validate_local_user_mode(self) -> None:
        enabled = bool(self.config.get("LOCAL_USER_MODE"))
        self.report.add_validation(ValidationResult(
            name="security:local_user_mode",
            passed=not (enabled and self.is_production()),
            message="Local user mode enabled (no login required)" if enabled else "Local user mode disabled",
            severity="error" if self.is_production() else "info",
            remediation="Disable LOCAL_USER_MODE in production" if enabled else None
        ))

    def validate_database_connection(self) -> None:
        """Test database connectivity."""
        from models import db

        try:
            with self.app.app_context():
                with db.engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
            self.report.add_validation(ValidationResult(
                name="db:connection",
                passed=True,
                message="Database connection successful",
            ))
        except Exception as e:
            self.report.add_validation(ValidationResult(
                name="db:connection",
                passed=False,
                message=f"Database connection failed: {str(e)[:100]}",
                remediation="Check DATABASE_URL and ensure the database file is writable"
            ))

    def run_all_validations(self) -> StartupReport:
        """Run all validation checks and return the report."""
        self.validate_jwt_secret()
        self.validate_token_lifetime()
        self.validate_local_user_mode()
        self.validate_database_connection()

        self.report.ready = not self.report.has_critical_failures()

        summary = self.report.to_dict()["summary"]
        logger.info(
            f"[STARTUP] {self.report.environment}: "
            f"{summary['passed']}/{summary['total_validations']} validations passed"
        )
        for v in self.report.validations:
            if not v.passed or v.severity == "warning":
                log = logger.error if (not v.passed and v.severity == "error") else logger.warning
                log(f"[STARTUP]  - {v.name}: {v.message}")
                if v.remediation:
                    log(f"[STARTUP]    Fix: {v.remediation}")

        return self.report

    def fail_if_not_ready(self) -> None:
        """
        In production, exit when a critical validation failed.
        Elsewhere log and continue.
        """
        if not self.report.ready:
            if self.is_production():
                logger.critical("Application cannot start - critical configuration missing")
                sys.exit(1)
            else:
                logger.warning("Development mode: continuing despite validation failures")


class BlueprintRegistry:
    """
    Registers blueprints and keeps track of what was loaded.
    """

    def __init__(self, app):
        self.app = app
        self.loaded: List[str] = []
        self.failed: List[Tuple[str, str]] = []

    def register(self, blueprint, url_prefix: Optional[str] = None) -> None:
        try:
            if url_prefix:
                self.app.register_blueprint(blueprint, url_prefix=url_prefix)
            else:
                self.app.register_blueprint(blueprint)
        except Exception as e:
            self.failed.append((blueprint.name, f"{type(e).__name__}: {str(e)[:100]}"))
            logger.error(f"[STARTUP] Failed to register blueprint {blueprint.name}: {e}")
            raise
        self.loaded.append(blueprint.name)
        logger.debug(f"[STARTUP] Loaded blueprint {blueprint.name}")

    def get_status(self) -> Dict[str, Any]:
        return {
            "loaded_count": len(self.loaded),
            "failed_count": len(self.failed),
            "loaded": self.loaded,
            "failed": [{"name": n, "error": e} for n, e in self.failed],
        }


def run_startup_validation(app) -> StartupReport:
    """
    Validate ``app`` and exit in production when it is not safe to start.
    """
    validator = StartupValidator(app)
    report = validator.run_all_validations()
    validator.fail_if_not_ready()
    return report
