"""
Configuration Schema

Pydantic schema for the account closer configuration file. Every section has
defaults matching the production Zimbra layout, so an empty configuration
is valid.
"""
from typing import Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict


DEFAULT_ACCOUNTS_FILE = "/opt/zimbra/accounts_with_date.csv"
DEFAULT_EXCLUSIONS_FILE = "/opt/zimbra/logs/tmp/actual_email TXT.txt"
DEFAULT_ACTION_LOG = "/opt/zimbra/logs/zimbra_disable_today.log"
DEFAULT_DRY_RUN_ACTION_LOG = "/opt/zimbra/logs/zimbra_disable_today.dryrun.log"
DEFAULT_DIAGNOSTIC_LOG = "/opt/zimbra/logs/zimbra_disable_debug.log"
DEFAULT_CLOSE_COMMAND = ["zmprov", "ma", "{email}", "zimbraAccountStatus", "closed"]
DEFAULT_PATH_PREPEND = ["/opt/zimbra/bin", "/usr/bin", "/bin", "/opt/zimbra/common/bin"]


class PathsConfig(BaseModel):
    """Input sources and log destinations."""
    accounts_file: str = Field(default=DEFAULT_ACCOUNTS_FILE, description="Semicolon-delimited account export")
    exclusions_file: str = Field(default=DEFAULT_EXCLUSIONS_FILE, description="Free-form text file listing excluded addresses")
    action_log: str = Field(default=DEFAULT_ACTION_LOG, description="Action log written in apply mode")
    dry_run_action_log: str = Field(default=DEFAULT_DRY_RUN_ACTION_LOG, description="Action log written in dry-run mode")
    diagnostic_log: str = Field(default=DEFAULT_DIAGNOSTIC_LOG, description="Timestamped per-decision diagnostic log")
    encoding: str = Field(default="utf-8", description="Encoding of the input files")
    truncate_logs_on_start: bool = Field(default=True, description="Empty both logs at the start of every run")

    @field_validator('accounts_file', 'exclusions_file', 'action_log', 'dry_run_action_log', 'diagnostic_log')
    @classmethod
    def validate_non_empty_path(cls, v: str) -> str:
        """Validate that file paths are non-empty."""
        if not v or not v.strip():
            raise ValueError("File path cannot be empty")
        return v


class PolicyConfig(BaseModel):
    """Decision policy knobs."""
    inactivity_months: int = Field(default=6, description="Calendar months without login before an account is closed")
    active_status: str = Field(default="active", description="Status value that marks a closure candidate")
    never_disable_marker: str = Field(default="never_disable", description="Notes marker that protects an account")

    @field_validator('inactivity_months')
    @classmethod
    def validate_inactivity_months(cls, v: int) -> int:
        """Validate the inactivity window is a sensible number of months."""
        if not (1 <= v <= 120):
            raise ValueError(f"inactivity_months must be between 1 and 120, got {v}")
        return v

    @field_validator('active_status', 'never_disable_marker')
    @classmethod
    def validate_non_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Value cannot be empty")
        return v.strip()


class ClosureConfig(BaseModel):
    """External closure command."""
    command: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CLOSE_COMMAND),
        description="Command template; '{email}' is replaced by the account address"
    )
    path_prepend: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PATH_PREPEND),
        description="Directories put in front of PATH when running the command"
    )

    @field_validator('command')
    @classmethod
    def validate_command(cls, v: list[str]) -> list[str]:
        """Validate the command is non-empty and references the account."""
        if not v:
            raise ValueError("closure command cannot be empty")
        if not any('{email}' in part for part in v):
            raise ValueError("closure command must contain the '{email}' placeholder")
        return v


class LoggingConfig(BaseModel):
    """Diagnostic logging section."""
    level: str = Field(default="INFO", description="Log level for console and diagnostic log")
    console: bool = Field(default=True, description="Mirror diagnostics to stdout")
    format: str = Field(default="plain", description="'plain' text lines or 'json' lines")

    @field_validator('format')
    @classmethod
    def validate_format(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in ('plain', 'json'):
            raise ValueError(f"Invalid log format: {v} (expected 'plain' or 'json')")
        return v_lower

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level is one of the standard names."""
        v_upper = v.upper()
        if v_upper not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f"Invalid log level: {v}")
        return v_upper


class CloserConfigSchema(BaseModel):
    """
    Root configuration schema.

    All sections are optional; unknown keys are rejected so that typos in
    the YAML file surface as configuration errors.
    """
    paths: PathsConfig = Field(default_factory=PathsConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    closure: ClosureConfig = Field(default_factory=ClosureConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True
    )

    def action_log_path(self, dry_run: bool) -> str:
        """Action log path for the selected mode."""
        return self.paths.dry_run_action_log if dry_run else self.paths.action_log


def default_config(overrides: Optional[dict] = None) -> CloserConfigSchema:
    """Build a configuration from defaults, optionally updated section-wise."""
    return CloserConfigSchema(**(overrides or {}))
