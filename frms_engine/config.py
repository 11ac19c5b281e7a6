"""
Configuration management for the FRMS compliance engine
"""
import os
from typing import Optional
from dataclasses import dataclass
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

KNOWN_FLEETS = ("A320/B737", "A380/A330/B787")

@dataclass
class EngineConfig:
    """Compliance engine defaults"""
    limit_table_file: Optional[str] = None
    default_fleet: str = "A320/B737"
    default_home_base: str = "SYD"
    duty_overhead_hours: float = 1.5
    warning_ratio: Optional[float] = None

@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "json"
    log_file: Optional[str] = None

@dataclass
class AppConfig:
    """Main application configuration"""
    debug: bool = False

def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return float(value)

class Config:
    """Central configuration manager"""

    def __init__(self):
        self.engine = EngineConfig(
            limit_table_file=os.getenv('FRMS_LIMIT_TABLE_FILE') or None,
            default_fleet=os.getenv('FRMS_DEFAULT_FLEET', 'A320/B737'),
            default_home_base=os.getenv('FRMS_HOME_BASE', 'SYD'),
            duty_overhead_hours=float(os.getenv('FRMS_DUTY_OVERHEAD_HOURS', '1.5')),
            warning_ratio=_optional_float('FRMS_WARNING_RATIO')
        )

        self.logging = LoggingConfig(
            level=os.getenv('LOG_LEVEL', 'INFO'),
            format=os.getenv('LOG_FORMAT', 'json'),
            log_file=os.getenv('LOG_FILE')
        )

        self.app = AppConfig(
            debug=os.getenv('DEBUG', 'False').lower() == 'true'
        )

    def validate(self) -> bool:
        """Validate configuration"""
        if self.engine.default_fleet not in KNOWN_FLEETS:
            return False
        if self.engine.duty_overhead_hours < 0:
            return False
        ratio = self.engine.warning_ratio
        if ratio is not None and (ratio <= 0 or ratio > 1):
            return False
        return True

    def frms_configuration(self, **overrides):
        """Build an FRMSConfiguration from the configured defaults"""
        from frms_engine.models.schemas import FRMSConfiguration

        values = {
            "fleet": self.engine.default_fleet,
            "home_base": self.engine.default_home_base,
            "duty_overhead_hours": self.engine.duty_overhead_hours,
            "warning_ratio": self.engine.warning_ratio,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return FRMSConfiguration(**values)

# Global configuration instance
config = Config()
