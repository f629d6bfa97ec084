"""
Structured Logger for the Crypto Fundamentals Analyzer
Console/file logging setup with JSON, colored and plain formatters
"""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from config.config_manager import LoggingConfig
from utils.errors import (
    CoinNotFoundError, ConfigurationError, ProviderUnavailableError, ValidationError,
)

# Between INFO and WARNING
ANALYSIS_LOG = 25
logging.addLevelName(ANALYSIS_LOG, "ANALYSIS")

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Loggers that drown out analysis output at INFO
NOISY_LOGGERS = ("aiohttp.access", "asyncio")


class StructuredLogger:
    """
    Root logger setup plus analysis and error records

    Analysis summaries go out on the ``<name>.analysis`` logger at the custom
    ANALYSIS level; errors go out on ``<name>.errors`` with a severity picked
    from the error family.
    """

    def __init__(self, name: str = "fundamentals", config: Optional[LoggingConfig] = None,
                 debug: bool = False):
        self.name = name
        self.config = config or LoggingConfig()
        self.level = logging.DEBUG if debug else getattr(logging, self.config.log_level)
        self.configure()

    def _formatter(self, output: str) -> logging.Formatter:
        if output == "console":
            return ColoredFormatter(TEXT_FORMAT, datefmt=DATE_FORMAT)
        if self.config.log_format == "json":
            return JsonFormatter()
        return StandardFormatter()

    def _rotating_handler(self, path: Path, output: str) -> RotatingFileHandler:
        handler = RotatingFileHandler(
            path,
            maxBytes=self.config.max_file_size,
            backupCount=self.config.backup_count,
        )
        handler.setFormatter(self._formatter(output))
        return handler

    def configure(self) -> None:
        """Replace the root handlers according to the configured outputs"""
        root = logging.getLogger()
        root.setLevel(self.level)
        root.handlers = []

        if "console" in self.config.log_outputs:
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(self._formatter("console"))
            root.addHandler(console)

        if "file" in self.config.log_outputs:
            log_dir = Path(self.config.log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)
            root.addHandler(self._rotating_handler(log_dir / f"{self.name}.log", "file"))

            errors_only = self._rotating_handler(log_dir / f"{self.name}_errors.log", "file")
            errors_only.setLevel(logging.ERROR)
            root.addHandler(errors_only)

        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    def log_analysis(self, report: Dict[str, Any]) -> None:
        """One line per finished analysis, with the summary attached as analysis_data"""
        analysis_logger = logging.getLogger(f"{self.name}.analysis")
        metadata = report.get("metadata", {})
        summary = {
            "ticker": report.get("ticker"),
            "overall_score": report.get("overall_score"),
            "classification": report.get("classification"),
            "from_cache": report.get("from_cache", False),
            "duration_ms": metadata.get("analysis_duration_ms"),
            "onchain_tier": metadata.get("onchain_tier"),
        }
        cached = " [cached]" if summary["from_cache"] else ""
        analysis_logger.log(
            ANALYSIS_LOG,
            f"Analysis {summary['ticker']}: {summary['overall_score']} "
            f"({summary['classification']}){cached}",
            extra={"analysis_data": summary},
        )

    def log_error(self, error: Exception, context: Dict[str, Any]) -> None:
        """
        Log an analyzer error with its request context

        Rejected input and unknown coins are warnings, provider and
        configuration failures are errors, anything else is logged with
        its traceback.
        """
        error_logger = logging.getLogger(f"{self.name}.errors")
        where = context.get("function", "unknown")
        error_data = {
            "error_type": type(error).__name__,
            "error_message": str(error),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "context": context,
        }

        if isinstance(error, (ValidationError, CoinNotFoundError)):
            error_logger.warning(f"Rejected in {where}: {error}", extra={"error_data": error_data})
        elif isinstance(error, (ProviderUnavailableError, ConfigurationError)):
            error_logger.error(f"{type(error).__name__} in {where}: {error}",
                               extra={"error_data": error_data})
        else:
            error_data["traceback"] = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
            error_logger.error(f"Unexpected error in {where}: {error}",
                               extra={"error_data": error_data})


class JsonFormatter(logging.Formatter):
    """One JSON object per line"""

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        for attr, key in (("analysis_data", "analysis"), ("error_data", "error")):
            if hasattr(record, attr):
                entry[key] = getattr(record, attr)

        return json.dumps(entry, default=str)


class ColoredFormatter(logging.Formatter):
    """Console formatter with ANSI-colored level names"""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'ANALYSIS': '\033[35m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[41m',
    }
    RESET = '\033[0m'

    def format(self, record):
        levelname = record.levelname
        record.levelname = f"{self.COLORS.get(levelname, '')}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class StandardFormatter(logging.Formatter):
    def __init__(self):
        super().__init__(TEXT_FORMAT, datefmt=DATE_FORMAT)
