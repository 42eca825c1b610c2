"""
Runtime Settings

Thresholds and integration settings, loaded from an optional YAML file
(LEDGERFLOW_CONFIG or config/settings.yaml) with environment overrides.
"""
import os
from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Optional

import yaml

from ledgerflow.common.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = os.path.join('config', 'settings.yaml')


@dataclass
class Settings:
    """
    Attributes:
        min_text_lines: Text lines an analysis pass must return to be trusted
        max_sync_bytes: Largest buffer sent to the analysis service
        review_threshold: Journal entries above this amount are flagged
        balance_tolerance: Max debit/credit difference for a balanced entry
        analysis_timeout_seconds: Bound on each external call
        analysis_retries: Extra attempts after a failed external call
        min_table_transactions: Valid rows a table tier needs to be sufficient
    """
    min_text_lines: int = 50
    max_sync_bytes: int = 10 * 1024 * 1024
    review_threshold: Decimal = Decimal('10000')
    balance_tolerance: Decimal = Decimal('0.01')
    analysis_timeout_seconds: float = 30.0
    analysis_retries: int = 1
    min_table_transactions: int = 1

    gemini_model: str = 'gemini-2.5-flash'
    gemini_api_key: Optional[str] = None

    rules_path: Optional[str] = None  # JSON rule store; in-memory when unset
    chart_path: Optional[str] = None
    categories_path: Optional[str] = None
    columns_path: Optional[str] = None
    log_level: str = 'INFO'
    log_file: Optional[str] = None

    def __post_init__(self):
        self.review_threshold = Decimal(str(self.review_threshold))
        self.balance_tolerance = Decimal(str(self.balance_tolerance))
        self.min_text_lines = int(self.min_text_lines)
        self.max_sync_bytes = int(self.max_sync_bytes)
        self.analysis_timeout_seconds = float(self.analysis_timeout_seconds)
        self.analysis_retries = int(self.analysis_retries)
        self.min_table_transactions = int(self.min_table_transactions)

    @classmethod
    def from_dict(cls, data: dict) -> 'Settings':
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning("Ignoring unknown settings", keys=sorted(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def load(cls, path: Optional[str] = None, environ=None) -> 'Settings':
        """
        Build settings from YAML (if present) and environment variables.

        Args:
            path: Explicit YAML path; defaults to $LEDGERFLOW_CONFIG or config/settings.yaml
            environ: Mapping used for overrides (defaults to os.environ)

        Returns:
            Settings instance
        """
        environ = os.environ if environ is None else environ
        path = path or environ.get('LEDGERFLOW_CONFIG') or DEFAULT_CONFIG_PATH

        data = {}
        if os.path.exists(path):
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
            logger.debug("Loaded settings file", path=path)

        for f in fields(cls):
            env_key = f"LEDGERFLOW_{f.name.upper()}"
            if env_key in environ:
                data[f.name] = environ[env_key]

        if environ.get('GEMINI_API_KEY') and not data.get('gemini_api_key'):
            data['gemini_api_key'] = environ['GEMINI_API_KEY']

        return cls.from_dict(data)
