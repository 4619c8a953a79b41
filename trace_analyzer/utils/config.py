# trace_analyzer/utils/config.py - Configuration management
"""
Configuration management for the trace analyzer.
Loads and validates configuration from YAML files.
"""

import copy
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from trace_analyzer.utils.options import AnalysisOptions, Thresholds


class Config:
    """
    Configuration manager for the trace analyzer.

    Loads configuration from YAML files and provides access to settings.
    """

    DEFAULT_CONFIG = {
        'analysis': {
            'analyze_long_tasks': True,
            'analyze_layout_thrashing': True,
            'analyze_js_execution': True,
            'analyze_css_variables': True,
            'analyze_memory_and_dom': True,
            'analyze_resource_loading': True,
            'long_task_threshold_ms': 50,
            'layout_thrashing_threshold': 10,
            'memory_leak_threshold_kb': 10,
            'detail_level': 'detailed',
            'include_recommendations': True,
            'focus_selector': None,
            'focus_time_range_ms': None,
            'main_thread_only': False,
        },
        'thresholds': Thresholds().to_dict(),
        'logging': {
            'level': 'INFO',
            'file': None,
        },
        'output': {
            'format': 'stdout',
            'directory': '.',
            'prometheus_port': 9090,
        },
    }

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_file: Path to YAML configuration file
        """
        self.logger = logging.getLogger(__name__)
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)

        if config_file:
            self.load_from_file(config_file)

    def load_from_file(self, config_file: str):
        """
        Load configuration from YAML file.

        Args:
            config_file: Path to YAML file

        Raises:
            ValueError: if the file does not hold a YAML mapping
        """
        config_path = Path(config_file)

        if not config_path.exists():
            self.logger.warning(f"Config file not found: {config_file}, using defaults")
            return

        try:
            with open(config_path, 'r') as f:
                loaded_config = yaml.safe_load(f)

            if loaded_config is None:
                loaded_config = {}
            if not isinstance(loaded_config, dict):
                raise ValueError(f"Config file {config_file} must contain a mapping")

            # Merge with defaults
            self._merge_config(self.config, loaded_config)
            self.logger.info(f"Loaded configuration from {config_file}")

        except Exception as e:
            self.logger.error(f"Failed to load config: {e}")
            raise

    def _merge_config(self, base: Dict, override: Dict):
        """
        Recursively merge configuration dictionaries.

        Args:
            base: Base configuration dictionary
            override: Override configuration dictionary
        """
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._merge_config(base[key], value)
            else:
                base[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation key.

        Args:
            key: Configuration key (e.g., 'analysis.long_task_threshold_ms')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any):
        """
        Set configuration value by dot-notation key.

        Args:
            key: Configuration key (e.g., 'analysis.detail_level')
            value: Value to set
        """
        keys = key.split('.')
        config = self.config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def analysis_options(self) -> AnalysisOptions:
        """
        Build analysis options from the ``analysis`` and ``thresholds``
        sections.

        Returns:
            AnalysisOptions

        Raises:
            ValueError: if a configured value is invalid
        """
        values = dict(self.get('analysis', {}) or {})
        values['thresholds'] = self.get('thresholds', {}) or {}
        return AnalysisOptions.from_dict(values)

    def to_dict(self) -> Dict:
        """
        Get full configuration as dictionary.

        Returns:
            Configuration dictionary
        """
        return copy.deepcopy(self.config)

    def save_to_file(self, config_file: str):
        """
        Save current configuration to YAML file.

        Args:
            config_file: Path to output YAML file
        """
        config_path = Path(config_file)

        try:
            with open(config_path, 'w') as f:
                yaml.safe_dump(self.config, f, default_flow_style=False, sort_keys=False)

            self.logger.info(f"Saved configuration to {config_file}")

        except Exception as e:
            self.logger.error(f"Failed to save config: {e}")
            raise
