#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Configuration manager for Zone Console.
Handles reading and writing configuration settings.
"""

import os
import json
import logging

logger = logging.getLogger(__name__)

class ConfigManager:
    """Manages application configuration for the zone console engine."""

    CONFIG_DIR = os.path.expanduser("~/.config/zoneconsole")
    CONFIG_FILE = os.path.join(CONFIG_DIR, "config.json")
    DEFAULT_API_URL = "http://localhost:3000"

    def __init__(self, config_dir=None):
        """Initialize the configuration manager.

        Args:
            config_dir (str, optional): Directory overriding CONFIG_DIR
        """
        if config_dir:
            self.CONFIG_DIR = config_dir
            self.CONFIG_FILE = os.path.join(config_dir, "config.json")
        self._config = {
            "api_url": self.DEFAULT_API_URL,
            "request_timeout": 10,  # Seconds before a backend call is abandoned
            "domains_page_size": 20,
            "records_page_size": 50,
            "credential_expiry_days": 30,
            "strict_record_types": True,  # Enforce the supported record type list
            "validate_all_before_send": True,  # Any rejected line blocks the whole batch
            "storage_quota_bytes": 5 * 1024 * 1024,
            "debug_mode": False
        }
        self._ensure_config_dir_exists()
        self._load_config()

    def _ensure_config_dir_exists(self):
        """Create configuration directory if it doesn't exist."""
        if not os.path.exists(self.CONFIG_DIR):
            try:
                os.makedirs(self.CONFIG_DIR)
                logger.info(f"Created configuration directory: {self.CONFIG_DIR}")
            except OSError as e:
                logger.error(f"Failed to create config directory: {e}")

    def _load_config(self):
        """Load configuration from file."""
        if os.path.exists(self.CONFIG_FILE):
            try:
                with open(self.CONFIG_FILE, 'r') as f:
                    stored_config = json.load(f)

                # Only update with explicitly set values
                self._config.update(stored_config)
                logger.info("Configuration loaded successfully")
            except (json.JSONDecodeError, IOError) as e:
                logger.error(f"Failed to load config: {e}")
        else:
            logger.info("No configuration file found, using defaults")

    def save_config(self):
        """Save current configuration to file.

        Returns:
            bool: True if the file was written
        """
        try:
            with open(self.CONFIG_FILE, 'w') as f:
                json.dump(self._config, f, indent=2)
            logger.info("Configuration saved successfully")
            return True
        except IOError as e:
            logger.error(f"Failed to save config: {e}")
            return False

    def get_config_dir(self):
        """Get the directory holding config, storage and logs."""
        return self.CONFIG_DIR

    def get_storage_file(self):
        """Get the path of the local key/value storage file."""
        return os.path.join(self.CONFIG_DIR, "storage.json")

    def get_log_dir(self):
        """Get the directory log files are written to."""
        return os.path.join(self.CONFIG_DIR, "logs")

    def get_setting(self, key, default=None):
        """Get an arbitrary setting.

        Args:
            key (str): Setting name
            default: Value returned when the setting is missing
        """
        return self._config.get(key, default)

    def set_setting(self, key, value):
        """Set an arbitrary setting."""
        self._config[key] = value

    def get_api_url(self):
        """Get the backend base URL."""
        return self._config["api_url"].rstrip('/')

    def set_api_url(self, url):
        """Set the backend base URL."""
        self._config["api_url"] = url

    def get_request_timeout(self):
        """Get the request timeout in seconds."""
        return self._config.get("request_timeout", 10)

    def set_request_timeout(self, seconds):
        """Set the request timeout in seconds."""
        self._config["request_timeout"] = seconds

    def get_page_size(self, view_name):
        """Get the page size for a view.

        Args:
            view_name (str): 'domains' or 'records'

        Returns:
            int: Items requested per server page
        """
        if view_name == "domains":
            return self._config.get("domains_page_size", 20)
        return self._config.get("records_page_size", 50)

    def set_page_size(self, view_name, size):
        """Set the page size for a view."""
        if size < 1:
            raise ValueError(f"Page size must be positive, got {size}")
        key = "domains_page_size" if view_name == "domains" else "records_page_size"
        self._config[key] = size

    def get_credential_expiry_days(self):
        """Get how many days a saved credential stays valid."""
        return self._config.get("credential_expiry_days", 30)

    def set_credential_expiry_days(self, days):
        """Set how many days a saved credential stays valid."""
        self._config["credential_expiry_days"] = days

    def get_strict_record_types(self):
        """Get whether bulk lines are checked against the supported types."""
        return self._config.get("strict_record_types", True)

    def set_strict_record_types(self, enabled):
        """Set whether bulk lines are checked against the supported types."""
        self._config["strict_record_types"] = enabled

    def get_validate_all_before_send(self):
        """Get whether a single rejected line blocks the whole batch."""
        return self._config.get("validate_all_before_send", True)

    def set_validate_all_before_send(self, enabled):
        """Set whether a single rejected line blocks the whole batch."""
        self._config["validate_all_before_send"] = enabled

    def get_storage_quota_bytes(self):
        """Get the size limit of the local storage file."""
        return self._config.get("storage_quota_bytes", 5 * 1024 * 1024)

    def get_debug_mode(self):
        """Get debug mode status."""
        return self._config["debug_mode"]

    def set_debug_mode(self, enabled):
        """Set debug mode status."""
        self._config["debug_mode"] = enabled
