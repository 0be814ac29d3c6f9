#!/usr/bin/env python3
"""
Settings loader for wpmirror.
Supports configuration from wpmirror.yml, wpmirror.yaml, or wpmirror.json files,
the WORDPRESS_URL environment variable, and command-line overrides.
"""

import os
import json
import yaml
from typing import Dict, Any, Optional, Mapping


DEFAULT_WORDPRESS_URL = 'http://spacezine.local'


class MirrorSettings:
    """Load and manage wpmirror configuration settings."""

    # Default configuration
    DEFAULT_SETTINGS = {
        'wordpress_url': DEFAULT_WORDPRESS_URL,
        'first': 100,
        'public_dir': 'public',
        'dist_dir': 'dist',
        'images_subdir': 'images',
        'public_prefix': '/images',
        'data_file': os.path.join('src', 'data', 'posts.json'),
        'quality': 85,
        'timeout': 30,
        'private_hosts': ['.local', 'localhost'],
        'transcoder': 'auto',
        'logs_dir': 'logs',
    }

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['wpmirror.yml', 'wpmirror.yaml', 'wpmirror.json']

    TRANSCODERS = ('auto', 'cwebp', 'pillow')

    def __init__(self, config_dir: str = None, environ: Optional[Mapping[str, str]] = None):
        """
        Initialize settings loader.

        Args:
            config_dir: Directory to look for config files. Defaults to current directory.
            environ: Environment mapping. Defaults to os.environ.
        """
        self.config_dir = config_dir or os.getcwd()
        self.environ = os.environ if environ is None else environ
        self.settings = self.DEFAULT_SETTINGS.copy()
        self.settings['private_hosts'] = list(self.DEFAULT_SETTINGS['private_hosts'])
        self.config_file_path = None

    def load_settings(self) -> Dict[str, Any]:
        """
        Load settings from the environment and configuration file if it exists.
        A config file value wins over the environment.

        Returns:
            Dictionary of configuration settings
        """
        env_url = self.environ.get('WORDPRESS_URL')
        if env_url:
            self.settings['wordpress_url'] = env_url

        config_file = self._find_config_file()

        if config_file:
            self.config_file_path = config_file
            loaded_settings = self._load_config_file(config_file)
            if loaded_settings:
                if not isinstance(loaded_settings, dict):
                    raise ValueError(f"Configuration file {config_file} must contain a mapping")
                self.settings.update(loaded_settings)
                print(f"Loaded configuration from: {os.path.relpath(config_file)}")

        self.validate()
        return self.settings.copy()

    def _find_config_file(self) -> Optional[str]:
        """
        Find the first available configuration file.

        Returns:
            Path to config file or None if not found
        """
        for filename in self.CONFIG_FILES:
            config_path = os.path.join(self.config_dir, filename)
            if os.path.exists(config_path):
                return config_path
        return None

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Dictionary of configuration settings
        """
        file_ext = os.path.splitext(config_path)[1].lower()
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                if file_ext in ['.yml', '.yaml']:
                    return yaml.safe_load(f) or {}
                elif file_ext == '.json':
                    return json.load(f) or {}
                else:
                    raise ValueError(f"Unsupported config file format: {file_ext}")
        except PermissionError:
            raise PermissionError(f"Permission denied reading configuration file: {config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file {config_path}: {e}")

    def validate(self) -> None:
        """Reject settings the pipeline cannot run with."""
        s = self.settings
        s['wordpress_url'] = str(s['wordpress_url']).rstrip('/')
        if not s['wordpress_url'].startswith(('http://', 'https://')):
            raise ValueError(f"wordpress_url must be an http(s) URL: {s['wordpress_url']}")
        for key in ('first', 'quality', 'timeout'):
            try:
                s[key] = int(s[key])
            except (TypeError, ValueError):
                raise ValueError(f"{key} must be an integer, got {s[key]!r}")
        if s['first'] < 1:
            raise ValueError("first must be at least 1")
        if not 0 <= s['quality'] <= 100:
            raise ValueError("quality must be between 0 and 100")
        if s['timeout'] < 1:
            raise ValueError("timeout must be at least 1 second")
        if s['transcoder'] not in self.TRANSCODERS:
            raise ValueError(f"transcoder must be one of {', '.join(self.TRANSCODERS)}")
        if isinstance(s['private_hosts'], str):
            s['private_hosts'] = [h.strip() for h in s['private_hosts'].split(',') if h.strip()]

    def create_sample_config(self, file_format: str = 'yml') -> str:
        """
        Create a sample configuration file.

        Args:
            file_format: Format for config file ('yml', 'yaml', or 'json')

        Returns:
            Path to created sample config file
        """
        filename = f'wpmirror.{file_format}'
        config_path = os.path.join(self.config_dir, filename)

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                if file_format in ['yml', 'yaml']:
                    f.write("# wpmirror Configuration File\n")
                    f.write("# WORDPRESS_URL in the environment is used when wordpress_url is unset\n\n")
                    f.write("# Content source\n")
                    f.write(f"wordpress_url: {DEFAULT_WORDPRESS_URL}\n")
                    f.write("first: 100\n")
                    f.write("timeout: 30  # seconds per network call\n\n")
                    f.write("# Only assets on these hosts are downloaded\n")
                    f.write("private_hosts:\n")
                    f.write("  - .local\n")
                    f.write("  - localhost\n\n")
                    f.write("# Output\n")
                    f.write("public_dir: public\n")
                    f.write("dist_dir: dist\n")
                    f.write("images_subdir: images\n")
                    f.write("public_prefix: /images\n")
                    f.write("data_file: src/data/posts.json\n\n")
                    f.write("# Images\n")
                    f.write("quality: 85\n")
                    f.write("transcoder: auto  # auto, cwebp or pillow\n")
                elif file_format == 'json':
                    sample = {k: v for k, v in self.DEFAULT_SETTINGS.items() if k != 'logs_dir'}
                    sample['data_file'] = 'src/data/posts.json'
                    json.dump(sample, f, indent=2)
                else:
                    raise ValueError(f"Unsupported config file format: {file_format}")
        except PermissionError:
            raise PermissionError(f"Permission denied creating configuration file: {config_path}")

        return config_path

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge configuration settings with command-line arguments.
        Command-line arguments take precedence over config file settings.

        Args:
            args_dict: Dictionary of command-line arguments

        Returns:
            Merged configuration dictionary
        """
        merged = self.settings.copy()

        # Override with non-None command line arguments
        for key, value in args_dict.items():
            if value is not None:
                if key == 'private_hosts' and isinstance(value, str):
                    # Convert comma-separated string to list
                    merged[key] = [host.strip() for host in value.split(',') if host.strip()]
                else:
                    merged[key] = value

        return merged
