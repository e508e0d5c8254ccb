from constants import *
import copy
import yaml
import os

import logging

# Retrieve main logger
logger = logging.getLogger("main")


# Cache variable
_cached_settings = None


def load_settings(force=False, config_file=CONFIG_FILE):
    global _cached_settings

    if _cached_settings and not force:
        return _cached_settings

    if os.path.exists(config_file):
        logger.debug(f"Reading configuration file: {config_file}")
        with open(config_file, "r") as yaml_file:
            settings = yaml.safe_load(yaml_file) or {}

        # Deep merge with defaults so new keys are always present
        merged_settings = copy.deepcopy(DEFAULT_SETTINGS)
        for section, values in settings.items():
            if isinstance(values, dict) and section in merged_settings and isinstance(merged_settings[section], dict):
                merged_settings[section].update(values)
            else:
                merged_settings[section] = values
        settings = merged_settings

    else:
        settings = copy.deepcopy(DEFAULT_SETTINGS)
        os.makedirs(os.path.dirname(config_file), exist_ok=True)
        with open(config_file, "w") as yaml_file:
            yaml.dump(settings, yaml_file)

    _cached_settings = settings
    return settings


def verify_settings(section, data):
    success = True
    errors = []
    if section == "crawler":
        if data.get("output_format") not in OUTPUT_FORMATS:
            success = False
            errors.append({"path": "crawler/output_format", "error": f"Output format must be one of {OUTPUT_FORMATS}."})
        start_at = data.get("start_at", 1)
        if not isinstance(start_at, int) or start_at < 1:
            success = False
            errors.append({"path": "crawler/start_at", "error": "File IDs start at 1; ID 0 is never valid."})
        wait_time = data.get("random_wait_time", DELAY_TIME)
        if not isinstance(wait_time, (int, float)) or wait_time < 0:
            success = False
            errors.append({"path": "crawler/random_wait_time", "error": "Random wait time must be a positive number."})
        debug_requests = data.get("debug_requests")
        if debug_requests is not None and (not isinstance(debug_requests, int) or debug_requests < 1):
            success = False
            errors.append({"path": "crawler/debug_requests", "error": "Debug request cap must be a positive integer."})
    elif section == "catalog":
        schema_file = data.get("schema_file")
        if not schema_file or not os.path.exists(schema_file):
            success = False
            errors.append({"path": "catalog/schema_file", "error": f"Schema file {schema_file} does not exist."})
        database = data.get("database")
        if database and not os.path.isdir(os.path.dirname(os.path.abspath(database))):
            success = False
            errors.append({"path": "catalog/database", "error": f"Directory for {database} does not exist."})
    elif section == "containers":
        temp_dir = data.get("temp_dir")
        if temp_dir and not os.path.isdir(temp_dir):
            success = False
            errors.append({"path": "containers/temp_dir", "error": f"Path {temp_dir} does not exist."})
    return success, errors


def crawler_options_from_settings(settings):
    """Map the 'crawler' settings section onto IDSpaceCrawler keyword arguments"""
    crawler = settings.get("crawler", {})
    return {
        "api_url": crawler.get("api_url", IDGAMES_API_URL),
        "start_at": crawler.get("start_at", 1),
        "random_wait": crawler.get("random_wait", True),
        "random_wait_time": crawler.get("random_wait_time", DELAY_TIME),
        "debug_requests": crawler.get("debug_requests"),
        "die_on_error": crawler.get("die_on_error", True),
        "timeout": crawler.get("request_timeout", REQUEST_TIMEOUT),
        "user_agent": crawler.get("user_agent", USER_AGENT),
    }

