import configparser
import copy
import json
import os
import posixpath
from typing import Any, Dict, Iterable, List
from urllib.parse import unquote, urlparse

import yaml

ALLOWED_URL_SCHEMES = ("http", "https", "ftp")

DEFAULT_SETTINGS: Dict[str, Any] = {
    "artifacts": {
        "versions_file": "Remote/config/tomcat_versions.json",
        "checksums_dir": "checksums",
        "download_dir": "downloads",
        "timeout": 60,
        "fetch_checksum_algorithm": None,
    },
    "install": {
        "tomcat": {
            "target_dir": "/opt/tomcat",
            "force": False,
            "alternate_tools": False,
            "make_scripts_executable": True,
        },
    },
    "logging": {
        "path": "logs/tomcat_provision.log",
        "level": "INFO",
    },
}


def load_yaml(path: str) -> Dict[str, Any]:
    if not os.path.isfile(path):
        raise FileNotFoundError(f"YAML configuration not found: {path}")
    with open(path, "r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def load_settings(path: str) -> Dict[str, Any]:
    """Load settings.yaml layered over DEFAULT_SETTINGS."""
    return merge_dict(copy.deepcopy(DEFAULT_SETTINGS), [load_yaml(path)])


def load_server_ini(path: str) -> List[Dict[str, Any]]:
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Server INI file not found: {path}")

    parser = configparser.ConfigParser()
    parser.read(path, encoding="utf-8")

    defaults = {k: v for k, v in parser.items("defaults")} if parser.has_section("defaults") else {}

    servers: List[Dict[str, Any]] = []
    for section in parser.sections():
        if section.lower() == "defaults":
            continue
        data = defaults.copy()
        data.update({k: v for k, v in parser.items(section)})
        data.setdefault("name", section)
        required = ["host", "username"]
        missing = [field for field in required if not data.get(field)]
        if missing:
            raise ValueError(f"Section '{section}' missing required fields: {', '.join(missing)}")
        if "force" in data:
            data["force"] = parse_bool(data["force"], f"Section '{section}' force")
        servers.append(data)

    return servers


def load_version_table(path: str) -> Dict[str, List[str]]:
    """Read the version -> candidate URL table from a JSON file.

    A bare string value is treated as a single candidate. Every version must
    map to at least one http(s)/ftp URL with a host component.
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Version table not found: {path}")
    with open(path, "r", encoding="utf-8") as fh:
        raw = json.load(fh)

    if not isinstance(raw, dict):
        raise ValueError(f"Version table {path} must be a JSON object")

    table: Dict[str, List[str]] = {}
    for version, urls in raw.items():
        if isinstance(urls, str):
            urls = [urls]
        if not isinstance(urls, list) or not urls:
            raise ValueError(f"Version '{version}' in {path} has no candidate URLs")
        for url in urls:
            if not _is_valid_url(url):
                raise ValueError(f"Version '{version}' in {path} has an invalid URL: {url!r}")
        table[str(version)] = list(urls)
    return table


def merge_dict(base: Dict[str, Any], overrides: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    result = base.copy()
    for layer in overrides:
        result = _deep_merge(result, layer)
    return result


def _deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = base.copy()
    for key, value in overrides.items():
        if (
            key in merged
            and isinstance(merged[key], dict)
            and isinstance(value, dict)
        ):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _is_valid_url(url: Any) -> bool:
    if not isinstance(url, str):
        return False
    parsed = urlparse(url)
    # the final path segment becomes the local artifact file name
    return (
        parsed.scheme in ALLOWED_URL_SCHEMES
        and bool(parsed.netloc)
        and bool(posixpath.basename(unquote(parsed.path)))
    )


def parse_bool(value: Any, context: str) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in ("1", "yes", "true", "on"):
        return True
    if lowered in ("0", "no", "false", "off"):
        return False
    raise ValueError(f"{context} is not a boolean: {value!r}")
