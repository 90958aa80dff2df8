"""Vendor configuration loading.

Loads vendor configuration from .vendorsync/vendors.yaml, validates it
against the bundled JSON schema and applies semantic safety checks.
"""
from __future__ import annotations

import re
from functools import cached_property
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

import yaml
from jsonschema import Draft202012Validator

from vendorsync.core.utils.io import read_yaml
from vendorsync.core.vendors.copier import split_destination, validate_dest_path, validate_vendor_name
from vendorsync.core.vendors.exceptions import (
    GroupNotFoundError,
    PositionSpecError,
    VendorConfigError,
    VendorNotFoundError,
)
from vendorsync.core.vendors.git import DEFAULT_GIT_TIMEOUT_SECONDS
from vendorsync.core.vendors.hooks import DEFAULT_HOOK_TIMEOUT_SECONDS
from vendorsync.core.vendors.models import VendorSpec
from vendorsync.core.vendors.positions import parse_path_position
from vendorsync.data import read_yaml as read_bundled_yaml

CONFIG_DIR = ".vendorsync"
CONFIG_FILENAME = "vendors.yaml"
SCHEMA_FILENAME = "vendors.schema.yaml"

_SCP_USER_RE = re.compile(r"(?P<user>[^@\s/]+)@(?P<host>[^:\s/]+):")


class SyncSettings:
    """Typed, cached access to the ``settings`` section."""

    def __init__(self, section: Optional[Dict[str, Any]] = None) -> None:
        self.section = dict(section or {})

    @cached_property
    def parallel(self) -> bool:
        return bool(self.section.get("parallel", False))

    @cached_property
    def workers(self) -> int | None:
        value = self.section.get("workers")
        return int(value) if value else None

    @cached_property
    def git_timeout_seconds(self) -> float:
        return float(self.section.get("git_timeout_seconds", DEFAULT_GIT_TIMEOUT_SECONDS))

    @cached_property
    def hook_timeout_seconds(self) -> float:
        return float(self.section.get("hook_timeout_seconds", DEFAULT_HOOK_TIMEOUT_SECONDS))

    @cached_property
    def verbose(self) -> bool:
        return bool(self.section.get("verbose", False))


class VendorConfig:
    """Load and access vendor configuration.

    Configuration is read from .vendorsync/vendors.yaml in the project.
    A missing file is an empty configuration.
    """

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = Path(repo_root)
        self._config: dict[str, Any] | None = None
        self._vendors: list[VendorSpec] | None = None

    @property
    def config_path(self) -> Path:
        """Path to vendors.yaml configuration file."""
        return self.repo_root / CONFIG_DIR / CONFIG_FILENAME

    def _load(self) -> dict[str, Any]:
        if self._config is not None:
            return self._config

        try:
            data = read_yaml(self.config_path, default={}, raise_on_error=True) if self.config_path.exists() else {}
        except yaml.YAMLError as e:
            raise VendorConfigError(f"Invalid YAML in {self.config_path}: {e}") from e
        except OSError as e:
            raise VendorConfigError(f"Cannot read {self.config_path}: {e}") from e

        if not isinstance(data, dict):
            raise VendorConfigError(f"{self.config_path} must contain a mapping, got {type(data).__name__}")

        errors = self._schema_errors(data)
        if errors:
            raise VendorConfigError(
                f"Invalid vendor configuration in {self.config_path}:\n" + "\n".join(f"- {e}" for e in errors),
                context={"errors": errors},
            )
        self._config = data
        return data

    @staticmethod
    def _schema_errors(data: dict[str, Any]) -> list[str]:
        validator = Draft202012Validator(read_bundled_yaml("schemas", SCHEMA_FILENAME))
        errors: list[str] = []
        for error in sorted(validator.iter_errors(data), key=lambda e: str(e.path)):
            if error.path:
                path_str = ".".join(str(p) for p in error.path)
                errors.append(f"{path_str}: {error.message}")
            else:
                errors.append(error.message)
        return errors

    @cached_property
    def settings(self) -> SyncSettings:
        return SyncSettings(self._load().get("settings"))

    def get_vendors(self) -> list[VendorSpec]:
        """Configured vendors in declaration order.

        Raises:
            VendorConfigError: If the configuration is invalid or unsafe
        """
        if self._vendors is not None:
            return self._vendors

        vendors: list[VendorSpec] = []
        seen: set[str] = set()
        for item in self._load().get("vendors") or []:
            vendor = VendorSpec.from_dict(item)
            if vendor.name in seen:
                raise VendorConfigError(f"Duplicate vendor name '{vendor.name}'", vendor=vendor.name)
            seen.add(vendor.name)
            self._validate_vendor(vendor)
            vendors.append(vendor)

        self._vendors = vendors
        return vendors

    def _validate_vendor(self, vendor: VendorSpec) -> None:
        """Reject unsafe values; the file may come from an untrusted checkout."""
        name = vendor.name
        try:
            validate_vendor_name(name)
        except VendorConfigError as e:
            raise e.with_context(vendor=name)

        url = vendor.url.strip()
        if url.startswith("-") or any(ch.isspace() for ch in url):
            raise VendorConfigError(
                f"Vendor '{name}' has unsafe url (must not start with '-' or contain whitespace).",
                vendor=name,
            )
        self._reject_credentials(name, url)

        refs: set[str] = set()
        for spec in vendor.specs:
            if spec.ref.startswith("-") or any(ch.isspace() for ch in spec.ref):
                raise VendorConfigError(
                    f"Vendor '{name}' has unsafe ref '{spec.ref}' (must not start with '-' or contain whitespace).",
                    vendor=name,
                )
            if spec.ref in refs:
                raise VendorConfigError(f"Vendor '{name}' lists ref '{spec.ref}' twice", vendor=name)
            refs.add(spec.ref)
            if spec.default_target:
                validate_dest_path(spec.default_target)
            for mapping in spec.mappings:
                try:
                    _, source_pos = parse_path_position(mapping.source)
                    dest_file, dest_pos = split_destination(mapping, spec, name)
                    validate_dest_path(dest_file)
                    if mapping.exclude and (source_pos is not None or dest_pos is not None):
                        raise VendorConfigError("exclude only applies to directory mappings")
                except (PositionSpecError, VendorConfigError) as e:
                    raise VendorConfigError(
                        f"Vendor '{name}' mapping '{mapping.source}': {e}", vendor=name, ref=spec.ref
                    ) from e

    @staticmethod
    def _reject_credentials(name: str, url: str) -> None:
        # Embedded credentials end up in logs and lock files; use SSH or a
        # credential helper instead.
        if "://" in url:
            parts = urlsplit(url)
            if parts.password is not None or (
                parts.username is not None and not (parts.scheme == "ssh" and parts.username == "git")
            ):
                raise VendorConfigError(
                    f"Vendor '{name}' has unsafe url (must not include credentials).", vendor=name
                )
            return
        m = _SCP_USER_RE.match(url)
        if m and m.group("user") != "git":
            raise VendorConfigError(f"Vendor '{name}' has unsafe url (must not include credentials).", vendor=name)

    def get_vendor(self, name: str) -> VendorSpec:
        for vendor in self.get_vendors():
            if vendor.name == name:
                return vendor
        raise VendorNotFoundError(f"Vendor '{name}' not found in {self.config_path.name}", vendor=name)

    def select(self, vendor: str | None = None, group: str | None = None) -> list[VendorSpec]:
        """Vendors matching the optional name and group filters.

        Raises:
            VendorNotFoundError: Unknown vendor name
            GroupNotFoundError: No vendor carries ``group``
        """
        vendors = self.get_vendors()
        if vendor is not None:
            vendors = [self.get_vendor(vendor)]
        if group is not None:
            in_group = [v for v in vendors if group in v.groups]
            if not in_group and not any(group in v.groups for v in self.get_vendors()):
                raise GroupNotFoundError(f"No vendor belongs to group '{group}'", context={"group": group})
            vendors = in_group
        return vendors


__all__ = ["CONFIG_DIR", "CONFIG_FILENAME", "SyncSettings", "VendorConfig"]
