"""Helpers that turn configuration into server command-line flags."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

_DEFAULT_AUDIT_POLICY_FILE_PATH = "openshift.local.audit/policy.yaml"

Args = dict[str, list[str]]


@dataclass
class AuditConfig:
    """Audit logging settings."""

    enabled: bool = False
    audit_file_path: str = ""
    maximum_file_retention_days: int = 0
    maximum_retained_files: int = 0
    maximum_file_size_megabytes: int = 0
    policy_file: str = ""
    policy_configuration: bytes = b""
    log_format: str = ""
    web_hook_kube_config: str = ""
    web_hook_mode: str = ""


def args_with_prefix(args: Args, prefix: str) -> Args:
    """Return a copy of the arguments whose keys start with `prefix` and have values."""
    return {
        key: list(values)
        for key, values in args.items()
        if key.startswith(prefix) and values
    }


def set_if_unset(cmd_line_args: Args, key: str, *args: str) -> None:
    """Set `key` to the given values unless it is already present."""
    if key not in cmd_line_args:
        cmd_line_args[key] = list(args)


def to_flag_slice(args: Args) -> list[str]:
    """Render arguments as `--key=value` flags, keys sorted."""
    return [f"--{key}={token}" for key in sorted(args) for token in args[key]]


def _write_policy(path: str, content: bytes) -> None:
    target = Path(path)
    try:
        target.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
    except OSError:
        logger.exception("unable to create audit policy directory %s", target.parent)
    try:
        target.write_bytes(content)
        target.chmod(0o644)
    except OSError:
        logger.exception("unable to write audit policy file %s", target)


def audit_flags(config: AuditConfig, args: Args) -> Args:
    """Add audit flags derived from `config` to `args` and return it."""
    if not config.enabled:
        return args

    policy_path = config.policy_file
    raw = config.policy_configuration
    if raw and raw != b"null":
        if not policy_path:
            policy_path = _DEFAULT_AUDIT_POLICY_FILE_PATH
        _write_policy(policy_path, raw)

    set_if_unset(args, "audit-log-maxbackup", str(int(config.maximum_retained_files)))
    set_if_unset(args, "audit-log-maxsize", str(int(config.maximum_file_size_megabytes)))
    set_if_unset(args, "audit-log-maxage", str(int(config.maximum_file_retention_days)))
    set_if_unset(args, "audit-log-path", config.audit_file_path or "-")
    if policy_path:
        set_if_unset(args, "audit-policy-file", policy_path)
    if config.log_format:
        set_if_unset(args, "audit-log-format", config.log_format)
    if config.web_hook_mode:
        set_if_unset(args, "audit-webhook-mode", config.web_hook_mode)
    set_if_unset(args, "audit-webhook-config-file", config.web_hook_kube_config)
    return args