"""
Conversion options loaded from C2K_* environment variables.
"""
import os
from typing import Any, Dict, Optional

from .MODELS.convert_options import ControllerKind, ConvertOptions


def _env(key: str, environ: Dict[str, str]) -> Optional[str]:
    value = environ.get(f"C2K_{key}")
    return value if value else None


def load_options(environ: Optional[Dict[str, str]] = None, **overrides: Any) -> ConvertOptions:
    """
    Builds ConvertOptions from the environment, with keyword overrides winning.
    Overrides that are None are ignored, so unset CLI options fall through.

    :param environ: Environment to read; defaults to os.environ.
    :raises ValueError: If a value is not valid for its option.
    """
    environ = dict(os.environ) if environ is None else environ
    values: Dict[str, Any] = {}
    for field, key in (
        ("platform", "PLATFORM"),
        ("replicas", "REPLICAS"),
        ("volume_mode", "VOLUMES"),
        ("controller", "CONTROLLER"),
        ("colocation", "COLOCATION"),
        ("namespace", "NAMESPACE"),
        ("pvc_request_size", "PVC_SIZE"),
        ("group_label", "GROUP_LABEL"),
    ):
        value = _env(key, environ)
        if value is not None:
            values[field] = value
    values.update({k: v for k, v in overrides.items() if v is not None})

    controller = values.get("controller")
    if isinstance(controller, str):
        values["controller"] = ControllerKind.parse(controller)
    return ConvertOptions(**values)
