from __future__ import annotations

import platform
import sys
from importlib.metadata import PackageNotFoundError, version as pkg_version


def _safe_pkg_version(dist_name: str) -> str | None:
    try:
        return pkg_version(dist_name)
    except PackageNotFoundError:
        return None


def build_env_meta() -> dict:
    return {
        "python": sys.version.split()[0],
        "platform": platform.platform(),
        "nordic-stocks": _safe_pkg_version("nordic-stocks"),
        "requests": _safe_pkg_version("requests"),
        "pandas": _safe_pkg_version("pandas"),
        "pyarrow": _safe_pkg_version("pyarrow"),
        "simplejson": _safe_pkg_version("simplejson"),
    }


def build_source_meta(provider) -> dict:
    """Provider identity plus whatever paging knobs it exposes."""
    out = {"name": provider.name}
    for attr in ("url", "category", "page_size", "max_pages"):
        value = getattr(provider, attr, None)
        if value is not None:
            out[attr] = value
    return out
