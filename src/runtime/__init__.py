"""
Confidential-compute runtimes implementing shadow_core.encrypted.ComputeRuntime.

Depends on shadow_core.encrypted for handle types; no dependency from
shadow_core back to runtime.
"""

from runtime.local import LocalRuntime

__all__ = ["LocalRuntime", "get_runtime"]

_RUNTIMES = {
    "local": LocalRuntime,
}


def get_runtime(name: str):
    """Build a runtime by its config name (``runtime.backend``)."""
    try:
        factory = _RUNTIMES[name]
    except KeyError:
        raise ValueError(
            f"Unsupported runtime backend '{name}'. Supported: {sorted(_RUNTIMES)}"
        ) from None
    return factory()
