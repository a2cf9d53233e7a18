from .config import RuntimeConfig, load_runtime_config
from .health import FeatureStatus, get_health_snapshot, render_health_lines, report_feature
from .logging import configure_logging

__all__ = [
    "RuntimeConfig",
    "load_runtime_config",
    "configure_logging",
    "FeatureStatus",
    "get_health_snapshot",
    "render_health_lines",
    "report_feature",
]
