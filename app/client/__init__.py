from .normalize import ImageView, StatsView, format_confidence, normalize_image_list, normalize_stats
from .poller import AnalysisPoller

__all__ = [
    "AnalysisPoller",
    "ImageView",
    "StatsView",
    "format_confidence",
    "normalize_image_list",
    "normalize_stats",
]
