from .augmentation import (
    AugmentationUnavailable,
    GenerativeAugmenter,
    LLMAugmenter,
    NullAugmenter,
    ProviderConfig,
)
from .notifications import NotificationChannel, NotificationHub

__all__ = [
    "AugmentationUnavailable",
    "GenerativeAugmenter",
    "LLMAugmenter",
    "NotificationChannel",
    "NotificationHub",
    "NullAugmenter",
    "ProviderConfig",
]
