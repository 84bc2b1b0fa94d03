from octagram.models.profile import Profile
from octagram.models.run import Run
from octagram.models.collection import Collection, CollectionItem
from octagram.models.daily_usage import DailyUsage

__all__ = [
    "Profile",
    "Run",
    "Collection",
    "CollectionItem",
    "DailyUsage",
]
