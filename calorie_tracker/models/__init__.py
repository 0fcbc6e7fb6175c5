"""ORM models. Importing this package registers every table on Base.metadata."""

from calorie_tracker.models.external_food import CachedExternalFood
from calorie_tracker.models.food import Food, FoodLog
from calorie_tracker.models.rewards import (PointTransaction, UserAchievement, UserMilestone,
                                            UserPoints)
from calorie_tracker.models.session import AuthSession
from calorie_tracker.models.user import User
from calorie_tracker.models.weight_log import WeightLog

__all__ = [
    "AuthSession",
    "CachedExternalFood",
    "Food",
    "FoodLog",
    "PointTransaction",
    "User",
    "UserAchievement",
    "UserMilestone",
    "UserPoints",
    "WeightLog",
]
