"""
AppSetting model.

Singleton row (id 1) holding global settings such as manPowerLimit.
"""

from app.models.base_model import JsonRecordModel

SETTINGS_ROW_ID = 1


class AppSetting(JsonRecordModel):
    """settings table."""

    __tablename__ = "settings"
