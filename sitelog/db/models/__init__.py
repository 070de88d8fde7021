from sitelog.db.models.master_data import MasterDataItem
from sitelog.db.models.memory import ManpowerTemplate, ResourceMemoryRecord
from sitelog.db.models.report import DailyReport
from sitelog.db.models.user import User

__all__ = [
    "DailyReport",
    "ManpowerTemplate",
    "MasterDataItem",
    "ResourceMemoryRecord",
    "User",
]
