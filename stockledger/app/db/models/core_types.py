import enum


class Location(str, enum.Enum):
    warehouse = "warehouse"
    store = "store"


class TransferStatus(str, enum.Enum):
    # aucun workflow d'approbation : un transfert naît "completed"
    completed = "completed"


class ActivityType(str, enum.Enum):
    check = "check"
    repair = "repair"
    maintenance = "maintenance"
    installation = "installation"


class AlertType(str, enum.Enum):
    low_stock = "low_stock"
    low_moving_stock = "low_moving_stock"


class AlertPriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
