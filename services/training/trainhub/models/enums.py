import enum


class NotificationType(str, enum.Enum):
    TRAINING_UPDATE = "training_update"
