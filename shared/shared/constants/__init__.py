from shared.constants.roles import TRAINER_ROLES, Role

__all__ = ["Role", "TRAINER_ROLES"]
