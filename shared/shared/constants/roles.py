from enum import Enum


class Role(str, Enum):
    LEARNER = "learner"
    TRAINER = "trainer"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


# Roles allowed to edit training structure (mini-trainings, quizzes, video rules)
TRAINER_ROLES = frozenset({Role.TRAINER, Role.ADMIN, Role.SUPER_ADMIN})
