from taskflow.store.constraints import validate_profile, validate_role_assignment, validate_task
from taskflow.store.references import REFERENCES, OnDelete, delete_identity, delete_row

__all__ = [
    "REFERENCES",
    "OnDelete",
    "delete_identity",
    "delete_row",
    "validate_profile",
    "validate_role_assignment",
    "validate_task",
]
