from .scoring_permissions import (
    EditDecision,
    JudgeContestAccess,
    PermissionResolver,
    PermissionSource,
    resolve_edit_permission,
)

__all__ = [
    "EditDecision",
    "JudgeContestAccess",
    "PermissionResolver",
    "PermissionSource",
    "resolve_edit_permission",
]
