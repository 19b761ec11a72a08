from app.core.exceptions import Forbidden
from app.models.attempt import Attempt
from app.schemas.user import UserContext


class PermissionHelper:
    @staticmethod
    def is_owner(context: UserContext, owner_id: int) -> bool:
        return context.user_id is not None and context.user_id == owner_id

    @staticmethod
    def is_attempt_owner(context: UserContext, attempt: Attempt) -> bool:
        return PermissionHelper.is_owner(context, attempt.assignment.owner_id)

    @staticmethod
    def is_participant(context: UserContext, attempt: Attempt) -> bool:
        if attempt.user_id is not None:
            return context.user_id == attempt.user_id
        # Guest attempts bound to a device only answer to that device;
        # unbound ones treat the attempt id as the credential
        if attempt.fingerprint:
            return context.fingerprint == attempt.fingerprint
        return True

    @staticmethod
    def require_authenticated(context: UserContext) -> None:
        if not context.is_authenticated:
            raise Forbidden("Sign in to perform this action.")

    @staticmethod
    def require_owner(context: UserContext, owner_id: int, detail: str = "Only the owner can perform this action.") -> None:
        if not PermissionHelper.is_owner(context, owner_id):
            raise Forbidden(detail)

    @staticmethod
    def require_participant(context: UserContext, attempt: Attempt) -> None:
        if not PermissionHelper.is_participant(context, attempt):
            raise Forbidden("You can only act on your own attempts.")

    @staticmethod
    def require_attempt_view_permission(context: UserContext, attempt: Attempt) -> None:
        if PermissionHelper.is_participant(context, attempt) or PermissionHelper.is_attempt_owner(context, attempt):
            return
        raise Forbidden("You do not have permission to view this attempt.")
