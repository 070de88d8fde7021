from fastapi import HTTPException, status


class SiteLogException(HTTPException):
    def __init__(self, detail: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        super().__init__(status_code=status_code, detail=detail)


class NotFoundError(SiteLogException):
    def __init__(self, resource: str, key: str | None = None):
        detail = f"{resource} '{key}' not found" if key else f"{resource} not found"
        super().__init__(detail=detail, status_code=status.HTTP_404_NOT_FOUND)


class PermissionDeniedError(SiteLogException):
    def __init__(self, detail: str = "Sign in with a verified account to use the site log"):
        super().__init__(detail=detail, status_code=status.HTTP_403_FORBIDDEN)


class BadRequestError(SiteLogException):
    def __init__(self, detail: str):
        super().__init__(detail=detail, status_code=status.HTTP_400_BAD_REQUEST)


class ConflictError(SiteLogException):
    def __init__(self, detail: str):
        super().__init__(detail=detail, status_code=status.HTTP_409_CONFLICT)


class ActivityIdConflictError(ConflictError):
    """A typed activity id is already used in history or elsewhere in the report."""

    def __init__(self, activity_id: str):
        self.activity_id = activity_id
        super().__init__(
            f"Activity ID '{activity_id}' is already in use. Send confirm_shift=true to "
            "shift the existing ids up, or confirm_shift=false to keep the duplicate"
        )


class ExternalServiceError(SiteLogException):
    """A backing service (the report store, the AI provider) failed the request."""

    def __init__(self, service: str, detail: str | None = None):
        self.service = service
        msg = f"{service} is unavailable"
        if detail:
            msg += f": {detail}"
        super().__init__(detail=msg, status_code=status.HTTP_502_BAD_GATEWAY)
