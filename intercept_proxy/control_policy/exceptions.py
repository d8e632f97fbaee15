# Control Policy Exceptions


class ControlPolicyError(Exception):
    """Base exception for all control policy errors."""

    def __init__(
        self, *args, policy_name: str | None = None, status_code: int | None = None, detail: str | None = None
    ):
        super().__init__(*args)
        self.policy_name = policy_name
        self.status_code = status_code
        # Use the first arg as detail if detail kwarg is not provided and args exist
        self.detail = detail or (args[0] if args else None)


class PolicyLoadError(ValueError, ControlPolicyError):
    """Custom exception for errors during policy loading/instantiation."""

    # Inherit from ValueError for semantic meaning (bad value/config)
    # Inherit from ControlPolicyError for categorization
    def __init__(
        self, *args, policy_name: str | None = None, status_code: int | None = None, detail: str | None = None
    ):
        ControlPolicyError.__init__(self, *args, policy_name=policy_name, status_code=status_code, detail=detail)


class BodyReadError(ControlPolicyError):
    """Exception raised when the incoming request body cannot be fully read."""

    def __init__(self, detail: str, status_code: int = 400):
        super().__init__(detail, status_code=status_code, detail=detail)


class FilteredContentError(ControlPolicyError):
    """Exception raised when a request body contains the filtered substring."""

    def __init__(self, detail: str, status_code: int = 401, policy_name: str | None = None):
        super().__init__(detail, policy_name=policy_name, status_code=status_code, detail=detail)


class ForwardingError(ControlPolicyError):
    """Exception raised when the request cannot be sent to the backend."""

    def __init__(self, detail: str, status_code: int = 502, policy_name: str | None = None):
        super().__init__(detail, policy_name=policy_name, status_code=status_code, detail=detail)
