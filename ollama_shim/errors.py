"""Exceptions raised while turning an HTTP request into an inference call."""


class ShimError(Exception):
    """Base class for all shim errors."""


class ValidationError(ShimError):
    """Request is well-formed JSON but cannot be turned into an inference call."""


class EmptyInputError(ValidationError):
    def __init__(self):
        super().__init__("Messages array cannot be empty")


class LastMessageNotUserError(ValidationError):
    def __init__(self):
        super().__init__("Last message must be from user role")


class InvalidRoleError(ValidationError):
    def __init__(self, role: str):
        self.role = role
        super().__init__(f"Invalid role: {role}")


class ConflictingSamplingParametersError(ValidationError):
    def __init__(self):
        super().__init__("Cannot use both topP and topK")


class ModelNotFoundError(ValidationError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f'model "{name}" not found, try pulling it first')


class BackendError(ShimError):
    """Raised by a backend when generation fails."""
