"""
Exception classes for the competition engine

Load-time problems (bad IDs, dangling references, duplicates) are raised as
ValidationError/DuplicateError. Runtime lookups against an in-progress
competition never raise these to callers of Competition.get_team, which
degrades to the unknown team instead.
"""


class ServiceError(Exception):
    """
    Base exception for all competition errors
    """
    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        self.code = code or "SERVICE_ERROR"

    def to_dict(self):
        """Convert exception to dictionary for JSON responses"""
        return {
            'error': self.code,
            'message': self.message
        }


class ValidationError(ServiceError):
    """
    Raised when a field, ID, score or team reference is invalid
    """
    def __init__(self, message: str, field: str = None):
        super().__init__(message, "VALIDATION_ERROR")
        self.field = field

    def to_dict(self):
        result = super().to_dict()
        if self.field:
            result['field'] = self.field
        return result


class ReferenceSyntaxError(ValidationError):
    """
    Raised when a team reference string cannot be parsed
    """
    def __init__(self, message: str, reference: str = None):
        super().__init__(message, "reference")
        self.code = "REFERENCE_SYNTAX_ERROR"
        self.reference = reference


class NotFoundError(ServiceError):
    """
    Raised when a stage, group, match, team, club or player is not found
    """
    def __init__(self, resource: str, id: str = None, message: str = None):
        if not message:
            message = f"{resource} not found"
            if id:
                message = f'{resource} with ID "{id}" not found'
        super().__init__(message, "NOT_FOUND")
        self.resource = resource
        self.id = id


class DuplicateError(ServiceError):
    """
    Raised when attempting to add an entity whose ID is already taken
    """
    def __init__(self, resource: str, field: str = None, value: str = None, message: str = None):
        if not message:
            message = f"Duplicate {resource}"
            if field and value:
                message = f"{resource} with {field}='{value}' already exists"
        super().__init__(message, "DUPLICATE_ERROR")
        self.resource = resource
        self.field = field
        self.value = value


class BusinessRuleError(ServiceError):
    """
    Raised when an operation is refused by a competition rule
    """
    def __init__(self, message: str, rule: str = None):
        super().__init__(message, "BUSINESS_RULE_VIOLATION")
        self.rule = rule

    def to_dict(self):
        result = super().to_dict()
        if self.rule:
            result['rule'] = self.rule
        return result


class MatchResultError(BusinessRuleError):
    """
    Raised when a winner or loser is requested from a match that has none
    """
    def __init__(self, message: str):
        super().__init__(message, "match_result")


class CircularReferenceError(BusinessRuleError):
    """
    Raised when groups reference each other in a cycle
    """
    def __init__(self, path):
        self.path = list(path)
        chain = ' -> '.join(self.path)
        super().__init__(f"Circular reference between groups: {chain}", "circular_reference")


class ConfigurationError(ServiceError):
    """
    Raised when application configuration is invalid
    """
    def __init__(self, message: str, config_key: str = None):
        super().__init__(message, "CONFIGURATION_ERROR")
        self.config_key = config_key
