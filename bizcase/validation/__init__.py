from .validator import BusinessCaseValidator, validate_business_case

__all__ = ["BusinessCaseValidator", "validate_business_case"]
