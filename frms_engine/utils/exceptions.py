"""
Custom exceptions for the FRMS compliance engine
"""

class FRMSException(Exception):
    """Base exception for the compliance engine"""
    def __init__(self, message: str, error_code: str = None, context: dict = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "GENERIC_ERROR"
        self.context = context or {}

class ConfigurationException(FRMSException):
    """Exception related to configuration issues"""
    pass

class LimitTableException(ConfigurationException):
    """Exception raised when a limit rule book cannot be loaded"""
    pass

class DataValidationException(FRMSException):
    """Exception raised when data validation fails"""
    pass

class RecordParseException(DataValidationException):
    """Exception raised when a logbook row cannot become a duty record"""
    pass
