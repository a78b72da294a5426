from fastapi import HTTPException
from typing import Dict, Any, Optional


class APIException(HTTPException):
    def __init__(self, status_code: int, detail: str, headers: Dict[str, Any] = None,
                 error: Optional[str] = None):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error = error


class BadRequestException(APIException):
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)


class InvalidIdException(APIException):
    def __init__(self, label: str = "resource"):
        super().__init__(status_code=400, detail=f"Invalid {label} ID format")


class AuthenticationException(APIException):
    def __init__(self, detail: str = "Not authorized"):
        super().__init__(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


class NotFoundException(APIException):
    def __init__(self, resource: str):
        super().__init__(status_code=404, detail=f"{resource} not found")


class ConfigurationException(APIException):
    def __init__(self, detail: str):
        super().__init__(status_code=500, detail=detail)


class GenerationException(APIException):
    def __init__(self, detail: str = "Failed to generate response from Gemini", error: Optional[str] = None):
        super().__init__(status_code=500, detail=detail, error=error)


class StorageException(APIException):
    def __init__(self, detail: str = "Failed to upload to image host", error: Optional[str] = None):
        super().__init__(status_code=500, detail=detail, error=error)
